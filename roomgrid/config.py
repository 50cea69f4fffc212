"""Application configuration settings.

This module defines the ``Settings`` class using ``pydantic-settings`` to
load configuration from environment variables. It centralises all runtime
configuration for the service: where the booking API lives, how long
calendar data is cached, which locations may be shown and whether booker
names are visible.

A ``.env`` file is read first if present, so local development does not
need a long list of exported variables.
"""

import os
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings

load_dotenv(os.getenv("ROOMGRID_ENV", ".env"))


class Settings(BaseSettings):
    """Configuration values loaded from environment variables.

    Environment variable names map to fields by alias. Every value has a
    default so the service can start against a local booking API.
    """

    # Booking API
    booking_api_url: str = Field(
        default="http://127.0.0.1:3000/api",
        alias="BOOKING_API_URL",
        description="Base URL of the booking REST API, without a trailing slash.",
    )
    booking_api_token: Optional[str] = Field(
        default=None,
        alias="BOOKING_API_TOKEN",
        description="Bearer token sent to the booking API. Admin tokens receive booker names.",
    )
    request_timeout_seconds: float = Field(default=10.0, alias="REQUEST_TIMEOUT_SECONDS")

    # Grid behaviour
    refresh_seconds: int = Field(
        default=60,
        alias="REFRESH_SECONDS",
        description="Seconds a fetched day calendar is served from cache before refetching.",
    )
    locations: List[str] = Field(
        default=["Pimlico", "Kensington"],
        alias="LOCATIONS",
        description='JSON list of location names, e.g. ["Pimlico", "Kensington"].',
    )
    default_location: str = Field(default="Pimlico", alias="DEFAULT_LOCATION")
    venue_timezone: str = Field(default="Europe/London", alias="VENUE_TIMEZONE")
    show_booker_names: bool = Field(
        default=False,
        alias="SHOW_BOOKER_NAMES",
        description="Only enable on privileged (admin) screens.",
    )

    # Server
    enable_cors: bool = Field(default=False, alias="ENABLE_CORS")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    host: str = Field(default="127.0.0.1", alias="HOST")
    port: int = Field(default=8000, alias="PORT")

    class Config:
        extra = "ignore"


# Instantiate settings at module import time. This allows other modules to
# import ``settings`` directly without repeatedly reading environment variables.
settings = Settings()
