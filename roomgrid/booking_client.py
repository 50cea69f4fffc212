"""Booking API client for the room grid service.

This module fetches one day's calendar (rooms and bookings at one location)
from the external booking REST API. It encapsulates retry logic with
exponential back-off for transient errors and unwraps the API's
``{"success": ..., "error": ...}`` envelope into typed models or a
``BookingApiError``.

The calls are synchronous; FastAPI runs the endpoints that use them in its
thread pool.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from .config import settings
from .models import Booking, Room

logger = logging.getLogger(__name__)

CALENDAR_PATH = "/practitioner/bookings/calendar"
RETRY_STATUSES = (429, 500, 502, 503, 504)


class BookingApiError(Exception):
    """The booking API failed or refused the request."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass
class DayCalendar:
    rooms: List[Room] = field(default_factory=list)
    bookings: List[Booking] = field(default_factory=list)


def _headers() -> Dict[str, str]:
    headers = {"Accept": "application/json"}
    if settings.booking_api_token:
        headers["Authorization"] = f"Bearer {settings.booking_api_token}"
    return headers


def _build_client() -> httpx.Client:
    return httpx.Client(
        base_url=settings.booking_api_url.rstrip("/"),
        headers=_headers(),
        timeout=settings.request_timeout_seconds,
    )


def _parse_calendar(payload: Any) -> DayCalendar:
    if not isinstance(payload, dict):
        raise BookingApiError("Unexpected calendar response from booking API")
    if not payload.get("success", False):
        raise BookingApiError(payload.get("error") or "Booking API reported failure")
    try:
        rooms = [Room.model_validate(r) for r in payload.get("rooms") or []]
        bookings = [Booking.model_validate(b) for b in payload.get("bookings") or []]
    except ValidationError as exc:
        raise BookingApiError(f"Malformed calendar data from booking API: {exc}") from exc
    return DayCalendar(rooms=rooms, bookings=bookings)


def fetch_day_calendar(
    location: str,
    booking_date: str,
    *,
    max_retries: int = 3,
    backoff_seconds: float = 1.0,
    client: Optional[httpx.Client] = None,
) -> DayCalendar:
    """Retrieve rooms and bookings for ``location`` on ``booking_date``.

    Args:
        location: location name as known to the booking API.
        booking_date: ``YYYY-MM-DD``.
        max_retries: number of times to retry on transient errors.
        backoff_seconds: initial backoff delay for retries.
        client: an ``httpx.Client`` to use instead of one built from settings.

    Returns:
        A ``DayCalendar`` with rooms in column order.

    Raises:
        BookingApiError: if the API refuses the request or keeps failing
            after retries.
    """
    own_client = client is None
    http = client or _build_client()
    params = {"location": location, "date": booking_date}
    attempt = 0
    try:
        while True:
            try:
                response = http.get(CALENDAR_PATH, params=params)
                response.raise_for_status()
                break
            except (httpx.HTTPStatusError, httpx.TransportError) as exc:
                attempt += 1
                status = exc.response.status_code if isinstance(exc, httpx.HTTPStatusError) else None
                # Retry on 5xx, rate-limit and connection errors.
                if attempt <= max_retries and (status is None or status in RETRY_STATUSES):
                    delay = backoff_seconds * (2 ** (attempt - 1))
                    logger.warning(
                        "Calendar request transient error (status=%s), retrying in %.1fs (attempt %s/%s)",
                        status,
                        delay,
                        attempt,
                        max_retries,
                    )
                    time.sleep(delay)
                    continue
                logger.error("Calendar request failed after %s attempts: %s", attempt, exc)
                raise BookingApiError(_error_message(exc), status_code=status) from exc
        try:
            payload = response.json()
        except ValueError as exc:
            raise BookingApiError("Booking API returned invalid JSON") from exc
    finally:
        if own_client:
            http.close()
    calendar = _parse_calendar(payload)
    logger.info(
        "Fetched calendar for %s on %s: %d rooms, %d bookings",
        location,
        booking_date,
        len(calendar.rooms),
        len(calendar.bookings),
    )
    return calendar


def _error_message(exc: httpx.HTTPError) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        try:
            body = exc.response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("error"):
            return str(body["error"])
        return f"Booking API returned HTTP {exc.response.status_code}"
    return f"Booking API unreachable: {exc}"
