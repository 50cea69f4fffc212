# Package initializer for the room grid service.

"""
The `roomgrid` package contains all modules for the room booking grid service.

Modules:

- ``config``: application settings loaded from environment variables.
- ``models``: Pydantic data models for booking API payloads and responses.
- ``timegrid``: the time grid: row mapping, spans and cell classification.
- ``booking_rules``: cancellation window and bookable date range.
- ``booking_client``: helpers for fetching day calendars from the booking API.
- ``render``: HTML table rendering of a grid plan.
- ``main``: the FastAPI application definition.

"""
