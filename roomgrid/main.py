"""Main application entry point for the room grid service.

This module defines the FastAPI application, configures logging, caches
day calendars fetched from the booking API and serves the booking grid both
as JSON and as a server-rendered HTML table.

Endpoints:
  - ``/api/grid``: render plan for one location and date.
  - ``/api/locations``: configured locations and the default one.
  - ``/healthz``: simple health check endpoint.
  - ``/``: serve the calendar page.

Calendars are cached per (location, date) behind a threading lock so the
booking API is not called more often than ``REFRESH_SECONDS``. When the
booking API fails, the last good calendar is served with ``lastError`` set.
Entries older than the retention window are dropped whenever a new
calendar is stored.
"""

from __future__ import annotations

import logging
import re
import threading
from datetime import datetime, timezone
from html import escape
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlencode

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse

from .booking_client import BookingApiError, DayCalendar, fetch_day_calendar
from .booking_rules import can_cancel_booking, max_booking_date, venue_today
from .config import settings
from .models import CalendarGrid, GridCellOut, GridRowOut
from .render import render_grid_table
from .timegrid import CellKind, GridPlan, build_grid

logger = logging.getLogger("room_grid")
logging.basicConfig(level=settings.log_level.upper(), format="%(asctime)s %(levelname)s [%(name)s] %(message)s")

app = FastAPI(title="Room Grid Service")

# CORS is off by default because the page and the API share an origin.
if settings.enable_cors:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

DATE_REGEX = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")

_cache_lock = threading.Lock()
_cache: Dict[Tuple[str, str], Dict[str, Any]] = {}


def _utcnow() -> datetime:
    """Return the current time in UTC."""
    return datetime.now(timezone.utc)


def _iso_z(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _cache_fresh(ts: Optional[datetime], max_age_seconds: int) -> bool:
    """Return True if the timestamp ``ts`` is within ``max_age_seconds`` of now."""
    if ts is None:
        return False
    return (_utcnow() - ts).total_seconds() < max_age_seconds


def _resolve_query(location: Optional[str], date: Optional[str]) -> Tuple[str, str]:
    """Apply defaults and validate the location/date query parameters."""
    location = location or settings.default_location
    if location not in settings.locations:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid location. Allowed: {', '.join(settings.locations)}",
        )
    if date is None:
        date = venue_today(settings.venue_timezone).isoformat()
    elif not DATE_REGEX.fullmatch(date):
        raise HTTPException(status_code=400, detail="Invalid date format. Use YYYY-MM-DD")
    else:
        try:
            datetime.strptime(date, "%Y-%m-%d")
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Invalid date: {date}")
    return location, date


def _cache_retention_seconds() -> int:
    """Age after which an entry is dropped instead of kept for stale fallback."""
    return max(settings.refresh_seconds * 10, 300)


def _evict_expired() -> None:
    """Drop entries past retention. Caller must hold ``_cache_lock``."""
    max_age = _cache_retention_seconds()
    for key in [k for k, entry in _cache.items() if not _cache_fresh(entry["fetched_at"], max_age)]:
        del _cache[key]


def _get_calendar_cached(location: str, date: str) -> Tuple[DayCalendar, Optional[str]]:
    """Return the calendar for ``(location, date)`` and the last upstream error, if any.

    A fresh cache entry is returned as-is. Otherwise the booking API is
    called; if that fails and a stale entry exists, the stale entry is
    returned together with the error message.
    """
    key = (location, date)
    with _cache_lock:
        entry = _cache.get(key)
        if entry is not None and _cache_fresh(entry["fetched_at"], settings.refresh_seconds):
            return entry["calendar"], entry["last_error"]
    try:
        calendar = fetch_day_calendar(location, date)
    except BookingApiError as exc:
        logger.exception("Error fetching calendar for %s on %s: %s", location, date, exc)
        with _cache_lock:
            entry = _cache.get(key)
            if entry is not None:
                entry["last_error"] = f"CALENDAR_ERROR: {exc.message}"
                return entry["calendar"], entry["last_error"]
        raise
    with _cache_lock:
        _evict_expired()
        _cache[key] = {"calendar": calendar, "fetched_at": _utcnow(), "last_error": None}
    return calendar, None


def _visible_bookings(calendar: DayCalendar):
    """Drop booker names unless this deployment may show them."""
    if settings.show_booker_names:
        return list(calendar.bookings)
    return [b.model_copy(update={"bookerName": None}) for b in calendar.bookings]


def _grid_payload(location: str, date: str, plan: GridPlan, last_error: Optional[str]) -> CalendarGrid:
    now = _utcnow()
    today = venue_today(settings.venue_timezone, now)
    rows = []
    for grid_row in plan.rows:
        cells = []
        for cell in grid_row.cells:
            cancellable = (
                cell.kind is CellKind.SPAN_START
                and cell.booking.id is not None
                and can_cancel_booking(date, cell.booking.startTime, now, settings.venue_timezone)
            )
            cells.append(
                GridCellOut(
                    roomId=cell.room_id,
                    kind=cell.kind.value,
                    rowSpan=cell.row_span,
                    booking=cell.booking,
                    cancellable=cancellable,
                )
            )
        rows.append(GridRowOut(row=grid_row.row, label=grid_row.label, cells=cells))
    return CalendarGrid(
        location=location,
        date=date,
        generatedAt=_iso_z(now),
        rooms=list(plan.rooms),
        rows=rows,
        minDate=today.isoformat(),
        maxDate=max_booking_date(today).isoformat(),
        lastError=last_error,
    )


@app.get("/api/grid")
def api_grid(location: Optional[str] = None, date: Optional[str] = None) -> Dict[str, Any]:
    """Return the booking grid for one location and date."""
    location, date = _resolve_query(location, date)
    try:
        calendar, last_error = _get_calendar_cached(location, date)
    except BookingApiError as exc:
        raise HTTPException(status_code=502, detail=exc.message)
    plan = build_grid(calendar.rooms, _visible_bookings(calendar))
    return _grid_payload(location, date, plan, last_error).model_dump()


@app.get("/api/locations")
def api_locations() -> Dict[str, Any]:
    """Return the locations the grid can show."""
    return {"items": list(settings.locations), "default": settings.default_location}


@app.get("/healthz")
def healthz() -> Dict[str, Any]:
    """Health check endpoint for monitoring."""
    return {"ok": True, "time": _iso_z(_utcnow())}


@app.get("/", response_class=HTMLResponse)
def calendar_page(location: Optional[str] = None, date: Optional[str] = None) -> HTMLResponse:
    """Serve the calendar page for one location and date.

    The table is rendered on the server; the page only carries a location
    switcher, a date picker and a periodic reload.
    """
    location, date = _resolve_query(location, date)
    today = venue_today(settings.venue_timezone)
    status_code = 200
    error: Optional[str] = None
    table = ""
    try:
        calendar, error = _get_calendar_cached(location, date)
        plan = build_grid(calendar.rooms, _visible_bookings(calendar))
        table = render_grid_table(plan, show_booker_names=settings.show_booker_names)
    except BookingApiError as exc:
        error = exc.message
        status_code = 502

    location_links = "".join(
        f'<a class="loc{" active" if loc == location else ""}" '
        f'href="/?{escape(urlencode({"location": loc, "date": date}))}">{escape(loc)}</a>'
        for loc in settings.locations
    )
    error_bar = f'<div class="errorbar">Warning: {escape(error)}</div>' if error else ""
    html = f"""
<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <title>Room bookings · {escape(location)} · {escape(date)}</title>
  <style>
    body {{
      margin: 0;
      font-family: system-ui, -apple-system, Segoe UI, Roboto, Ubuntu, Cantarell, Noto Sans, Arial;
      background: #f8fafc;
      color: #0f172a;
    }}
    header {{
      display: flex; gap: 16px; align-items: center;
      padding: 16px 22px; border-bottom: 1px solid #e2e8f0;
    }}
    h1 {{ margin: 0; font-size: 22px; font-weight: 650; }}
    .filters {{ display: flex; gap: 10px; margin-left: auto; align-items: center; }}
    .loc {{
      padding: 8px 12px; border-radius: 10px; border: 1px solid #cbd5e1;
      color: inherit; text-decoration: none; font-size: 14px;
    }}
    .loc.active {{ background: #0f172a; color: #fff; border-color: #0f172a; }}
    input[type=date] {{ padding: 8px 10px; border-radius: 10px; border: 1px solid #cbd5e1; }}
    main {{ padding: 18px 22px 28px; overflow-x: auto; }}
    .errorbar {{
      margin: 14px 22px 0; padding: 10px 12px; border-radius: 12px;
      border: 1px solid #fdba74; background: #fff7ed; font-size: 13px;
    }}
    table.timegrid {{ width: 100%; min-width: 400px; border-collapse: collapse; table-layout: fixed; font-size: 13px; }}
    .timegrid th, .timegrid td {{ border: 1px solid #e2e8f0; padding: 2px 4px; vertical-align: top; }}
    .timegrid th {{ background: #f1f5f9; font-weight: 500; }}
    .timegrid th.time, .timegrid td.time {{ width: 60px; color: #64748b; font-size: 12px; }}
    .timegrid td.free {{ background: #fff; height: 14px; }}
    .timegrid td.booked {{ background: #dbeafe; border-color: #93c5fd; }}
    .timegrid td.booked span {{ display: block; overflow: hidden; text-overflow: ellipsis; white-space: nowrap; }}
  </style>
</head>
<body>
  <header>
    <h1>Room bookings</h1>
    <div class="filters">
      {location_links}
      <form method="get" action="/">
        <input type="hidden" name="location" value="{escape(location)}" />
        <input type="date" name="date" id="date" value="{escape(date)}"
               min="{today.isoformat()}" max="{max_booking_date(today).isoformat()}" />
      </form>
    </div>
  </header>
  {error_bar}
  <main>
    {table}
  </main>
<script>
const REFRESH_MS = {settings.refresh_seconds} * 1000;
document.getElementById("date").addEventListener("change", (e) => e.target.form.submit());
setTimeout(() => window.location.reload(), REFRESH_MS);
</script>
</body>
</html>
"""  # noqa: E501
    return HTMLResponse(content=html, status_code=status_code)


if __name__ == "__main__":
    import uvicorn

    # Bind only to localhost by default. Use a reverse proxy to expose externally.
    uvicorn.run(app, host=settings.host, port=settings.port)
