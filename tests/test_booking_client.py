import httpx
import pytest

from roomgrid import booking_client
from roomgrid.booking_client import BookingApiError, fetch_day_calendar

CALENDAR = {
    "success": True,
    "rooms": [{"id": "r1", "name": "Room 1"}, {"id": "r2", "name": "Room 2", "location": "Pimlico"}],
    "bookings": [
        {"roomId": "r1", "startTime": "09:00:00", "endTime": "10:00:00", "bookerName": "Dr Smith", "id": "b1"},
    ],
}


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    delays = []
    monkeypatch.setattr(booking_client.time, "sleep", delays.append)
    return delays


def _client(handler):
    return httpx.Client(base_url="http://booking.test/api", transport=httpx.MockTransport(handler))


def test_fetch_parses_rooms_and_bookings():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=CALENDAR)

    calendar = fetch_day_calendar("Pimlico", "2026-07-01", client=_client(handler))

    assert [r.id for r in calendar.rooms] == ["r1", "r2"]
    assert calendar.bookings[0].startTime == "09:00:00"
    assert calendar.bookings[0].bookerName == "Dr Smith"
    assert seen[0].url.path == "/api/practitioner/bookings/calendar"
    assert seen[0].url.params["location"] == "Pimlico"
    assert seen[0].url.params["date"] == "2026-07-01"


def test_missing_lists_are_empty():
    calendar = fetch_day_calendar(
        "Pimlico", "2026-07-01", client=_client(lambda request: httpx.Response(200, json={"success": True}))
    )
    assert calendar.rooms == []
    assert calendar.bookings == []


def test_retries_transient_errors(no_sleep):
    responses = iter([httpx.Response(503), httpx.Response(429), httpx.Response(200, json=CALENDAR)])

    calendar = fetch_day_calendar(
        "Pimlico", "2026-07-01", client=_client(lambda request: next(responses)), backoff_seconds=0.5
    )

    assert len(calendar.rooms) == 2
    assert no_sleep == [0.5, 1.0]


def test_gives_up_after_max_retries(no_sleep):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(500)

    with pytest.raises(BookingApiError) as excinfo:
        fetch_day_calendar("Pimlico", "2026-07-01", client=_client(handler), max_retries=2)

    assert len(calls) == 3
    assert excinfo.value.status_code == 500
    assert "HTTP 500" in excinfo.value.message


def test_client_errors_are_not_retried(no_sleep):
    def handler(request):
        return httpx.Response(400, json={"success": False, "error": "Invalid location. Allowed: Pimlico, Kensington"})

    with pytest.raises(BookingApiError) as excinfo:
        fetch_day_calendar("Mayfair", "2026-07-01", client=_client(handler))

    assert no_sleep == []
    assert excinfo.value.status_code == 400
    assert excinfo.value.message.startswith("Invalid location")


def test_unsuccessful_envelope_raises():
    def handler(request):
        return httpx.Response(200, json={"success": False, "error": "Calendar unavailable"})

    with pytest.raises(BookingApiError, match="Calendar unavailable"):
        fetch_day_calendar("Pimlico", "2026-07-01", client=_client(handler))


def test_connection_errors_are_retried(no_sleep):
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(BookingApiError, match="unreachable"):
        fetch_day_calendar("Pimlico", "2026-07-01", client=_client(handler), max_retries=1)

    assert no_sleep == [1.0]


def test_malformed_booking_raises():
    payload = {"success": True, "rooms": [], "bookings": [{"roomId": "r1"}]}
    with pytest.raises(BookingApiError, match="Malformed"):
        fetch_day_calendar("Pimlico", "2026-07-01", client=_client(lambda request: httpx.Response(200, json=payload)))


def test_bearer_token_from_settings(monkeypatch):
    monkeypatch.setattr(booking_client.settings, "booking_api_token", "secret")
    assert booking_client._headers()["Authorization"] == "Bearer secret"
    monkeypatch.setattr(booking_client.settings, "booking_api_token", None)
    assert "Authorization" not in booking_client._headers()
