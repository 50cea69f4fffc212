"""Pydantic data models for booking API payloads and service responses.

``Room`` and ``Booking`` mirror the read-only projection of the calendar
returned by the booking API. The ``*Out`` models and ``CalendarGrid``
define the JSON served by this service. They are kept separate from the
grid's internal dataclasses so the wire format can change independently.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class Room(BaseModel):
    """A bookable room at one location. List order is column order."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str


class Booking(BaseModel):
    """A booking as consumed by the grid.

    ``startTime``/``endTime`` are ``HH:mm`` strings (``HH:mm:ss`` is accepted;
    only the first five characters are read). ``bookerName`` is only sent to
    privileged viewers and ``id`` only when admin actions are available.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    roomId: str
    startTime: str
    endTime: str
    bookerName: Optional[str] = None
    id: Optional[str] = None


class GridCellOut(BaseModel):
    """One (room, row) position of the grid."""

    roomId: str
    kind: str
    rowSpan: int = 1
    booking: Optional[Booking] = None
    cancellable: bool = False


class GridRowOut(BaseModel):
    row: int
    label: str
    cells: List[GridCellOut] = []


class CalendarGrid(BaseModel):
    """Render plan for one location and day."""

    location: str
    date: str
    generatedAt: str
    rooms: List[Room] = []
    rows: List[GridRowOut] = []
    minDate: str
    maxDate: str
    lastError: Optional[str] = None
