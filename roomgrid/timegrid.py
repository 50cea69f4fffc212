"""Booking calendar time grid.

Turns one day's bookings into a row-major render plan for a table with one
column per room and one row per 30-minute slot between 08:00 and 22:00.

A booking occupies the row of its start time and spans down over the rows
it lasts. The table is emitted row by row, so every position below a
spanning cell is marked ``COVERED`` and must not produce markup of its own.

The functions here do no I/O and keep no state. Input times are not
validated: malformed strings resolve to ``nan`` and simply match no row.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple

from .models import Booking, Room

DAY_START_HOUR = 8
SLOT_MINUTES = 30
ROW_COUNT = 28  # 08:00 .. 21:30 start times, 22:00 end boundary
ROWS = range(ROW_COUNT)

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _leading_int(text: str) -> Optional[int]:
    """Integer value of the leading digits of ``text``, ignoring anything after them."""
    match = _LEADING_INT.match(text)
    if match is None:
        return None
    return int(match.group(1))


def to_row_index(time: str) -> float:
    """Map an ``HH:mm`` string to its grid row.

    ``"08:00"`` is row 0 and ``"21:30"`` row 27. Minutes other than 00/30
    give a fractional row. Out-of-window times are returned as-is (negative
    or >= 28). Each part is read from its leading digits, so ``"9:00"`` is
    row 2. A part with no digits gives ``nan``.
    """
    try:
        hour = _leading_int(time[0:2])
        minute = _leading_int(time[3:5])
    except TypeError:
        return math.nan
    if hour is None or minute is None:
        return math.nan
    return (hour - DAY_START_HOUR) * 2 + minute / SLOT_MINUTES


def row_label(row: int) -> str:
    """Return the ``HH:mm`` start time displayed for ``row``."""
    minutes = DAY_START_HOUR * 60 + row * SLOT_MINUTES
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


# Also the 30-minute options offered for booking start/end times.
ROW_LABELS: List[str] = [row_label(row) for row in ROWS]


def row_span(booking: Booking) -> int:
    """Number of rows ``booking`` occupies, never less than one."""
    span = to_row_index(booking.endTime) - to_row_index(booking.startTime)
    if math.isnan(span):
        return 1
    return max(1, math.ceil(span))


def booking_starting_at(bookings: Iterable[Booking], room_id: str, row: int) -> Optional[Booking]:
    """Return the first booking for ``room_id`` whose start falls in ``row``.

    Two bookings starting in the same row of one room means the upstream
    data overlaps; input order decides and the later ones are never shown.
    """
    for booking in bookings:
        if booking.roomId != room_id:
            continue
        start = to_row_index(booking.startTime)
        if math.isnan(start):
            continue
        if math.floor(start) == row:
            return booking
    return None


def is_covered(bookings: Iterable[Booking], room_id: str, row: int) -> bool:
    """True if ``row`` lies strictly inside the span of a booking for ``room_id``.

    The start row belongs to ``booking_starting_at`` and the end row is free
    again, so neither counts as covered.
    """
    for booking in bookings:
        if booking.roomId != room_id:
            continue
        start = to_row_index(booking.startTime)
        end = to_row_index(booking.endTime)
        if math.isnan(start) or math.isnan(end):
            continue
        if math.floor(start) < row < math.ceil(end):
            return True
    return False


class CellKind(str, Enum):
    EMPTY = "empty"
    SPAN_START = "span_start"
    COVERED = "covered"


@dataclass(frozen=True)
class GridCell:
    """Classification of one (room, row) position."""

    room_id: str
    row: int
    kind: CellKind
    booking: Optional[Booking] = None
    row_span: int = 1


@dataclass(frozen=True)
class GridRow:
    row: int
    label: str
    cells: Tuple[GridCell, ...]  # one per room, in room order


@dataclass(frozen=True)
class GridPlan:
    """Row-major render plan. ``rows[i].cells[j]`` is room ``rooms[j]`` at row ``i``."""

    rooms: Tuple[Room, ...]
    rows: Tuple[GridRow, ...]

    def column(self, room_id: str) -> List[GridCell]:
        """Cells of one room, top to bottom."""
        for index, room in enumerate(self.rooms):
            if room.id == room_id:
                return [grid_row.cells[index] for grid_row in self.rows]
        raise KeyError(room_id)

    def cell(self, room_id: str, row: int) -> GridCell:
        return self.column(room_id)[row]

    def span_starts(self) -> List[GridCell]:
        return [cell for grid_row in self.rows for cell in grid_row.cells if cell.kind is CellKind.SPAN_START]


def classify_cell(bookings: Sequence[Booking], room_id: str, row: int) -> GridCell:
    # Covered is checked first: if upstream data overlaps, the span that
    # started higher up keeps the position.
    if is_covered(bookings, room_id, row):
        return GridCell(room_id=room_id, row=row, kind=CellKind.COVERED)
    booking = booking_starting_at(bookings, room_id, row)
    if booking is not None:
        return GridCell(
            room_id=room_id,
            row=row,
            kind=CellKind.SPAN_START,
            booking=booking,
            row_span=row_span(booking),
        )
    return GridCell(room_id=room_id, row=row, kind=CellKind.EMPTY)


def build_grid(rooms: Sequence[Room], bookings: Sequence[Booking], rows: Iterable[int] = ROWS) -> GridPlan:
    """Classify every (room, row) position.

    Rows are evaluated in order and rooms in the order given. Bookings
    outside the display window are not filtered here; the caller asks the
    booking API for a single day and location.
    """
    rooms = tuple(rooms)
    bookings = list(bookings)
    grid_rows = []
    for row in rows:
        cells = tuple(classify_cell(bookings, room.id, row) for room in rooms)
        grid_rows.append(GridRow(row=row, label=row_label(row), cells=cells))
    return GridPlan(rooms=rooms, rows=tuple(grid_rows))
