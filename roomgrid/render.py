"""HTML table rendering for a grid plan.

The table is written row by row. A ``SPAN_START`` cell becomes a
``<td rowspan=N>`` and the positions it reaches below are ``COVERED`` cells,
which produce no markup at all; emitting them would shift every cell to
their right.
"""

from __future__ import annotations

from html import escape
from typing import List

from .timegrid import CellKind, GridCell, GridPlan


def _render_cell(cell: GridCell, show_booker_names: bool) -> str:
    if cell.kind is CellKind.COVERED:
        return ""
    if cell.kind is CellKind.SPAN_START:
        label = "&nbsp;"
        if show_booker_names and cell.booking is not None and cell.booking.bookerName:
            label = escape(cell.booking.bookerName)
        title = escape(f"{cell.booking.startTime[:5]}-{cell.booking.endTime[:5]}")
        return f'<td class="booked" rowspan="{cell.row_span}" title="{title}"><span>{label}</span></td>'
    return '<td class="free"></td>'


def render_grid_table(plan: GridPlan, show_booker_names: bool = False) -> str:
    """Render ``plan`` as a ``<table>`` with a time column and one column per room."""
    parts: List[str] = ['<table class="timegrid">', "<thead><tr>", '<th class="time">Time</th>']
    for room in plan.rooms:
        parts.append(f'<th data-room-id="{escape(room.id)}">{escape(room.name)}</th>')
    parts.append("</tr></thead>")
    parts.append("<tbody>")
    for grid_row in plan.rows:
        parts.append(f'<tr data-row="{grid_row.row}">')
        parts.append(f'<td class="time">{grid_row.label}</td>')
        parts.extend(_render_cell(cell, show_booker_names) for cell in grid_row.cells)
        parts.append("</tr>")
    parts.append("</tbody></table>")
    return "".join(parts)
