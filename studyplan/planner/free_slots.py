"""
Free-Slot Calculator — the complement of a day's busy intervals within the
day bounds. Task-agnostic: short slots are filtered by the caller.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, List

from .models import FreeSlot, Interval


def compute_free_slots(
    day_start: datetime,
    day_end: datetime,
    busy: Iterable[Interval],
) -> List[FreeSlot]:
    """
    Sweep busy intervals in start order with a forward-only cursor.
    Overlapping or nested intervals collapse because the cursor never moves back.
    """
    if day_end <= day_start:
        return []

    clipped = []
    for b in busy:
        start = max(b.start, day_start)
        end = min(b.end, day_end)
        if start < end:
            clipped.append(Interval(start, end))
    clipped.sort(key=lambda b: (b.start, b.end))

    slots: List[FreeSlot] = []
    cursor = day_start
    for b in clipped:
        if b.start > cursor:
            slots.append(FreeSlot(cursor, b.start))
        cursor = max(cursor, b.end)

    if cursor < day_end:
        slots.append(FreeSlot(cursor, day_end))
    return slots
