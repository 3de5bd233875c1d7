"""
Block Slicer — carves one free slot into fixed-length study blocks separated
by breaks.
"""

from __future__ import annotations

from datetime import timedelta
from typing import List

from .models import FreeSlot, Interval


def slice_slot(slot: FreeSlot, block_minutes: int, break_minutes: int) -> List[Interval]:
    if block_minutes <= 0:
        raise ValueError("block_minutes must be positive")
    if break_minutes < 0:
        raise ValueError("break_minutes must not be negative")

    block = timedelta(minutes=block_minutes)
    step = block + timedelta(minutes=break_minutes)

    blocks: List[Interval] = []
    cursor = slot.start
    while cursor + block <= slot.end:
        blocks.append(Interval(cursor, cursor + block))
        cursor += step
    return blocks
