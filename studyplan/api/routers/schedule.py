"""
/schedule and /calendars — build a study plan around the student's calendars.

The `calendars` filter only narrows which fixed events the plan avoids;
every pending task is still eligible for scheduling.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request

from ...api.schemas import (
    CalendarListOut,
    CalendarOut,
    FixedEventOut,
    OverflowOut,
    ScheduleOut,
    TimeBlockOut,
)
from ...planner.allocator import generate_schedule
from ...planner.models import BlockKind, Constraints
from ...settings import get_settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["schedule"])


def _get_state(request: Request):
    return request.app.state


def _split_names(raw: Optional[str]) -> Optional[List[str]]:
    if raw is None:
        return None
    names = [n.strip() for n in raw.split(",") if n.strip()]
    return names or None


@router.get("/schedule", response_model=ScheduleOut)
def get_schedule(
    days: int = Query(default=7, ge=1, le=14, description="Days to plan, starting now"),
    calendars: Optional[str] = Query(
        default=None, description="Comma-separated calendar names whose events are avoided"
    ),
    state=Depends(_get_state),
):
    names = _split_names(calendars)
    now = datetime.now().replace(second=0, microsecond=0)
    constraints = Constraints.from_settings(now, days, get_settings())

    fixed = state.calendars.events_between(now, constraints.horizon_end, names)
    tasks = state.tasks.pending_tasks()
    result = generate_schedule(tasks, fixed, constraints, state.preferences.preferences, now=now)

    if names is None:
        calendars_used = [c.name for c in state.calendars.list_calendars()]
    else:
        calendars_used = names

    generated = [b for b in result.blocks if b.kind == BlockKind.TASK and not b.locked]
    logger.info(
        "Generated %d block(s) over %d day(s) for %d task(s), avoiding %d event(s)",
        len(generated), days, len(tasks), len(fixed),
    )

    return ScheduleOut(
        success=True,
        days=days,
        calendars_used=calendars_used,
        generated_blocks=len(generated),
        time_blocks=[
            TimeBlockOut(
                id=b.id,
                title=b.title,
                start=b.start,
                end=b.end,
                kind=b.kind.value,
                assignment_id=b.task_id,
                locked=b.locked,
            )
            for b in result.blocks
        ],
        fixed_events=[FixedEventOut(title=e.title, start=e.start, end=e.end) for e in fixed],
        overflow=[
            OverflowOut(assignment_id=o.task_id, title=o.title, remaining_minutes=o.remaining_minutes)
            for o in result.overflow
        ],
    )


@router.get("/calendars", response_model=CalendarListOut)
def list_calendars(state=Depends(_get_state)):
    return CalendarListOut(
        success=True,
        calendars=[CalendarOut(name=c.name, url=c.url) for c in state.calendars.list_calendars()],
    )
