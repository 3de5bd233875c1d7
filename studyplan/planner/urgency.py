"""
Urgency Scorer — a ranking signal from stated priority, deadline proximity
and remaining effort:

    urgency = priority*10 + 20/max(days_until_due, 0.5) + 5*remaining_hours

Only meaningful relative to other tasks in the same run.
"""

from __future__ import annotations

import math
from datetime import datetime

from .models import Task

# Due-today (and overdue) items score as if due in half a day.
URGENCY_DAYS_FLOOR = 0.5

_SECONDS_PER_DAY = 86400.0


def days_until_due(task: Task, now: datetime) -> float | None:
    if task.due is None:
        return None
    return float(math.floor((task.due - now).total_seconds() / _SECONDS_PER_DAY))


def urgency_score(task: Task, now: datetime) -> float:
    score = task.effective_priority * 10.0

    days = days_until_due(task, now)
    if days is not None:
        score += 20.0 / max(days, URGENCY_DAYS_FLOOR)

    remaining_hours = task.remaining_minutes / 60.0
    score += 5.0 * remaining_hours
    return score
