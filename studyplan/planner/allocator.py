"""
Task Allocator — binds pending tasks to study blocks around fixed events.

Pipeline, per day of the horizon:
  1. day bounds from day_start_hour/day_end_hour, clipped to the horizon
  2. busy = fixed events + locked task blocks + do-not-schedule windows
  3. free slots → candidate blocks (default length, separated by breaks)
  4. candidates visited highest-energy first, chronological within equal energy
  5. each candidate goes to the best-ranked task that still fits it

generate_schedule() is a pure function of its inputs: no I/O, inputs are not
mutated, and identical inputs produce identical output (block ids included).
Nothing here raises for bad task or calendar data; such items are skipped and
the reason is written to ScheduleResult.log.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

from ..adaptive.preferences import DEFAULT_ENERGY, SchedulerPreferences
from .free_slots import compute_free_slots
from .models import (
    BlockKind,
    Constraints,
    FixedEvent,
    FreeSlot,
    Interval,
    ScheduledBlock,
    ScheduleResult,
    Task,
    TaskOverflow,
    block_id,
)
from .slicer import slice_slot
from .urgency import urgency_score

logger = logging.getLogger(__name__)

# Estimated effort at which the size penalty saturates.
SIZE_REFERENCE_MINUTES = 180.0


@dataclass
class RankedTask:
    task: Task
    score: float
    urgency: float


@dataclass
class _Candidate:
    start: datetime
    slot: FreeSlot
    energy: float


# ---------------------------------------------------------------------------
# Ranking
# ---------------------------------------------------------------------------

def rank_tasks(
    tasks: Sequence[Task],
    preferences: SchedulerPreferences,
    now: datetime,
) -> List[RankedTask]:
    """
    Composite score, highest first:

        w_u*urgency/max_urgency + w_i*importance + w_d*difficulty
            − w_s*min(estimate/180, 1) − course_bias

    Ties break on earliest due date (undated last), then task id.
    """
    if not tasks:
        return []

    urgencies = {t.id: urgency_score(t, now) for t in tasks}
    top = max(urgencies.values()) or 1.0
    w = preferences.weights

    ranked = []
    for t in tasks:
        size = min(t.estimated_minutes / SIZE_REFERENCE_MINUTES, 1.0)
        score = (
            w.urgency * (urgencies[t.id] / top)
            + w.importance * _clamp01(t.importance)
            + w.difficulty * _clamp01(t.difficulty)
            - w.size * size
            - preferences.bias_for(t.course_id)
        )
        ranked.append(RankedTask(task=t, score=score, urgency=urgencies[t.id]))

    ranked.sort(key=lambda r: (
        -r.score,
        r.task.due is None,
        r.task.due.timestamp() if r.task.due is not None else 0.0,
        r.task.id,
    ))
    return ranked


def effective_energy(hour: int, constraints: Constraints, preferences: SchedulerPreferences) -> float:
    """Request override first, then the learned profile, then neutral."""
    if hour in constraints.energy_profile:
        return _clamp01(constraints.energy_profile[hour])
    return _clamp01(preferences.learned_energy_profile.get(hour, DEFAULT_ENERGY))


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def generate_schedule(
    tasks: Sequence[Task],
    fixed_events: Sequence[FixedEvent],
    constraints: Constraints,
    preferences: Optional[SchedulerPreferences] = None,
    now: Optional[datetime] = None,
) -> ScheduleResult:
    preferences = preferences if preferences is not None else SchedulerPreferences()
    now = now if now is not None else constraints.horizon_start
    result = ScheduleResult()
    log = _Log(result.log)

    log(f"Scheduling {len(tasks)} task(s) around {len(fixed_events)} fixed event(s) "
        f"from {constraints.horizon_start.isoformat()} to {constraints.horizon_end.isoformat()}")

    horizon = Interval(constraints.horizon_start, constraints.horizon_end)
    fixed = sorted(
        (e for e in fixed_events if Interval(e.start, e.end).overlaps(horizon)),
        key=lambda e: (e.start, e.end, e.id),
    )
    for e in fixed:
        result.blocks.append(ScheduledBlock(
            id=e.id, task_id=None, start=e.start, end=e.end,
            title=e.title, kind=BlockKind.FIXED, locked=True,
        ))

    flexible, locked = _partition(tasks, now, log)
    locked_blocks, unpinned = _pin_locked_tasks(locked, fixed, constraints, log)
    result.blocks.extend(locked_blocks)
    for t in locked:
        result.remaining_minutes[t.id] = 0
    for t in unpinned:
        result.remaining_minutes[t.id] = t.remaining_minutes
        result.overflow.append(TaskOverflow(t.id, t.title, t.remaining_minutes))
        log(f"Overflow: locked {t.title} [{t.id}] has {t.remaining_minutes} unscheduled minute(s)")

    ranked = rank_tasks(flexible, preferences, now)
    remaining: Dict[str, int] = {r.task.id: r.task.remaining_minutes for r in ranked}
    for pos, r in enumerate(ranked, start=1):
        log(f"Rank {pos}: {r.task.title} [{r.task.id}] score={r.score:.4f} urgency={r.urgency:.2f}")

    days = _horizon_days(constraints)
    if not days:
        log("Empty horizon: nothing to schedule")

    busy_base = [Interval(e.start, e.end) for e in fixed]
    busy_base += [b.interval for b in locked_blocks]
    busy_base += list(constraints.do_not_schedule_windows)

    for day in days:
        if not any(remaining.values()):
            break
        result.blocks.extend(
            _allocate_day(day, ranked, remaining, busy_base, constraints, preferences, log)
        )

    for r in ranked:
        left = remaining[r.task.id]
        result.remaining_minutes[r.task.id] = left
        if left > 0:
            result.overflow.append(TaskOverflow(r.task.id, r.task.title, left))
            log(f"Overflow: {r.task.title} [{r.task.id}] has {left} unscheduled minute(s)")

    result.blocks.sort(key=lambda b: (b.start, b.end, b.kind.value, b.id))
    scheduled = len(result.task_blocks) - len(locked_blocks)
    log(f"Done: {scheduled} study block(s), {len(result.overflow)} task(s) overflowing")
    return result


# ---------------------------------------------------------------------------
# Per-day allocation
# ---------------------------------------------------------------------------

def _allocate_day(
    day: date,
    ranked: List[RankedTask],
    remaining: Dict[str, int],
    busy_base: List[Interval],
    constraints: Constraints,
    preferences: SchedulerPreferences,
    log: "_Log",
) -> List[ScheduledBlock]:
    tz = constraints.horizon_start.tzinfo
    day_start = max(_at_hour(day, constraints.day_start_hour, tz), constraints.horizon_start)
    day_end = min(_at_hour(day, constraints.day_end_hour, tz), constraints.horizon_end)
    if day_end <= day_start:
        log(f"{day}: no working window inside the horizon")
        return []

    slots = compute_free_slots(day_start, day_end, busy_base)
    if not slots:
        log(f"{day}: no free slots")
        return []
    for s in slots:
        log(f"{day}: free slot {s.start:%H:%M}-{s.end:%H:%M}")

    candidates = [
        _Candidate(start=iv.start, slot=slot, energy=effective_energy(iv.start.hour, constraints, preferences))
        for slot in slots
        for iv in slice_slot(slot, constraints.default_block_minutes, constraints.break_minutes)
    ]
    if not candidates:
        log(f"{day}: free slots too short for a {constraints.default_block_minutes}-minute block")
        return []
    candidates.sort(key=lambda c: (-c.energy, c.start))

    day_cap = constraints.max_study_minutes_per_day
    blocks: List[ScheduledBlock] = []
    occupied: List[Interval] = []
    per_task: Dict[str, List[Interval]] = {}
    day_minutes = 0

    for cand in candidates:
        if not any(remaining.values()):
            break
        if day_cap > 0 and day_minutes >= day_cap:
            log(f"{day}: daily study cap of {day_cap} minutes reached")
            break

        cap_left = day_cap - day_minutes if day_cap > 0 else None
        chosen: Optional[Tuple[RankedTask, int]] = None
        for r in ranked:
            if remaining[r.task.id] <= 0:
                continue
            minutes = _fit(cand, r.task, remaining[r.task.id], occupied,
                           per_task.get(r.task.id, []), cap_left, constraints, preferences)
            if minutes is not None:
                chosen = (r, minutes)
                break

        if chosen is None:
            log(f"{day}: candidate {cand.start:%H:%M} (energy {cand.energy:.2f}) left empty; no task fits")
            continue

        r, minutes = chosen
        task = r.task
        iv = Interval(cand.start, cand.start + timedelta(minutes=minutes))
        blocks.append(ScheduledBlock(
            id=block_id(task.id, iv.start), task_id=task.id,
            start=iv.start, end=iv.end, title=task.title,
            kind=BlockKind.TASK, locked=False,
        ))
        occupied.append(iv)
        per_task.setdefault(task.id, []).append(iv)
        remaining[task.id] = max(remaining[task.id] - minutes, 0)
        day_minutes += minutes
        log(f"{day}: bound {task.title} [{task.id}] to {iv.start:%H:%M}-{iv.end:%H:%M} "
            f"({minutes} min, energy {cand.energy:.2f}); {remaining[task.id]} min left")

    return blocks


def _fit(
    cand: _Candidate,
    task: Task,
    remaining: int,
    occupied: List[Interval],
    same_task: List[Interval],
    cap_left: Optional[int],
    constraints: Constraints,
    preferences: SchedulerPreferences,
) -> Optional[int]:
    """Minutes *task* would get at *cand*, or None if it cannot use it."""
    lo, hi = _duration_bounds(task, constraints)
    wanted = min(preferences.preferred_block_length(task.type), remaining)
    minutes = max(lo, min(wanted, hi))

    start = cand.start
    limit = cand.slot.end
    gap = timedelta(minutes=constraints.break_minutes)
    for o in occupied:
        if o.start <= start < o.end + gap:
            return None
        if o.start > start:
            limit = min(limit, o.start - gap)

    task_gap = timedelta(minutes=constraints.min_gap_between_blocks_minutes)
    for b in same_task:
        if start >= b.end + task_gap:
            continue
        if start < b.start:
            limit = min(limit, b.start - task_gap)
            continue
        return None

    if task.due is not None:
        limit = min(limit, task.due)

    room = int((limit - start).total_seconds() // 60)
    minutes = min(minutes, room)
    if cap_left is not None:
        minutes = min(minutes, cap_left)
    if minutes < lo:
        return None
    return minutes


def _duration_bounds(task: Task, constraints: Constraints) -> Tuple[int, int]:
    hi = task.max_block_minutes
    if constraints.max_study_minutes_per_block > 0:
        hi = min(hi, constraints.max_study_minutes_per_block)
    return min(task.min_block_minutes, hi), hi


# ---------------------------------------------------------------------------
# Task intake
# ---------------------------------------------------------------------------

def _partition(tasks: Sequence[Task], now: datetime, log: "_Log") -> Tuple[List[Task], List[Task]]:
    flexible: List[Task] = []
    locked: List[Task] = []
    for t in tasks:
        if t.is_completed:
            log(f"Skip {t.title} [{t.id}]: completed")
        elif not t.is_valid():
            log(f"Skip {t.title} [{t.id}]: invalid block bounds "
                f"(min={t.min_block_minutes}, max={t.max_block_minutes}, estimate={t.estimated_minutes})")
        elif t.is_past_due(now):
            log(f"Skip {t.title} [{t.id}]: past due ({t.due.isoformat()})")
        elif t.remaining_minutes <= 0:
            log(f"Skip {t.title} [{t.id}]: no remaining effort")
        elif t.locked:
            locked.append(t)
        else:
            flexible.append(t)
    return flexible, locked


def _pin_locked_tasks(
    locked: List[Task],
    fixed: List[FixedEvent],
    constraints: Constraints,
    log: "_Log",
) -> Tuple[List[ScheduledBlock], List[Task]]:
    """
    Locked tasks sit immovably right before their due date, split into
    blocks no longer than the task's (and the per-block cap's) maximum and
    laid backwards from the due date with breaks between them.

    A task is pinned whole or not at all: every piece must lie inside the
    horizon and clear fixed events, do-not-schedule windows and earlier
    pins. Returns the pinned blocks and the tasks that were skipped.
    """
    pinned: List[ScheduledBlock] = []
    skipped: List[Task] = []
    taken = [Interval(e.start, e.end) for e in fixed]
    blocked = list(constraints.do_not_schedule_windows)
    brk = timedelta(minutes=constraints.break_minutes)

    for t in sorted(locked, key=lambda t: (t.due is None, t.due.timestamp() if t.due else 0.0, t.id)):
        if t.due is None:
            log(f"Skip locked {t.title} [{t.id}]: no due date to pin to")
            skipped.append(t)
            continue

        pieces = _locked_pieces(t, constraints, brk)
        if pieces[0].start < constraints.horizon_start or pieces[-1].end > constraints.horizon_end:
            log(f"Skip locked {t.title} [{t.id}]: does not fit inside the horizon")
            skipped.append(t)
            continue
        if any(p.overlaps(o) for p in pieces for o in taken):
            log(f"Skip locked {t.title} [{t.id}]: collides with a fixed commitment")
            skipped.append(t)
            continue
        if any(p.overlaps(w) for p in pieces for w in blocked):
            log(f"Skip locked {t.title} [{t.id}]: falls in a do-not-schedule window")
            skipped.append(t)
            continue

        taken.extend(pieces)
        for iv in pieces:
            pinned.append(ScheduledBlock(
                id=block_id(t.id, iv.start), task_id=t.id, start=iv.start, end=iv.end,
                title=t.title, kind=BlockKind.TASK, locked=True,
            ))
            log(f"Pinned locked {t.title} [{t.id}] at {iv.start.isoformat()}-{iv.end.isoformat()}")
    return pinned, skipped


def _locked_pieces(task: Task, constraints: Constraints, brk: timedelta) -> List[Interval]:
    """Chronological pieces ending at task.due; a short remainder rounds up to the minimum."""
    lo, hi = _duration_bounds(task, constraints)
    pieces: List[Interval] = []
    end = task.due
    left = task.remaining_minutes
    while left > 0:
        minutes = max(min(left, hi), lo)
        start = end - timedelta(minutes=minutes)
        pieces.append(Interval(start, end))
        left -= minutes
        end = start - brk
    pieces.reverse()
    return pieces


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class _Log:
    """Collects decision lines for the result and mirrors them at DEBUG."""

    def __init__(self, lines: List[str]):
        self._lines = lines

    def __call__(self, line: str) -> None:
        self._lines.append(line)
        logger.debug(line)


def _horizon_days(constraints: Constraints) -> List[date]:
    if constraints.horizon_end <= constraints.horizon_start:
        return []
    first = constraints.horizon_start.date()
    # a horizon ending exactly at midnight does not include that day
    last = (constraints.horizon_end - timedelta(microseconds=1)).date()
    return [first + timedelta(days=i) for i in range((last - first).days + 1)]


def _at_hour(day: date, hour: int, tz) -> datetime:
    return datetime.combine(day, time(0), tzinfo=tz) + timedelta(hours=hour)


def _clamp01(v: float) -> float:
    return max(0.0, min(float(v), 1.0))
