"""
Scheduling domain types — tasks, fixed calendar events, constraints and the
blocks/result the allocator emits.

Tasks and fixed events are owned by external collaborators and are treated
as read-only inputs here.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from enum import Enum
from typing import Dict, List, Optional


class TaskType(str, Enum):
    READING = "reading"
    PROBLEM_SOLVING = "problemSolving"
    WRITING = "writing"
    PROJECT = "project"
    EXAM = "exam"
    QUIZ = "quiz"
    REVIEWING = "reviewing"
    PRACTICE_HOMEWORK = "practiceHomework"

    @classmethod
    def parse(cls, raw: "str | TaskType | None") -> "TaskType":
        """Lenient decoding: known aliases map onto a type, anything else is homework."""
        if isinstance(raw, TaskType):
            return raw
        if raw is None:
            return cls.PRACTICE_HOMEWORK
        raw = str(raw)
        alias = _TASK_TYPE_ALIASES.get(raw)
        if alias is not None:
            return alias
        try:
            return cls(raw)
        except ValueError:
            return cls.PRACTICE_HOMEWORK


_TASK_TYPE_ALIASES = {
    "homework": TaskType.PRACTICE_HOMEWORK,
    "problemSet": TaskType.PRACTICE_HOMEWORK,
    "examPrep": TaskType.EXAM,
    "meeting": TaskType.PROJECT,
    "review": TaskType.REVIEWING,
}


class EventSource(str, Enum):
    CALENDAR = "calendar"
    MANUAL = "manual"


class BlockKind(str, Enum):
    TASK = "task"
    FIXED = "fixed"


@dataclass
class Task:
    id: str
    title: str
    estimated_minutes: int
    course_id: Optional[str] = None
    due: Optional[datetime] = None
    min_block_minutes: int = 25
    max_block_minutes: int = 90
    difficulty: float = 0.5        # 0-1
    importance: float = 0.5        # 0-1
    type: TaskType = TaskType.PRACTICE_HOMEWORK
    locked: bool = False
    is_completed: bool = False
    priority: Optional[int] = None  # 1 (low) → 5 (high); derived from importance when unset
    logged_minutes: int = 0         # time already logged against the task

    @property
    def effective_priority(self) -> int:
        if self.priority is not None:
            return max(1, min(int(self.priority), 5))
        return 1 + int(round(max(0.0, min(self.importance, 1.0)) * 4))

    @property
    def remaining_minutes(self) -> int:
        return max(self.estimated_minutes - self.logged_minutes, 0)

    def is_valid(self) -> bool:
        return (
            self.min_block_minutes > 0
            and self.min_block_minutes <= self.max_block_minutes
            and self.estimated_minutes > 0
        )

    def is_past_due(self, now: datetime) -> bool:
        return self.due is not None and self.due < now


@dataclass
class FixedEvent:
    id: str
    title: str
    start: datetime
    end: datetime
    is_locked: bool = True
    source: EventSource = EventSource.CALENDAR
    calendar: Optional[str] = None

    def __post_init__(self):
        if not self.start < self.end:
            raise ValueError(f"fixed event {self.id!r} must start before it ends")


@dataclass(frozen=True)
class Interval:
    start: datetime
    end: datetime

    @property
    def minutes(self) -> float:
        return (self.end - self.start).total_seconds() / 60.0

    def overlaps(self, other: "Interval") -> bool:
        return self.start < other.end and other.start < self.end


# Free slots are plain intervals; the alias documents intent at call sites.
FreeSlot = Interval


@dataclass
class Constraints:
    horizon_start: datetime
    horizon_end: datetime
    day_start_hour: int = 9
    day_end_hour: int = 17
    max_study_minutes_per_day: int = 360
    max_study_minutes_per_block: int = 120
    min_gap_between_blocks_minutes: int = 10
    do_not_schedule_windows: List[Interval] = field(default_factory=list)
    energy_profile: Dict[int, float] = field(default_factory=dict)  # request-scoped override
    default_block_minutes: int = 50
    break_minutes: int = 10

    @classmethod
    def from_settings(
        cls,
        start: datetime,
        days: int,
        settings: dict,
        **overrides,
    ) -> "Constraints":
        """Build constraints for *days* calendar days, from *start* to midnight after the last one."""
        end = datetime.combine(start.date() + timedelta(days=days), time(0), tzinfo=start.tzinfo)
        values = dict(
            horizon_start=start,
            horizon_end=end,
            day_start_hour=settings["day_start_hour"],
            day_end_hour=settings["day_end_hour"],
            max_study_minutes_per_day=settings["max_study_minutes_per_day"],
            max_study_minutes_per_block=settings["max_study_minutes_per_block"],
            min_gap_between_blocks_minutes=settings["min_gap_between_blocks_minutes"],
            default_block_minutes=settings["default_block_minutes"],
            break_minutes=settings["break_minutes"],
        )
        values.update(overrides)
        return cls(**values)


@dataclass
class ScheduledBlock:
    id: str
    task_id: Optional[str]
    start: datetime
    end: datetime
    title: str = ""
    kind: BlockKind = BlockKind.TASK
    locked: bool = False

    @property
    def minutes(self) -> float:
        return (self.end - self.start).total_seconds() / 60.0

    @property
    def interval(self) -> Interval:
        return Interval(self.start, self.end)


@dataclass
class TaskOverflow:
    task_id: str
    title: str
    remaining_minutes: int


@dataclass
class ScheduleResult:
    blocks: List[ScheduledBlock] = field(default_factory=list)
    log: List[str] = field(default_factory=list)
    overflow: List[TaskOverflow] = field(default_factory=list)
    remaining_minutes: Dict[str, int] = field(default_factory=dict)

    @property
    def task_blocks(self) -> List[ScheduledBlock]:
        return [b for b in self.blocks if b.kind == BlockKind.TASK]

    @property
    def fixed_blocks(self) -> List[ScheduledBlock]:
        return [b for b in self.blocks if b.kind == BlockKind.FIXED]


_BLOCK_NAMESPACE = uuid.UUID("6f1c1d3e-52a4-4d63-9a57-1f0b3f6f2a11")


def block_id(owner_id: str, start: datetime) -> str:
    """Stable id for a block so identical runs produce identical output."""
    return str(uuid.uuid5(_BLOCK_NAMESPACE, f"{owner_id}@{start.isoformat()}"))
