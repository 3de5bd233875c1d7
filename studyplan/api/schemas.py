"""
Pydantic schemas for the FastAPI local API.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ..adaptive.feedback import FeedbackAction
from ..sources.calendar import parse_datetime

# ── Schedule ───────────────────────────────────────────────────────────────

class TimeBlockOut(BaseModel):
    id: str
    title: str
    start: datetime
    end: datetime
    kind: str = Field(..., description="task | fixed")
    assignment_id: Optional[str] = None
    locked: bool


class FixedEventOut(BaseModel):
    title: str
    start: datetime
    end: datetime


class OverflowOut(BaseModel):
    assignment_id: str
    title: str
    remaining_minutes: int


class ScheduleOut(BaseModel):
    success: bool
    days: int
    calendars_used: List[str]
    generated_blocks: int
    time_blocks: List[TimeBlockOut]
    fixed_events: List[FixedEventOut]
    overflow: List[OverflowOut] = Field(default_factory=list)


# ── Calendars ──────────────────────────────────────────────────────────────

class CalendarOut(BaseModel):
    name: str
    url: str


class CalendarListOut(BaseModel):
    success: bool
    calendars: List[CalendarOut]


# ── Feedback ───────────────────────────────────────────────────────────────

class FeedbackIn(BaseModel):
    block_id: str
    task_id: str
    course_id: Optional[str] = None
    type: str = Field(..., description="reading | problemSolving | writing | project | exam | ...")
    start: datetime
    end: datetime
    completion: float = Field(..., ge=0.0, le=1.0)
    action: FeedbackAction

    @field_validator("start", "end")
    @classmethod
    def _local_time(cls, v: datetime) -> datetime:
        # offsets (e.g. a trailing Z) become naive local time, like calendar and task data
        return parse_datetime(v)

    @model_validator(mode="after")
    def _end_after_start(self):
        if self.end <= self.start:
            raise ValueError("end must be after start")
        return self


class FeedbackOut(BaseModel):
    block_id: str
    task_id: str
    course_id: Optional[str]
    type: str
    start: datetime
    end: datetime
    completion: float
    action: str


class FeedbackListOut(BaseModel):
    pending: int
    feedback: List[FeedbackOut]


# ── Adaptation ─────────────────────────────────────────────────────────────

class AdaptationOut(BaseModel):
    ran: bool
    reason: str
    feedback_consumed: int
    last_run: Optional[datetime] = None


# ── Preferences ────────────────────────────────────────────────────────────

class WeightsModel(BaseModel):
    urgency: float = Field(..., ge=0.0, le=1.0)
    importance: float = Field(..., ge=0.0, le=1.0)
    difficulty: float = Field(..., ge=0.0, le=1.0)
    size: float = Field(..., ge=0.0, le=1.0)


class PreferencesOut(BaseModel):
    weights: WeightsModel
    learned_energy_profile: Dict[int, float]
    preferred_block_length_by_type: Dict[str, int]
    course_bias: Dict[str, float]


class PreferencesPatch(BaseModel):
    """Explicit user override; maps are merged into the stored ones key by key."""
    weights: Optional[WeightsModel] = None
    learned_energy_profile: Optional[Dict[int, float]] = None
    preferred_block_length_by_type: Optional[Dict[str, int]] = None
    course_bias: Optional[Dict[str, float]] = None

    @field_validator("learned_energy_profile")
    @classmethod
    def _hours_and_weights(cls, v):
        if v is None:
            return v
        for hour, weight in v.items():
            if not 0 <= hour <= 23:
                raise ValueError(f"hour {hour} outside 0-23")
            if not 0.0 <= weight <= 1.0:
                raise ValueError(f"energy for hour {hour} outside 0-1")
        return v

    @field_validator("preferred_block_length_by_type")
    @classmethod
    def _block_lengths(cls, v):
        if v is None:
            return v
        for key, minutes in v.items():
            if not 15 <= minutes <= 240:
                raise ValueError(f"block length for {key!r} outside 15-240 minutes")
        return v
