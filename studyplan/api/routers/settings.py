"""
/settings — read and update the scheduling defaults (work hours, block and
break lengths, study caps, adaptation cooldown).
"""

from __future__ import annotations

from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from ...settings import DEFAULTS, get_settings, update_settings

router = APIRouter(prefix="/settings", tags=["settings"])


class SettingsPatch(BaseModel):
    day_start_hour:                 Optional[int]   = Field(None, ge=0,  le=23)
    day_end_hour:                   Optional[int]   = Field(None, ge=1,  le=24)
    default_block_minutes:          Optional[int]   = Field(None, ge=15, le=240)
    break_minutes:                  Optional[int]   = Field(None, ge=0,  le=120)
    max_study_minutes_per_day:      Optional[int]   = Field(None, ge=0,  le=1440)
    max_study_minutes_per_block:    Optional[int]   = Field(None, ge=0,  le=480)
    min_gap_between_blocks_minutes: Optional[int]   = Field(None, ge=0,  le=240)
    adaptation_cooldown_hours:      Optional[float] = Field(None, ge=0.0, le=168.0)


@router.get("")
def read_settings():
    """Return current settings with their defaults for reference."""
    return {"settings": get_settings(), "defaults": DEFAULTS}


@router.put("")
def write_settings(patch: SettingsPatch, request: Request):
    """Apply a partial update. Persists to data/settings.json; a new cooldown applies immediately."""
    data = {k: v for k, v in patch.model_dump().items() if v is not None}
    merged = {**get_settings(), **data}
    if merged["day_start_hour"] >= merged["day_end_hour"]:
        raise HTTPException(status_code=422, detail="day_start_hour must be before day_end_hour")
    settings = update_settings(data)
    adaptation = getattr(request.app.state, "adaptation", None)
    if adaptation is not None:
        adaptation.cooldown = timedelta(hours=settings["adaptation_cooldown_hours"])
    return {"settings": settings}
