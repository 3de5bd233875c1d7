"""
User-tunable scheduling defaults — persisted to data/settings.json.

These are the work-hour bounds and block/break durations that the
scheduling API folds into a Constraints object. Import get_settings()
to read current values and update_settings(patch) to mutate and save.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from .config import config
from .storage import atomic_write_json, read_json

logger = logging.getLogger(__name__)

_FILE: Path = config.path("settings_file")

DEFAULTS: dict[str, Any] = {
    "day_start_hour":                 9,
    "day_end_hour":                   17,
    "default_block_minutes":          50,
    "break_minutes":                  10,
    "max_study_minutes_per_day":      360,
    "max_study_minutes_per_block":    120,
    "min_gap_between_blocks_minutes": 10,
    "adaptation_cooldown_hours":      6.0,
}

_current: dict[str, Any] = {}


def _load() -> None:
    global _current
    _current = dict(DEFAULTS)
    if not _FILE.exists():
        return
    try:
        saved = read_json(_FILE)
        for k, v in saved.items():
            if k in DEFAULTS:
                # coerce to the same type as the default
                _current[k] = type(DEFAULTS[k])(v)
    except (OSError, ValueError, TypeError, AttributeError) as exc:
        logger.warning("Ignoring unreadable settings file %s: %s", _FILE, exc)
        _current = dict(DEFAULTS)


def get_settings() -> dict[str, Any]:
    """Return a copy of the current settings dict."""
    if not _current:
        _load()
    return dict(_current)


def update_settings(patch: dict[str, Any]) -> dict[str, Any]:
    """Apply *patch* (unknown keys ignored), persist to disk, return full settings."""
    if not _current:
        _load()
    for k, v in patch.items():
        if k in DEFAULTS:
            _current[k] = type(DEFAULTS[k])(v)
    try:
        atomic_write_json(_FILE, _current)
    except OSError:
        logger.exception("Could not persist settings to %s; keeping in-memory values", _FILE)
    return dict(_current)


# Eagerly load on import
_load()
