"""
Scheduler Preferences — the durable, per-user parameters the allocator reads
and the learner tunes: ranking weights, hourly energy profile, preferred block
length per task type and per-course bias.

PreferencesStore keeps the live copy in memory and writes full snapshots to
scheduler_prefs.json. A failed write is logged and retried with the complete
snapshot on the next save; the in-memory copy stays authoritative.
"""

from __future__ import annotations

import copy
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from ..planner.models import TaskType
from ..storage import atomic_write_json, read_json

logger = logging.getLogger(__name__)

DEFAULT_BLOCK_MINUTES = 50
DEFAULT_ENERGY = 0.5


def _default_energy_profile() -> Dict[int, float]:
    return {h: (0.7 if 9 <= h <= 21 else 0.3) for h in range(24)}


def _default_block_lengths() -> Dict[str, int]:
    return {t.value: DEFAULT_BLOCK_MINUTES for t in TaskType}


@dataclass
class SchedulerWeights:
    urgency: float = 0.45
    importance: float = 0.35
    difficulty: float = 0.10
    size: float = 0.10


@dataclass
class SchedulerPreferences:
    weights: SchedulerWeights = field(default_factory=SchedulerWeights)
    learned_energy_profile: Dict[int, float] = field(default_factory=_default_energy_profile)
    preferred_block_length_by_type: Dict[str, int] = field(default_factory=_default_block_lengths)
    course_bias: Dict[str, float] = field(default_factory=dict)

    def preferred_block_length(self, task_type: TaskType | str) -> int:
        key = task_type.value if isinstance(task_type, TaskType) else str(task_type)
        return self.preferred_block_length_by_type.get(key, DEFAULT_BLOCK_MINUTES)

    def bias_for(self, course_id: Optional[str]) -> float:
        if course_id is None:
            return 0.0
        return self.course_bias.get(course_id, 0.0)

    def copy(self) -> "SchedulerPreferences":
        return copy.deepcopy(self)

    # ------------------------------------------------------------------
    # JSON
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "weights": {
                "urgency": self.weights.urgency,
                "importance": self.weights.importance,
                "difficulty": self.weights.difficulty,
                "size": self.weights.size,
            },
            "learnedEnergyProfile": {
                str(h): v for h, v in sorted(self.learned_energy_profile.items())
            },
            "preferredBlockLengthByType": dict(sorted(self.preferred_block_length_by_type.items())),
            "courseBias": dict(sorted(self.course_bias.items())),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SchedulerPreferences":
        """Missing sections fall back to defaults; hour keys may be ints or strings."""
        prefs = cls()
        w = data.get("weights") or {}
        prefs.weights = SchedulerWeights(
            urgency=float(w.get("urgency", prefs.weights.urgency)),
            importance=float(w.get("importance", prefs.weights.importance)),
            difficulty=float(w.get("difficulty", prefs.weights.difficulty)),
            size=float(w.get("size", prefs.weights.size)),
        )
        if "learnedEnergyProfile" in data:
            prefs.learned_energy_profile = {
                int(h): float(v) for h, v in data["learnedEnergyProfile"].items()
            }
        if "preferredBlockLengthByType" in data:
            prefs.preferred_block_length_by_type = {
                str(k): int(v) for k, v in data["preferredBlockLengthByType"].items()
            }
        if "courseBias" in data:
            prefs.course_bias = {str(k): float(v) for k, v in data["courseBias"].items()}
        return prefs


class PreferencesStore:
    """
    Thread-safe holder of one user's SchedulerPreferences, persisted as JSON.

    Readers get deep copies; writers go through `replace` or `update`.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path is not None else None
        self._lock = threading.RLock()
        self._prefs = SchedulerPreferences()
        self.load()

    @property
    def preferences(self) -> SchedulerPreferences:
        with self._lock:
            return self._prefs.copy()

    def replace(self, prefs: SchedulerPreferences, persist: bool = True) -> bool:
        with self._lock:
            self._prefs = prefs.copy()
            return self.save() if persist else True

    def update(self, fn: Callable[[SchedulerPreferences], None]) -> SchedulerPreferences:
        """Read-modify-write under the lock; *fn* mutates a working copy."""
        with self._lock:
            working = self._prefs.copy()
            fn(working)
            self._prefs = working
            self.save()
            return working.copy()

    def load(self) -> None:
        if self.path is None or not self.path.exists():
            return
        try:
            prefs = SchedulerPreferences.from_dict(read_json(self.path))
        except (OSError, ValueError, TypeError, AttributeError) as exc:
            logger.warning("Failed to load preferences from %s (%s); using defaults", self.path, exc)
            prefs = SchedulerPreferences()
        with self._lock:
            self._prefs = prefs

    def save(self) -> bool:
        """Write the full snapshot. Returns False (and logs) on I/O failure."""
        if self.path is None:
            return True
        with self._lock:
            payload = self._prefs.to_dict()
        try:
            atomic_write_json(self.path, payload)
        except OSError:
            logger.exception("Failed to save preferences to %s", self.path)
            return False
        return True
