"""
Adaptation Scheduler — decides when the learner runs.

Safe to call on every app foreground / request: it is a no-op unless there
is pending feedback and either force=True or the cooldown has elapsed since
the last pass. A pass is read feedback → learn → save preferences → clear
feedback, executed while the feedback store is locked.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, List, Optional

from ..storage import atomic_write_json, read_json
from .feedback import BlockFeedback, FeedbackStore
from .learner import update_preferences
from .preferences import PreferencesStore, SchedulerPreferences

logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN = timedelta(hours=6)


@dataclass
class AdaptationOutcome:
    ran: bool
    reason: str
    feedback_consumed: int = 0
    last_run: Optional[datetime] = None


class AdaptationScheduler:

    def __init__(
        self,
        feedback_store: FeedbackStore,
        preferences_store: PreferencesStore,
        cooldown: timedelta = DEFAULT_COOLDOWN,
        state_path: Optional[Path] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._feedback = feedback_store
        self._preferences = preferences_store
        self.cooldown = cooldown
        self._state_path = Path(state_path) if state_path is not None else None
        self._clock = clock
        self._lock = threading.Lock()
        self._last_run: Optional[datetime] = None
        self._load_state()

    @property
    def last_run(self) -> Optional[datetime]:
        return self._last_run

    def run_if_needed(self, force: bool = False) -> AdaptationOutcome:
        with self._lock:
            if len(self._feedback) == 0:
                return AdaptationOutcome(False, "no pending feedback", last_run=self._last_run)

            now = self._clock()
            if not force and self._last_run is not None and now - self._last_run < self.cooldown:
                return AdaptationOutcome(False, "cooldown", last_run=self._last_run)

            def _learn(batch: List[BlockFeedback]) -> None:
                def _apply(prefs: SchedulerPreferences) -> None:
                    update_preferences(batch, prefs)
                self._preferences.update(_apply)

            consumed = self._feedback.drain(_learn)
            if consumed == 0:
                return AdaptationOutcome(False, "no pending feedback", last_run=self._last_run)

            self._last_run = now
            self._save_state()
            logger.info("Learner pass applied %d feedback record(s)", consumed)
            return AdaptationOutcome(True, "forced" if force else "updated", consumed, now)

    # ------------------------------------------------------------------
    # Last-run persistence
    # ------------------------------------------------------------------

    def _load_state(self) -> None:
        if self._state_path is None or not self._state_path.exists():
            return
        try:
            raw = read_json(self._state_path)
            last = raw.get("lastRun")
            self._last_run = datetime.fromisoformat(last) if last else None
        except (OSError, ValueError, TypeError, AttributeError) as exc:
            logger.warning("Ignoring unreadable adaptation state %s: %s", self._state_path, exc)
            self._last_run = None

    def _save_state(self) -> None:
        if self._state_path is None:
            return
        payload = {"lastRun": self._last_run.isoformat() if self._last_run else None}
        try:
            atomic_write_json(self._state_path, payload)
        except OSError:
            logger.exception("Failed to save adaptation state to %s", self._state_path)
