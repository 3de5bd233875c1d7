"""
Block Feedback — what the student did with a scheduled block, and the
append-only store that holds it until the next learner pass.

The store never deduplicates: reporting the same outcome twice records it
twice. It is only emptied by clear() or by a successful drain().
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

from ..planner.models import TaskType
from ..sources.calendar import parse_datetime
from ..storage import atomic_write_json, read_json

logger = logging.getLogger(__name__)

SUCCESS_COMPLETION = 0.7
FAILURE_COMPLETION = 0.3


class FeedbackAction(str, Enum):
    KEPT = "kept"
    RESCHEDULED = "rescheduled"
    DELETED = "deleted"
    SHORTENED = "shortened"
    EXTENDED = "extended"


@dataclass(frozen=True)
class BlockFeedback:
    block_id: str
    task_id: str
    type: TaskType
    start: datetime
    end: datetime
    completion: float          # 0.0–1.0
    action: FeedbackAction
    course_id: Optional[str] = None

    @property
    def minutes(self) -> float:
        return (self.end - self.start).total_seconds() / 60.0

    @property
    def succeeded(self) -> bool:
        return self.completion >= SUCCESS_COMPLETION and self.action == FeedbackAction.KEPT

    @property
    def failed(self) -> bool:
        return self.completion < FAILURE_COMPLETION or self.action == FeedbackAction.DELETED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "blockId": self.block_id,
            "taskId": self.task_id,
            "courseId": self.course_id,
            "type": self.type.value,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "completion": self.completion,
            "action": self.action.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BlockFeedback":
        return cls(
            block_id=str(data["blockId"]),
            task_id=str(data["taskId"]),
            course_id=str(data["courseId"]) if data.get("courseId") is not None else None,
            type=TaskType.parse(data.get("type")),
            start=parse_datetime(data["start"]),
            end=parse_datetime(data["end"]),
            completion=float(data["completion"]),
            action=FeedbackAction(data["action"]),
        )


class FeedbackStore:
    """Thread-safe append-only log of BlockFeedback, mirrored to a JSON array on disk."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path is not None else None
        self._lock = threading.RLock()
        self._items: List[BlockFeedback] = []
        self.load()

    # ------------------------------------------------------------------
    # Mutators
    # ------------------------------------------------------------------

    def append(self, item: BlockFeedback) -> None:
        with self._lock:
            self._items.append(item)
            self.save()

    def append_many(self, items: Iterable[BlockFeedback]) -> int:
        with self._lock:
            batch = list(items)
            self._items.extend(batch)
            self.save()
            return len(batch)

    def clear(self) -> None:
        with self._lock:
            self._items = []
            self.save()

    def drain(self, consumer: Callable[[List[BlockFeedback]], None]) -> int:
        """
        Hand the pending batch to *consumer* and clear it, atomically with
        respect to append(). If *consumer* raises nothing is cleared.
        Returns the number of records consumed.
        """
        with self._lock:
            if not self._items:
                return 0
            batch = list(self._items)
            consumer(batch)
            self._items = []
            self.save()
            return len(batch)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def items(self) -> List[BlockFeedback]:
        with self._lock:
            return list(self._items)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> None:
        if self.path is None or not self.path.exists():
            return
        try:
            raw = read_json(self.path)
            items = [BlockFeedback.from_dict(r) for r in raw]
        except (OSError, ValueError, TypeError, KeyError) as exc:
            logger.warning("Failed to load feedback from %s (%s); starting empty", self.path, exc)
            items = []
        with self._lock:
            self._items = items

    def save(self) -> bool:
        """Write the full list. Returns False (and logs) on I/O failure."""
        if self.path is None:
            return True
        with self._lock:
            payload = [fb.to_dict() for fb in self._items]
        try:
            atomic_write_json(self.path, payload)
        except OSError:
            logger.exception("Failed to save feedback to %s", self.path)
            return False
        return True
