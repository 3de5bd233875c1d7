"""
Assignment / Task Repository — supplies pending work items.

JsonTaskRepository reads tasks.json, a list of objects with camelCase keys:

    {"id": "a1", "title": "Problem set 4", "courseId": "c-math", "due": "2025-12-03T23:59",
     "estimatedMinutes": 120, "minBlockMinutes": 25, "maxBlockMinutes": 90,
     "difficulty": 0.6, "importance": 0.8, "type": "problemSet", "locked": false,
     "isCompleted": false, "priority": 4, "loggedMinutes": 30}

Rows that cannot be parsed are skipped with a warning.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

from ..planner.models import Task, TaskType
from ..storage import read_json
from .calendar import parse_datetime

logger = logging.getLogger(__name__)


class TaskRepository(Protocol):
    def pending_tasks(self) -> List[Task]: ...


def parse_task(payload: Dict[str, Any]) -> Optional[Task]:
    try:
        due = payload.get("due")
        priority = payload.get("priority")
        return Task(
            id=str(payload["id"]),
            title=str(payload.get("title") or payload["id"]),
            course_id=str(payload["courseId"]) if payload.get("courseId") is not None else None,
            due=parse_datetime(due) if due else None,
            estimated_minutes=int(payload["estimatedMinutes"]),
            min_block_minutes=int(payload.get("minBlockMinutes", 25)),
            max_block_minutes=int(payload.get("maxBlockMinutes", 90)),
            difficulty=float(payload.get("difficulty", 0.5)),
            importance=float(payload.get("importance", 0.5)),
            type=TaskType.parse(payload.get("type")),
            locked=bool(payload.get("locked", False)),
            is_completed=bool(payload.get("isCompleted", False)),
            priority=int(priority) if priority is not None else None,
            logged_minutes=int(payload.get("loggedMinutes", 0)),
        )
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        logger.warning("Dropping malformed task %r: %s", payload.get("id") if isinstance(payload, dict) else payload, exc)
        return None


class JsonTaskRepository:

    def __init__(self, path: Path):
        self.path = Path(path)

    def pending_tasks(self) -> List[Task]:
        if not self.path.exists():
            return []
        try:
            raw = read_json(self.path)
        except (OSError, ValueError) as exc:
            logger.warning("Task file %s is unreadable: %s", self.path, exc)
            return []
        if not isinstance(raw, list):
            logger.warning("Task file %s must hold a list of tasks", self.path)
            return []

        tasks = []
        for row in raw:
            if not isinstance(row, dict):
                logger.warning("Dropping non-object task row: %r", row)
                continue
            task = parse_task(row)
            if task is not None and not task.is_completed:
                tasks.append(task)
        return tasks
