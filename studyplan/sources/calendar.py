"""
Calendar Event Source — supplies fixed, immovable commitments.

JsonCalendarSource reads calendars.json:

    [
      {
        "name": "University",
        "url":  "https://example.edu/timetable.ics",
        "events": [
          {"id": "lec-1", "title": "Linear Algebra", "start": "2025-12-01T10:00", "end": "2025-12-01T11:00"}
        ]
      }
    ]

Bad data never fails a scheduling run: a malformed event is dropped (so its
day just has fewer fixed events), a malformed calendar entry is dropped, and
an unreadable file means no calendars at all. Each case is logged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol

from ..planner.models import EventSource, FixedEvent
from ..storage import read_json

logger = logging.getLogger(__name__)


@dataclass
class CalendarInfo:
    name: str
    url: str = ""


class CalendarSource(Protocol):
    def list_calendars(self) -> List[CalendarInfo]: ...

    def events_between(
        self,
        start: datetime,
        end: datetime,
        calendars: Optional[Iterable[str]] = None,
    ) -> List[FixedEvent]: ...


def parse_datetime(raw: Any) -> datetime:
    """ISO-8601 → naive local datetime (aware values are converted to local time)."""
    if isinstance(raw, datetime):
        dt = raw
    else:
        text = str(raw)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
    if dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return dt


def parse_event(payload: Dict[str, Any], calendar: str, index: int = 0) -> Optional[FixedEvent]:
    """
    Parse one raw event. Returns None if the event is malformed
    (missing fields, unparseable dates, or end not after start).
    """
    try:
        return FixedEvent(
            id=str(payload.get("id") or f"{calendar}:{index}"),
            title=str(payload.get("title") or "Busy"),
            start=parse_datetime(payload["start"]),
            end=parse_datetime(payload["end"]),
            is_locked=True,
            source=EventSource.CALENDAR,
            calendar=calendar,
        )
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        logger.warning("Dropping malformed event #%d in calendar %r: %s", index, calendar, exc)
        return None


class JsonCalendarSource:

    def __init__(self, path: Path):
        self.path = Path(path)

    def list_calendars(self) -> List[CalendarInfo]:
        return [CalendarInfo(name=c["name"], url=c.get("url", "")) for c in self._calendars()]

    def events_between(
        self,
        start: datetime,
        end: datetime,
        calendars: Optional[Iterable[str]] = None,
    ) -> List[FixedEvent]:
        wanted = set(calendars) if calendars is not None else None
        events: List[FixedEvent] = []
        for cal in self._calendars():
            if wanted is not None and cal["name"] not in wanted:
                continue
            raw_events = cal.get("events") or []
            if not isinstance(raw_events, list):
                logger.warning("Calendar %r has a non-list 'events' field; ignoring it", cal["name"])
                continue
            for i, raw in enumerate(raw_events):
                if not isinstance(raw, dict):
                    logger.warning("Dropping non-object event #%d in calendar %r", i, cal["name"])
                    continue
                ev = parse_event(raw, cal["name"], i)
                if ev is not None and ev.start < end and ev.end > start:
                    events.append(ev)
        events.sort(key=lambda e: (e.start, e.end, e.id))
        return events

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _calendars(self) -> List[Dict[str, Any]]:
        if not self.path.exists():
            return []
        try:
            raw = read_json(self.path)
        except (OSError, ValueError) as exc:
            logger.warning("Calendar file %s is unreadable: %s", self.path, exc)
            return []
        if not isinstance(raw, list):
            logger.warning("Calendar file %s must hold a list of calendars", self.path)
            return []
        out = []
        for entry in raw:
            if isinstance(entry, dict) and isinstance(entry.get("name"), str):
                out.append(entry)
            else:
                logger.warning("Dropping calendar entry without a name: %r", entry)
        return out
