"""
Shared pytest fixtures and configuration.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

import studyplan.settings as settings_mod
from studyplan.api.app import create_app


@pytest.fixture(autouse=True)
def tmp_settings_file(tmp_path: Path, monkeypatch):
    """
    Redirect the settings store to a fresh temp file for each test.
    Also resets the in-memory cache so each test starts clean.
    """
    fake_file = tmp_path / "settings.json"
    monkeypatch.setattr(settings_mod, "_FILE", fake_file)
    monkeypatch.setattr(settings_mod, "_current", {})
    yield fake_file


@pytest.fixture()
def data_dir(tmp_path: Path) -> Path:
    d = tmp_path / "data"
    d.mkdir()
    return d


@pytest.fixture()
def seeded_data_dir(data_dir: Path) -> Path:
    """A data dir with one calendar (a lecture tomorrow) and two pending tasks."""
    tomorrow = (datetime.now() + timedelta(days=1)).replace(hour=10, minute=0, second=0, microsecond=0)
    calendars = [
        {
            "name": "University",
            "url": "https://example.edu/timetable.ics",
            "events": [
                {
                    "id": "lec-1",
                    "title": "Linear Algebra",
                    "start": tomorrow.isoformat(),
                    "end": (tomorrow + timedelta(hours=1)).isoformat(),
                },
            ],
        },
        {"name": "Gym", "url": "", "events": []},
    ]
    tasks = [
        {
            "id": "a1", "title": "Problem set 4", "courseId": "MATH-201",
            "due": (tomorrow + timedelta(days=3)).isoformat(),
            "estimatedMinutes": 120, "type": "problemSet", "priority": 4,
        },
        {
            "id": "a2", "title": "Essay draft", "estimatedMinutes": 90,
            "type": "writing", "isCompleted": True,
        },
    ]
    (data_dir / "calendars.json").write_text(json.dumps(calendars))
    (data_dir / "tasks.json").write_text(json.dumps(tasks))
    return data_dir


@pytest.fixture()
def app(data_dir):
    """Create a fresh app instance backed by an isolated data dir."""
    return create_app(data_dir=data_dir)


@pytest_asyncio.fixture()
async def client(app):
    """Async HTTP client wired directly to the ASGI app (no server needed)."""
    async with app.router.lifespan_context(app):
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as ac:
            yield ac
