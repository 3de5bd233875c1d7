"""
FastAPI application — local study-plan scheduling API.
Runs on http://127.0.0.1:8765 by default.

Stores and collaborators (preferences, feedback, adaptation trigger, calendar
source, task repository) live on app.state so that each call to create_app()
produces a fully independent instance with no shared module-level globals.
This makes test isolation straightforward.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from ..adaptive.adaptation import AdaptationScheduler
from ..adaptive.feedback import FeedbackStore
from ..adaptive.preferences import PreferencesStore
from ..config import config
from ..logging_setup import configure_logging
from ..settings import get_settings
from ..sources.calendar import JsonCalendarSource
from ..sources.tasks import JsonTaskRepository

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


# ---------------------------------------------------------------------------
# Background adaptation loop
# ---------------------------------------------------------------------------

async def _adaptation_loop(adaptation: AdaptationScheduler, interval_s: float) -> None:
    while True:
        await asyncio.sleep(interval_s)
        try:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, adaptation.run_if_needed)
        except Exception:
            logger.exception("Adaptation check failed")


# ---------------------------------------------------------------------------
# Lifespan: initialises and tears down all per-app state
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(config.log_level)
    data_dir: Path = app.state.data_dir
    data_dir.mkdir(parents=True, exist_ok=True)

    app.state.preferences = PreferencesStore(data_dir / config.prefs_file)
    app.state.feedback = FeedbackStore(data_dir / config.feedback_file)
    app.state.adaptation = AdaptationScheduler(
        app.state.feedback,
        app.state.preferences,
        cooldown=timedelta(hours=get_settings()["adaptation_cooldown_hours"]),
        state_path=data_dir / config.adaptation_state_file,
    )
    app.state.calendars = JsonCalendarSource(data_dir / config.calendars_file)
    app.state.tasks = JsonTaskRepository(data_dir / config.tasks_file)
    logger.info("Study-plan engine ready (data dir %s)", data_dir)

    adaptation_task = asyncio.create_task(
        _adaptation_loop(app.state.adaptation, config.adaptation_check_interval_s)
    )

    yield

    adaptation_task.cancel()
    try:
        await adaptation_task
    except asyncio.CancelledError:
        pass


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

def create_app(data_dir: Optional[Path] = None) -> FastAPI:
    app = FastAPI(
        title="Study Plan Engine",
        description="Calendar-aware adaptive study-block scheduler",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.data_dir = Path(data_dir) if data_dir is not None else config.data_dir

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://localhost:3000", "null"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from .routers import adaptation, feedback, preferences, schedule, settings

    app.include_router(schedule.router)
    app.include_router(feedback.router)
    app.include_router(adaptation.router)
    app.include_router(preferences.router)
    app.include_router(settings.router)

    @app.get("/health")
    def health(request: Request):
        fb = getattr(request.app.state, "feedback", None)
        return {
            "status": "ok",
            "version": VERSION,
            "pending_feedback": len(fb) if fb is not None else 0,
        }

    return app


app = create_app()
