"""
Central configuration for the study-plan engine.
All values can be overridden via environment variables or a local config.json.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path

_ROOT = Path(__file__).parent.parent
_CONFIG_FILE = _ROOT / "config.json"


@dataclass
class Config:
    # API
    api_host: str = "127.0.0.1"
    api_port: int = 8765

    # Logging
    log_level: str = "INFO"

    # Adaptation
    adaptation_check_interval_s: float = 900.0   # how often the learner trigger is polled

    # Storage
    data_dir: Path = field(default_factory=lambda: _ROOT / "data")
    prefs_file: str = "scheduler_prefs.json"
    feedback_file: str = "scheduler_feedback.json"
    adaptation_state_file: str = "adaptation_state.json"
    settings_file: str = "settings.json"

    # External collaborators (JSON-file backed)
    calendars_file: str = "calendars.json"
    tasks_file: str = "tasks.json"

    def __post_init__(self):
        self.data_dir = Path(self.data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def path(self, name: str) -> Path:
        """Resolve one of the *_file names against data_dir."""
        return self.data_dir / getattr(self, name)

    @classmethod
    def load(cls) -> "Config":
        cfg = cls()
        if _CONFIG_FILE.exists():
            overrides = json.loads(_CONFIG_FILE.read_text())
            for k, v in overrides.items():
                if hasattr(cfg, k):
                    setattr(cfg, k, v)
        # environment variable overrides (STUDYPLAN_*)
        for k in cfg.__dataclass_fields__:  # type: ignore[attr-defined]
            env_key = f"STUDYPLAN_{k.upper()}"
            if env_key in os.environ:
                setattr(cfg, k, type(getattr(cfg, k))(os.environ[env_key]))
        cfg.data_dir = Path(cfg.data_dir)
        cfg.data_dir.mkdir(parents=True, exist_ok=True)
        return cfg


# Module-level singleton
config = Config.load()
