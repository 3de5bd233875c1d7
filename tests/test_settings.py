"""
Tests for the settings store (studyplan/settings.py) and the /settings API endpoints.
The settings file is redirected per test by the autouse fixture in conftest.py.
"""

from __future__ import annotations

import json
from datetime import datetime

import pytest

import studyplan.settings as settings_mod
from studyplan.planner.models import Constraints
from studyplan.settings import DEFAULTS, get_settings, update_settings


# ── Unit tests: settings store ────────────────────────────────────────────────

class TestSettingsDefaults:
    def test_get_settings_returns_all_defaults(self):
        s = get_settings()
        for key, val in DEFAULTS.items():
            assert s[key] == val

    def test_get_settings_returns_copy(self):
        s1 = get_settings()
        s1["break_minutes"] = 9999
        assert get_settings()["break_minutes"] == DEFAULTS["break_minutes"]

    def test_defaults_contain_expected_keys(self):
        expected = {
            "day_start_hour",
            "day_end_hour",
            "default_block_minutes",
            "break_minutes",
            "max_study_minutes_per_day",
            "max_study_minutes_per_block",
            "min_gap_between_blocks_minutes",
            "adaptation_cooldown_hours",
        }
        assert set(DEFAULTS.keys()) == expected


class TestUpdateSettings:
    def test_update_single_key(self):
        update_settings({"break_minutes": 15})
        assert get_settings()["break_minutes"] == 15

    def test_update_persists_to_disk(self, tmp_settings_file):
        update_settings({"day_end_hour": 20})
        saved = json.loads(tmp_settings_file.read_text())
        assert saved["day_end_hour"] == 20

    def test_unknown_keys_are_ignored(self):
        update_settings({"unknown_key": "surprise", "break_minutes": 5})
        s = get_settings()
        assert "unknown_key" not in s
        assert s["break_minutes"] == 5

    def test_update_coerces_type(self):
        update_settings({"default_block_minutes": 45.9})
        assert isinstance(get_settings()["default_block_minutes"], int)
        assert get_settings()["default_block_minutes"] == 45

    def test_partial_update_preserves_other_keys(self):
        update_settings({"adaptation_cooldown_hours": 2.5})
        s = get_settings()
        assert s["adaptation_cooldown_hours"] == 2.5
        assert s["day_start_hour"] == DEFAULTS["day_start_hour"]

    def test_load_from_existing_file(self, tmp_settings_file):
        tmp_settings_file.write_text(json.dumps({"day_start_hour": 7}))
        settings_mod._current.clear()
        s = get_settings()
        assert s["day_start_hour"] == 7
        assert s["day_end_hour"] == DEFAULTS["day_end_hour"]

    def test_malformed_file_falls_back_to_defaults(self, tmp_settings_file):
        tmp_settings_file.write_text("not valid json{{")
        settings_mod._current.clear()
        assert get_settings() == DEFAULTS

    def test_write_failure_keeps_in_memory_value(self, monkeypatch):
        def boom(path, payload):
            raise OSError("read-only")
        monkeypatch.setattr(settings_mod, "atomic_write_json", boom)
        assert update_settings({"break_minutes": 20})["break_minutes"] == 20
        assert get_settings()["break_minutes"] == 20


class TestConstraintsFromSettings:
    def test_horizon_runs_to_midnight_after_last_day(self):
        start = datetime(2025, 3, 3, 14, 37)
        c = Constraints.from_settings(start, 3, get_settings())
        assert c.horizon_start == start
        assert c.horizon_end == datetime(2025, 3, 6)
        assert (c.day_start_hour, c.day_end_hour) == (9, 17)
        assert (c.default_block_minutes, c.break_minutes) == (50, 10)

    def test_overrides_win(self):
        c = Constraints.from_settings(datetime(2025, 3, 3), 1, get_settings(), day_end_hour=22)
        assert c.day_end_hour == 22


# ── API integration tests: GET /settings ─────────────────────────────────────

class TestSettingsGetEndpoint:
    async def test_get_settings_response_shape(self, client):
        r = await client.get("/settings")
        assert r.status_code == 200
        body = r.json()
        assert body["settings"] == DEFAULTS
        assert body["defaults"] == DEFAULTS


# ── API integration tests: PUT /settings ─────────────────────────────────────

class TestSettingsPutEndpoint:
    async def test_put_updates_work_hours(self, client):
        r = await client.put("/settings", json={"day_start_hour": 8, "day_end_hour": 20})
        assert r.status_code == 200
        s = r.json()["settings"]
        assert (s["day_start_hour"], s["day_end_hour"]) == (8, 20)

    async def test_put_partial_patch_preserves_other_keys(self, client):
        await client.put("/settings", json={"break_minutes": 5})
        r = await client.put("/settings", json={"default_block_minutes": 40})
        s = r.json()["settings"]
        assert s["break_minutes"] == 5
        assert s["default_block_minutes"] == 40

    async def test_put_empty_body_returns_200(self, client):
        r = await client.put("/settings", json={})
        assert r.status_code == 200

    @pytest.mark.parametrize("patch", [
        {"day_start_hour": -1},
        {"day_end_hour": 25},
        {"default_block_minutes": 10},
        {"break_minutes": -5},
        {"max_study_minutes_per_day": 2000},
        {"adaptation_cooldown_hours": -1},
    ])
    async def test_out_of_range_returns_422(self, client, patch):
        r = await client.put("/settings", json=patch)
        assert r.status_code == 422

    async def test_inverted_work_hours_returns_422(self, client):
        r = await client.put("/settings", json={"day_start_hour": 18})
        assert r.status_code == 422
        assert get_settings()["day_start_hour"] == DEFAULTS["day_start_hour"]

    async def test_get_reflects_put(self, client):
        await client.put("/settings", json={"min_gap_between_blocks_minutes": 30})
        r = await client.get("/settings")
        assert r.json()["settings"]["min_gap_between_blocks_minutes"] == 30

    async def test_schedule_uses_settings(self, data_dir, client):
        (data_dir / "tasks.json").write_text(json.dumps([
            {"id": "t", "title": "Read", "estimatedMinutes": 600, "maxBlockMinutes": 90},
        ]))
        await client.put("/settings", json={"default_block_minutes": 30, "max_study_minutes_per_block": 30})
        r = await client.get("/schedule", params={"days": 3})
        tasks = [b for b in r.json()["time_blocks"] if b["kind"] == "task"]
        assert tasks
        for b in tasks:
            minutes = (datetime.fromisoformat(b["end"]) - datetime.fromisoformat(b["start"])).seconds / 60
            assert minutes <= 30
