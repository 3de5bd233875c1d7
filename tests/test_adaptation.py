"""
Tests for the adaptation trigger: cooldown, force, and last-run persistence.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from studyplan.adaptive.adaptation import AdaptationScheduler
from studyplan.adaptive.feedback import BlockFeedback, FeedbackAction, FeedbackStore
from studyplan.adaptive.preferences import PreferencesStore
from studyplan.planner.models import TaskType


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kw) -> None:
        self.now += timedelta(**kw)


def _fb(hour: int = 9) -> BlockFeedback:
    start = datetime(2025, 3, 3, hour)
    return BlockFeedback(
        block_id=f"b{hour}",
        task_id="t",
        course_id="CHEM-101",
        type=TaskType.READING,
        start=start,
        end=start + timedelta(minutes=50),
        completion=1.0,
        action=FeedbackAction.KEPT,
    )


@pytest.fixture()
def clock():
    return FakeClock(datetime(2025, 3, 4, 12, 0))


@pytest.fixture()
def stores(tmp_path: Path):
    return FeedbackStore(tmp_path / "fb.json"), PreferencesStore(tmp_path / "prefs.json")


@pytest.fixture()
def scheduler(stores, clock, tmp_path: Path):
    feedback, prefs = stores
    return AdaptationScheduler(feedback, prefs, state_path=tmp_path / "state.json", clock=clock)


class TestRunIfNeeded:
    def test_no_feedback_is_a_no_op(self, scheduler):
        outcome = scheduler.run_if_needed()
        assert not outcome.ran
        assert outcome.reason == "no pending feedback"
        assert scheduler.last_run is None

    def test_first_run_learns_and_clears(self, scheduler, stores, clock):
        feedback, prefs = stores
        feedback.append(_fb(9))
        outcome = scheduler.run_if_needed()
        assert outcome.ran
        assert outcome.reason == "updated"
        assert outcome.feedback_consumed == 1
        assert outcome.last_run == clock.now
        assert len(feedback) == 0
        assert prefs.preferences.learned_energy_profile[9] == pytest.approx(0.76)
        assert prefs.preferences.course_bias["CHEM-101"] == pytest.approx(-0.05)

    def test_cooldown_blocks_second_run(self, scheduler, stores, clock):
        feedback, _ = stores
        feedback.append(_fb(9))
        scheduler.run_if_needed()
        clock.advance(hours=5, minutes=59)
        feedback.append(_fb(10))
        outcome = scheduler.run_if_needed()
        assert not outcome.ran
        assert outcome.reason == "cooldown"
        assert len(feedback) == 1

    def test_runs_again_after_cooldown(self, scheduler, stores, clock):
        feedback, _ = stores
        feedback.append(_fb(9))
        scheduler.run_if_needed()
        clock.advance(hours=6)
        feedback.append(_fb(10))
        assert scheduler.run_if_needed().ran

    def test_force_ignores_cooldown(self, scheduler, stores, clock):
        feedback, _ = stores
        feedback.append(_fb(9))
        scheduler.run_if_needed()
        clock.advance(minutes=1)
        feedback.append(_fb(10))
        outcome = scheduler.run_if_needed(force=True)
        assert outcome.ran
        assert outcome.reason == "forced"

    def test_force_without_feedback_still_no_op(self, scheduler):
        assert not scheduler.run_if_needed(force=True).ran

    def test_redundant_calls_are_harmless(self, scheduler, stores):
        feedback, prefs = stores
        feedback.append(_fb(9))
        scheduler.run_if_needed()
        snapshot = prefs.preferences
        for _ in range(3):
            scheduler.run_if_needed(force=True)
        assert prefs.preferences == snapshot

    def test_learner_failure_keeps_feedback(self, scheduler, stores, monkeypatch):
        import studyplan.adaptive.adaptation as adaptation_mod

        def broken(batch, prefs):
            raise RuntimeError("bad batch")

        feedback, _ = stores
        feedback.append(_fb(9))
        monkeypatch.setattr(adaptation_mod, "update_preferences", broken)
        with pytest.raises(RuntimeError):
            scheduler.run_if_needed()
        assert len(feedback) == 1
        assert scheduler.last_run is None


class TestLastRunPersistence:
    def test_last_run_written_and_reloaded(self, stores, clock, tmp_path: Path):
        feedback, prefs = stores
        state = tmp_path / "state.json"
        first = AdaptationScheduler(feedback, prefs, state_path=state, clock=clock)
        feedback.append(_fb(9))
        first.run_if_needed()
        assert json.loads(state.read_text()) == {"lastRun": clock.now.isoformat()}

        second = AdaptationScheduler(feedback, prefs, state_path=state, clock=clock)
        assert second.last_run == clock.now
        feedback.append(_fb(10))
        assert second.run_if_needed().reason == "cooldown"

    def test_unreadable_state_is_ignored(self, stores, clock, tmp_path: Path):
        feedback, prefs = stores
        state = tmp_path / "state.json"
        state.write_text("garbage")
        scheduler = AdaptationScheduler(feedback, prefs, state_path=state, clock=clock)
        assert scheduler.last_run is None
