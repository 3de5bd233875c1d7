"""
/preferences — read the learned scheduler preferences, or override them.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from ...adaptive.preferences import SchedulerPreferences, SchedulerWeights
from ...api.schemas import PreferencesOut, PreferencesPatch, WeightsModel
from ...planner.models import TaskType

router = APIRouter(prefix="/preferences", tags=["preferences"])


def _get_store(request: Request):
    return request.app.state.preferences


def _to_out(p: SchedulerPreferences) -> PreferencesOut:
    return PreferencesOut(
        weights=WeightsModel(
            urgency=p.weights.urgency,
            importance=p.weights.importance,
            difficulty=p.weights.difficulty,
            size=p.weights.size,
        ),
        learned_energy_profile=dict(sorted(p.learned_energy_profile.items())),
        preferred_block_length_by_type=dict(sorted(p.preferred_block_length_by_type.items())),
        course_bias=dict(sorted(p.course_bias.items())),
    )


@router.get("", response_model=PreferencesOut)
def read_preferences(store=Depends(_get_store)):
    return _to_out(store.preferences)


@router.put("", response_model=PreferencesOut)
def write_preferences(patch: PreferencesPatch, store=Depends(_get_store)):
    """Merge an explicit override into the stored preferences and persist it."""

    def _apply(p: SchedulerPreferences) -> None:
        if patch.weights is not None:
            p.weights = SchedulerWeights(**patch.weights.model_dump())
        if patch.learned_energy_profile:
            p.learned_energy_profile.update(patch.learned_energy_profile)
        if patch.preferred_block_length_by_type:
            for key, minutes in patch.preferred_block_length_by_type.items():
                p.preferred_block_length_by_type[TaskType.parse(key).value] = minutes
        if patch.course_bias:
            p.course_bias.update(patch.course_bias)

    return _to_out(store.update(_apply))
