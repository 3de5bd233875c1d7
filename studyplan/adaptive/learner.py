"""
Preference Learner — folds a batch of block feedback into SchedulerPreferences.

Three smoothed updates (exponential moving average, alpha = 0.2):
  - energy profile: per start hour, share of successful minutes among
    successful + failed minutes
  - preferred block length: per task type, mean length of successful blocks,
    clamped to [15, 240] minutes
  - course bias: += 0.05 * (failed − succeeded) blocks, no clamp

A block succeeded when completion >= 0.7 and it was kept; it failed when
completion < 0.3 or it was deleted. Anything else carries no signal.
"""

from __future__ import annotations

import math
from collections import defaultdict
from typing import Dict, Sequence

from .feedback import BlockFeedback
from .preferences import DEFAULT_BLOCK_MINUTES, DEFAULT_ENERGY, SchedulerPreferences

ALPHA = 0.2
BIAS_LEARNING_RATE = 0.05
MIN_BLOCK_MINUTES = 15
MAX_BLOCK_MINUTES = 240


def update_preferences(
    feedback: Sequence[BlockFeedback],
    preferences: SchedulerPreferences,
) -> SchedulerPreferences:
    """Mutate *preferences* in place from *feedback*; an empty batch changes nothing."""
    if not feedback:
        return preferences

    success_by_hour: Dict[int, float] = defaultdict(float)
    failure_by_hour: Dict[int, float] = defaultdict(float)
    minutes_by_type: Dict[str, float] = defaultdict(float)
    count_by_type: Dict[str, int] = defaultdict(int)
    succeeded_by_course: Dict[str, int] = defaultdict(int)
    failed_by_course: Dict[str, int] = defaultdict(int)

    for fb in feedback:
        hour = fb.start.hour
        if fb.succeeded:
            success_by_hour[hour] += fb.minutes
            minutes_by_type[fb.type.value] += fb.minutes
            count_by_type[fb.type.value] += 1
            if fb.course_id is not None:
                succeeded_by_course[fb.course_id] += 1
        elif fb.failed:
            failure_by_hour[hour] += fb.minutes
            if fb.course_id is not None:
                failed_by_course[fb.course_id] += 1

    _update_energy(preferences, success_by_hour, failure_by_hour)
    _update_block_lengths(preferences, minutes_by_type, count_by_type)
    _update_course_bias(preferences, succeeded_by_course, failed_by_course)
    return preferences


def _update_energy(prefs: SchedulerPreferences, success: Dict[int, float], failure: Dict[int, float]) -> None:
    for hour in range(24):
        old = prefs.learned_energy_profile.get(hour, DEFAULT_ENERGY)
        succ = success.get(hour, 0.0)
        fail = failure.get(hour, 0.0)
        if succ + fail <= 0:
            continue
        observed = succ / (succ + fail)
        prefs.learned_energy_profile[hour] = _clamp(_ema(observed, old), 0.0, 1.0)


def _update_block_lengths(prefs: SchedulerPreferences, minutes: Dict[str, float], counts: Dict[str, int]) -> None:
    for type_key in sorted(minutes):
        avg = max(1, _round_half_up(minutes[type_key] / counts[type_key]))
        old = prefs.preferred_block_length_by_type.get(type_key, DEFAULT_BLOCK_MINUTES)
        updated = _round_half_up(_ema(avg, old))
        prefs.preferred_block_length_by_type[type_key] = int(
            _clamp(updated, MIN_BLOCK_MINUTES, MAX_BLOCK_MINUTES)
        )


def _update_course_bias(prefs: SchedulerPreferences, succeeded: Dict[str, int], failed: Dict[str, int]) -> None:
    for course_id in sorted(set(succeeded) | set(failed)):
        delta = failed.get(course_id, 0) - succeeded.get(course_id, 0)
        prefs.course_bias[course_id] = prefs.course_bias.get(course_id, 0.0) + BIAS_LEARNING_RATE * delta


def _ema(observed: float, old: float) -> float:
    return ALPHA * observed + (1 - ALPHA) * old


def _round_half_up(v: float) -> int:
    return int(math.floor(v + 0.5))


def _clamp(v, lo, hi):
    return max(lo, min(v, hi))
