"""
Feedback Simulator — drives the study-plan engine with synthetic block
outcomes so you can watch the learned energy profile, block lengths and
course bias move without a real client.

Usage:
    # Make sure the engine is running first:
    #   python start.py
    # Then in a separate terminal:
    python scripts/simulate.py                        # default: cycle all scenarios
    python scripts/simulate.py --scenario night_owl   # specific scenario
    python scripts/simulate.py --rounds 5             # more learner passes
"""

from __future__ import annotations

import argparse
import json
import random
import urllib.error
import urllib.request
import uuid
from datetime import datetime, timedelta
from typing import Iterator

API = "http://127.0.0.1:8765"


# ---------------------------------------------------------------------------
# Low-level HTTP helper
# ---------------------------------------------------------------------------

def _request(method: str, path: str, body: list | dict | None = None) -> dict | None:
    data = json.dumps(body).encode() if body is not None else None
    req = urllib.request.Request(
        f"{API}{path}",
        data=data,
        headers={"Content-Type": "application/json"},
        method=method,
    )
    try:
        with urllib.request.urlopen(req, timeout=3) as r:
            return json.loads(r.read())
    except (urllib.error.URLError, OSError, ValueError) as e:
        print(f"  [!] {method} {path} failed: {e}")
        return None


def _fb(
    day: datetime,
    hour: int,
    minutes: int,
    completion: float,
    action: str = "kept",
    task_type: str = "reading",
    course_id: str | None = None,
) -> dict:
    start = day.replace(hour=hour, minute=0, second=0, microsecond=0)
    return {
        "block_id": str(uuid.uuid4()),
        "task_id": f"sim-{task_type}",
        "course_id": course_id,
        "type": task_type,
        "start": start.isoformat(),
        "end": (start + timedelta(minutes=minutes)).isoformat(),
        "completion": completion,
        "action": action,
    }


# ---------------------------------------------------------------------------
# Scenario generators: each yields (description, feedback batch)
# ---------------------------------------------------------------------------

def scenario_morning_person(day: datetime) -> Iterator[tuple[str, list[dict]]]:
    """Mornings go well, evenings get skipped."""
    yield (
        "Morning blocks completed",
        [_fb(day, h, 50, random.uniform(0.8, 1.0)) for h in (8, 9, 10)],
    )
    yield (
        "Evening blocks deleted",
        [_fb(day, h, 50, 0.0, action="deleted") for h in (19, 20, 21)],
    )


def scenario_night_owl(day: datetime) -> Iterator[tuple[str, list[dict]]]:
    """The mirror image: late blocks land, early ones do not."""
    yield (
        "Morning blocks abandoned",
        [_fb(day, h, 50, random.uniform(0.0, 0.2)) for h in (8, 9)],
    )
    yield (
        "Late blocks completed",
        [_fb(day, h, 60, random.uniform(0.8, 1.0)) for h in (21, 22)],
    )


def scenario_long_writing(day: datetime) -> Iterator[tuple[str, list[dict]]]:
    """Writing sessions stretch well beyond the default block length."""
    yield (
        "Extended writing blocks",
        [
            _fb(day, h, 100, 1.0, action="extended", task_type="writing")
            for h in (10, 13, 15)
        ],
    )


def scenario_struggling_course(day: datetime) -> Iterator[tuple[str, list[dict]]]:
    """One course keeps failing, another keeps succeeding."""
    yield (
        "CHEM-101 blocks failing",
        [
            _fb(day, h, 45, 0.1, task_type="problemSolving", course_id="CHEM-101")
            for h in (11, 14, 16)
        ],
    )
    yield (
        "HIST-210 blocks succeeding",
        [_fb(day, h, 45, 0.9, course_id="HIST-210") for h in (11, 14)],
    )


SCENARIOS = {
    "morning_person": scenario_morning_person,
    "night_owl": scenario_night_owl,
    "long_writing": scenario_long_writing,
    "struggling_course": scenario_struggling_course,
}

CYCLE = ["morning_person", "long_writing", "struggling_course"]


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------

def _print_preferences() -> None:
    prefs = _request("GET", "/preferences")
    if not prefs:
        return
    print("    energy by hour:")
    for hour, weight in sorted(prefs["learned_energy_profile"].items(), key=lambda kv: int(kv[0])):
        bar = "█" * int(weight * 20) + "░" * (20 - int(weight * 20))
        print(f"      {int(hour):02d}:00 [{bar}] {weight:.2f}")
    lengths = prefs["preferred_block_length_by_type"]
    if lengths:
        print("    block lengths: " + ", ".join(f"{k}={v}m" for k, v in sorted(lengths.items())))
    bias = prefs["course_bias"]
    if bias:
        print("    course bias:   " + ", ".join(f"{k}={v:+.2f}" for k, v in sorted(bias.items())))


def run_scenario(name: str, rounds: int) -> None:
    print(f"\n{'─' * 60}")
    print(f"  SCENARIO: {name.upper().replace('_', ' ')}")
    print(f"{'─' * 60}")

    day = datetime.now() - timedelta(days=1)
    for r in range(rounds):
        for description, batch in SCENARIOS[name](day - timedelta(days=r)):
            res = _request("POST", "/feedback/batch", batch)
            status = "✓" if res else "✗"
            print(f"  {status} round {r + 1}: {description} ({len(batch)} block(s))")
        outcome = _request("POST", "/adaptation/run?force=true")
        if outcome:
            print(f"    learner: {outcome['reason']} ({outcome['feedback_consumed']} record(s))")
    _print_preferences()


def main() -> None:
    parser = argparse.ArgumentParser(description="Study-plan feedback simulator")
    parser.add_argument(
        "--scenario",
        choices=list(SCENARIOS.keys()) + ["cycle"],
        default="cycle",
        help="Which scenario to run (default: cycle through several)",
    )
    parser.add_argument("--rounds", type=int, default=3, help="Learner passes per scenario")
    args = parser.parse_args()

    health = _request("GET", "/health")
    if not health:
        print(f"[!] Cannot reach engine at {API}")
        print("    Start it first: python start.py")
        return
    print(f"[✓] Engine connected — v{health.get('version', '?')}")

    sequence = CYCLE if args.scenario == "cycle" else [args.scenario]
    for name in sequence:
        run_scenario(name, args.rounds)

    print("\n[✓] Simulation complete.")


if __name__ == "__main__":
    main()
