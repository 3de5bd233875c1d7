"""
Convenience launcher — starts the study-plan engine and, optionally, seeds it
with synthetic block feedback once it is up.

Usage:
    python start.py              # engine only
    python start.py --simulate   # engine + one synthetic feedback round
"""

from __future__ import annotations

import argparse
import subprocess
import sys
import time


def start_engine() -> subprocess.Popen:
    return subprocess.Popen(
        [sys.executable, "-m", "studyplan.main"],
        stdout=sys.stdout,
        stderr=sys.stderr,
    )


def run_simulation() -> int:
    return subprocess.call([sys.executable, "scripts/simulate.py", "--rounds", "1"])


def main() -> None:
    parser = argparse.ArgumentParser(description="Start the study-plan engine")
    parser.add_argument("--simulate", action="store_true",
                        help="Post one round of synthetic feedback after startup")
    args = parser.parse_args()

    print("Starting study-plan engine…")
    engine_proc = start_engine()

    if args.simulate:
        time.sleep(1.5)  # give engine a moment to bind
        print("Posting synthetic feedback…")
        run_simulation()

    print("\nEngine → http://127.0.0.1:8765")
    print("Schedule → http://127.0.0.1:8765/schedule?days=7")
    print("Press Ctrl+C to stop.\n")

    try:
        engine_proc.wait()
    except KeyboardInterrupt:
        print("\nShutting down…")
        engine_proc.terminate()
        engine_proc.wait()


if __name__ == "__main__":
    main()
