"""
Cycle Simulator — runs the timer state machine offline at full speed and
prints every phase transition, so you can check a schedule (durations,
long-break cadence, focus totals) without waiting in real time.

Usage:
    python scripts/simulate.py                      # defaults, 8 focus cycles
    python scripts/simulate.py --cycles 12 --every 3
    python scripts/simulate.py --focus 50 --short 10 --long 30
    python scripts/simulate.py --api                # also poll a running engine
"""

from __future__ import annotations

import argparse
import json
import sys
import urllib.error
import urllib.request
from datetime import date
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from focus_engine.actions.blocking import BlockingRuleSynchronizer  # noqa: E402
from focus_engine.actions.pomodoro import Phase, TimerStateMachine  # noqa: E402
from focus_engine.settings import SettingsStore  # noqa: E402
from focus_engine.stats.aggregator import StatsAggregator  # noqa: E402

API = "http://127.0.0.1:8766"


def _get(path: str) -> dict | None:
    try:
        with urllib.request.urlopen(f"{API}{path}", timeout=3) as r:
            return json.loads(r.read())
    except (urllib.error.URLError, OSError, ValueError) as e:
        print(f"  [!] Engine unreachable: {e}")
        return None


def _fmt(seconds: int) -> str:
    h, rem = divmod(seconds, 3600)
    m, s = divmod(rem, 60)
    return f"{h:d}:{m:02d}:{s:02d}"


def simulate(cycles: int, focus: int, short: int, long_: int, every: int) -> None:
    settings = SettingsStore()
    settings.update({
        "focusMinutes": focus,
        "shortBreakMinutes": short,
        "longBreakMinutes": long_,
        "cyclesBeforeLongBreak": every,
    })
    blocking = BlockingRuleSynchronizer()
    stats = StatsAggregator()
    machine = TimerStateMachine(settings, blocking, stats)

    machine.start()
    elapsed = 0
    phase = machine.state.phase
    print(f"{_fmt(0)}  start {phase.value:<10} rules={len(blocking.active_rules())}")
    while machine.state.completed_focus_cycles < cycles or machine.state.phase is not Phase.FOCUS:
        machine.tick()
        elapsed += 1
        if machine.state.phase is not phase:
            phase = machine.state.phase
            print(
                f"{_fmt(elapsed)}  -> {phase.value:<10} "
                f"cycles={machine.state.completed_focus_cycles:<3} "
                f"rules={len(blocking.active_rules())}"
            )

    today = date.today().isoformat()
    print(f"\nfocused: {_fmt(stats.history.get(today, 0))} over {_fmt(elapsed)} wall time")


def main() -> None:
    parser = argparse.ArgumentParser(description="Simulate pomodoro cycles offline")
    parser.add_argument("--cycles", type=int, default=8, help="Focus cycles to run")
    parser.add_argument("--focus", type=int, default=25)
    parser.add_argument("--short", type=int, default=5)
    parser.add_argument("--long", dest="long_", type=int, default=15)
    parser.add_argument("--every", type=int, default=4, help="Cycles before a long break")
    parser.add_argument("--api", action="store_true", help="Print the live engine state too")
    args = parser.parse_args()

    simulate(args.cycles, args.focus, args.short, args.long_, args.every)

    if args.api:
        state = _get("/timer")
        if state:
            print("\nlive engine:", json.dumps({k: v for k, v in state.items() if k != "settings"}))


if __name__ == "__main__":
    main()
