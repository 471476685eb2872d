"""Inspect and manage chaos scheduling state.

Usage:
    multigig-chaos stats                 # configuration and per-alert state
    multigig-chaos reset [NAME] [--yes]  # reset one alert, or all after confirming
    multigig-chaos test NAME             # estimate the current fire rate
    multigig-chaos simulate              # a day of checks for a fresh alert
"""

from __future__ import annotations

import argparse
import math
import os
import random
from pathlib import Path

from .cadence import HOUR_MS, MINUTE_MS, now_ms
from .chaos import ChaosScheduler
from .config import CHAOS_STATE_FILE, default_state_dir
from .logger import setup_logging


def _header(title: str) -> None:
    print()
    print("=" * 60)
    print(f"  {title}")
    print("=" * 60)
    print()


def print_stats(scheduler: ChaosScheduler) -> None:
    _header("CHAOS SCHEDULER STATISTICS")
    print("Configuration:")
    print(f"  Base chance: {scheduler.base_chance * 100:.1f}%")
    print(f"  Max multiplier: {scheduler.max_multiplier:g}x")
    print(
        f"  Max multiplier after: {scheduler.max_multiplier_window_ms / HOUR_MS:g} hours"
    )
    print()

    stats = scheduler.stats()
    print(f"Tracked alerts: {len(stats)}")
    if not stats:
        print("  No chaos executions recorded yet.")
        return
    print()
    print("Recent executions (most recent first):")
    for entry in stats:
        print(f"  {entry.name}")
        print(f"    Last execution: {entry.hours_ago:.2f} hours ago")
        print(f"    Current chance: {entry.chance * 100:.1f}%")


def reset_state(scheduler: ChaosScheduler, name: str | None, assume_yes: bool) -> int:
    if name:
        scheduler.reset(name)
        print(f'✅ Reset chaos state for "{name}"')
        return 0

    _header("RESETTING ALL CHAOS STATE")
    if not assume_yes:
        print("⚠️  This will reset all chaos scheduling state!")
        answer = input('Type "yes" to confirm: ')
        if answer.strip().lower() != "yes":
            print("❌ Reset cancelled.")
            return 1
    scheduler.reset()
    print("✅ All chaos scheduling state has been reset!")
    return 0


def estimate_rate(scheduler: ChaosScheduler, name: str, trials: int) -> tuple[float, float]:
    """Return (expected, observed) fire probability for ``name`` right now."""
    now = now_ms()
    expected = scheduler.chance(name, now)
    fired = sum(1 for _ in range(trials) if scheduler.should_fire(name, now))
    return expected, fired / trials if trials else 0.0


def probe_alert(scheduler: ChaosScheduler, name: str, trials: int) -> int:
    _header(f"TESTING CHAOS PROBABILITY: {name.upper()}")
    elapsed = scheduler.elapsed_ms(name)
    if math.isinf(elapsed):
        print(f'⚠️  No execution history found for "{name}"')
    else:
        print(f"  Last execution: {elapsed / HOUR_MS:.2f} hours ago")

    expected, observed = estimate_rate(scheduler, name, trials)
    diff = abs(observed - expected) * 100
    print()
    print(f"Test results ({trials} trials):")
    print(f"  Expected probability: {expected * 100:.1f}%")
    print(f"  Observed probability: {observed * 100:.1f}%")
    print(f"  Difference: {diff:.1f}%")
    if diff < 2:
        print("✅ Chaos scheduling is working correctly.")
    else:
        print("⚠️  Large difference detected. This could be normal statistical variance.")
    return 0


def simulate_fires(
    scheduler: ChaosScheduler,
    hours: float,
    check_minutes: float,
    rng: random.Random | None = None,
) -> list[tuple[float, float]]:
    """Simulate checks for an alert that starts out never having fired.

    Returns ``(minute, chance)`` for each simulated fire.
    """
    rng = rng or random.Random()
    check_ms = check_minutes * MINUTE_MS
    total_checks = int(hours * HOUR_MS // check_ms) if check_ms > 0 else 0
    last_fire: float | None = None
    fires: list[tuple[float, float]] = []
    for check in range(total_checks):
        t = check * check_ms
        elapsed = math.inf if last_fire is None else t - last_fire
        chance = scheduler.chance_for_elapsed(elapsed)
        if rng.random() < chance:
            fires.append((t / MINUTE_MS, chance))
            last_fire = t
    return fires


def simulate(scheduler: ChaosScheduler, hours: float, check_minutes: float) -> int:
    _header("CHAOS SCHEDULING SIMULATION")
    print(f"Simulating {hours:g} hours of checks every {check_minutes:g} minutes...")
    print()
    fires = simulate_fires(scheduler, hours, check_minutes)
    for minute, chance in fires:
        h, m = divmod(int(minute), 60)
        print(f"  🔥 Fired at {h:02d}:{m:02d} (chance {chance * 100:.1f}%)")
    print()
    print(f"Total executions: {len(fires)}")
    if fires and hours > 0:
        print(f"Average per day: {len(fires) * 24 / hours:.1f}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="multigig-chaos", description="Chaos scheduler management"
    )
    parser.add_argument(
        "--state-dir",
        default=os.environ.get("STATE_DIR") or default_state_dir(),
        help="Directory holding chaosSchedulerState.json",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("stats", help="Show chaos scheduling statistics")

    reset = sub.add_parser("reset", help="Reset chaos state")
    reset.add_argument("name", nargs="?", help="Alert to reset (default: all)")
    reset.add_argument("--yes", action="store_true", help="Skip confirmation")

    test = sub.add_parser("test", help="Estimate the fire probability for an alert")
    test.add_argument("name")
    test.add_argument("--trials", type=int, default=1000)

    sim = sub.add_parser("simulate", help="Simulate chaos scheduling over time")
    sim.add_argument("--hours", type=float, default=24.0)
    sim.add_argument("--check-minutes", type=float, default=15.0)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()
    scheduler = ChaosScheduler(Path(args.state_dir) / CHAOS_STATE_FILE)

    if args.command == "stats":
        print_stats(scheduler)
        return 0
    if args.command == "reset":
        return reset_state(scheduler, args.name, args.yes)
    if args.command == "test":
        return probe_alert(scheduler, args.name, args.trials)
    return simulate(scheduler, args.hours, args.check_minutes)


if __name__ == "__main__":
    raise SystemExit(main())
