import json
import random

import pytest

from multigig_alerter import cli
from multigig_alerter.cadence import HOUR_MS, now_ms
from multigig_alerter.chaos import ChaosScheduler


def _write_state(tmp_path, executions: dict) -> None:
    (tmp_path / "chaosSchedulerState.json").write_text(
        json.dumps({"lastExecutions": executions}), encoding="utf-8"
    )


def _read_state(tmp_path) -> dict:
    return json.loads((tmp_path / "chaosSchedulerState.json").read_text(encoding="utf-8"))


def test_stats_lists_tracked_alerts(tmp_path, capsys) -> None:
    _write_state(tmp_path, {"Chaos Alert": now_ms() - 2 * HOUR_MS})
    assert cli.main(["--state-dir", str(tmp_path), "stats"]) == 0
    out = capsys.readouterr().out
    assert "Base chance: 5.0%" in out
    assert "Chaos Alert" in out
    assert "Tracked alerts: 1" in out


def test_stats_empty(tmp_path, capsys) -> None:
    cli.main(["--state-dir", str(tmp_path), "stats"])
    assert "No chaos executions recorded yet." in capsys.readouterr().out


def test_reset_single_alert(tmp_path) -> None:
    _write_state(tmp_path, {"a": 1, "b": 2})
    assert cli.main(["--state-dir", str(tmp_path), "reset", "a"]) == 0
    assert _read_state(tmp_path) == {"lastExecutions": {"b": 2}}


def test_reset_all_requires_confirmation(tmp_path, monkeypatch) -> None:
    _write_state(tmp_path, {"a": 1})
    monkeypatch.setattr("builtins.input", lambda _prompt: "no")
    assert cli.main(["--state-dir", str(tmp_path), "reset"]) == 1
    assert _read_state(tmp_path) == {"lastExecutions": {"a": 1}}

    monkeypatch.setattr("builtins.input", lambda _prompt: "yes")
    assert cli.main(["--state-dir", str(tmp_path), "reset"]) == 0
    assert _read_state(tmp_path) == {"lastExecutions": {}}


def test_reset_all_with_yes_flag(tmp_path) -> None:
    _write_state(tmp_path, {"a": 1})
    assert cli.main(["--state-dir", str(tmp_path), "reset", "--yes"]) == 0
    assert _read_state(tmp_path) == {"lastExecutions": {}}


def test_estimate_rate_close_to_expected(tmp_path) -> None:
    scheduler = ChaosScheduler(tmp_path / "c.json", rng=random.Random(7))
    expected, observed = cli.estimate_rate(scheduler, "never fired", 5000)
    assert expected == pytest.approx(0.15)
    assert abs(observed - expected) < 0.03


def test_probe_command_prints_results(tmp_path, capsys) -> None:
    assert cli.main(["--state-dir", str(tmp_path), "test", "X", "--trials", "200"]) == 0
    out = capsys.readouterr().out
    assert "No execution history" in out
    assert "Expected probability: 15.0%" in out


def test_simulate_fires_respects_check_grid(tmp_path) -> None:
    scheduler = ChaosScheduler(tmp_path / "c.json")
    fires = cli.simulate_fires(scheduler, 24, 15, rng=random.Random(3))
    assert all(minute % 15 == 0 for minute, _ in fires)
    assert all(0.05 <= chance <= 0.15 + 1e-9 for _, chance in fires)


def test_simulate_always_fire_resets_escalation(tmp_path) -> None:
    class AlwaysFire:
        def random(self) -> float:
            return 0.0

    scheduler = ChaosScheduler(tmp_path / "c.json")
    fires = cli.simulate_fires(scheduler, 1, 15, rng=AlwaysFire())
    assert [minute for minute, _ in fires] == [0, 15, 30, 45]
    assert fires[0][1] == pytest.approx(0.15)
    assert fires[1][1] == pytest.approx(0.05)
