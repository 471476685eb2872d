import asyncio
import json
from datetime import datetime, timezone

import pytest

from multigig_alerter.cadence import DAY_MS, HOUR_MS, MINUTE_MS, DailyAtHour
from multigig_alerter.chaos import ChaosScheduler
from multigig_alerter.engine import AlertEngine
from multigig_alerter.influx import QueryError
from multigig_alerter.models.alert_unit import AlertUnit
from multigig_alerter.notifier import Channel
from multigig_alerter.registry import AlertRegistry

from conftest import DummyExecutor, DummyNotifier, FakeClock, SequenceRandom


def _always(rows) -> bool:
    return True


def _has_rows(rows) -> bool:
    return bool(rows)


def _engine(tmp_path, registry, executor=None, notifier=None, draws=(0.99,)):
    clock = FakeClock()
    chaos = ChaosScheduler(
        tmp_path / "chaos.json", rng=SequenceRandom(list(draws)), clock=clock
    )
    engine = AlertEngine(
        registry,
        executor or DummyExecutor(),
        notifier or DummyNotifier(),
        run_state_path=tmp_path / "lastRuns.json",
        chaos=chaos,
        clock=clock,
    )
    engine.load()
    return engine, clock


@pytest.mark.asyncio
async def test_failing_unit_does_not_block_siblings(tmp_path) -> None:
    def explode(rows) -> bool:
        raise RuntimeError("condition bug")

    registry = AlertRegistry()
    registry.register("broken", "1m", "q-broken", explode, lambda rows: "never")
    registry.register("healthy", "1m", "q-ok", _always, lambda rows: "hello")
    notifier = DummyNotifier()
    engine, clock = _engine(tmp_path, registry, notifier=notifier)

    report = await engine.run_tick()

    assert notifier.texts(Channel.PRIMARY) == ["hello"]
    assert report.ran == ["broken", "healthy"]
    assert report.notified == ["healthy"]
    assert report.failed == ["broken"]
    assert any("Critical Alert Error" in t for t in notifier.texts(Channel.SYSTEM))
    assert engine.run_state == {"broken": clock.now, "healthy": clock.now}


@pytest.mark.asyncio
async def test_query_error_gives_none_rows_and_system_notice(tmp_path) -> None:
    seen = []

    def condition(rows) -> bool:
        seen.append(rows)
        return False

    registry = AlertRegistry()
    registry.register("db", "1m", "q", condition, lambda rows: "x")
    notifier = DummyNotifier()
    executor = DummyExecutor({"q": QueryError("connection refused")})
    engine, _ = _engine(tmp_path, registry, executor=executor, notifier=notifier)

    report = await engine.run_tick()

    assert seen == [None]
    assert report.failed == ["db"]
    system = notifier.texts(Channel.SYSTEM)
    assert len(system) == 1
    assert "Database Error" in system[0]
    assert "connection refused" in system[0]


@pytest.mark.asyncio
async def test_delivery_failure_sends_system_alert_and_advances(tmp_path) -> None:
    registry = AlertRegistry()
    registry.register("a", "1m", "q", _always, lambda rows: "hi")
    notifier = DummyNotifier(fail_on=Channel.PRIMARY)
    engine, clock = _engine(tmp_path, registry, notifier=notifier)

    report = await engine.run_tick()

    assert report.notified == []
    assert report.failed == ["a"]
    assert any("System Alert" in t for t in notifier.texts(Channel.SYSTEM))
    assert engine.run_state["a"] == clock.now


@pytest.mark.asyncio
async def test_system_notice_failure_is_swallowed(tmp_path) -> None:
    registry = AlertRegistry()
    registry.register("a", "1m", "q", _always, lambda rows: "hi")
    notifier = DummyNotifier(fail_on=Channel.SYSTEM)
    executor = DummyExecutor({"q": QueryError("down")})
    engine, _ = _engine(tmp_path, registry, executor=executor, notifier=notifier)

    report = await engine.run_tick()

    assert report.notified == ["a"]


@pytest.mark.asyncio
async def test_interval_units_skip_until_due_and_persist(tmp_path) -> None:
    registry = AlertRegistry()
    registry.register("five", "5m", "q", _has_rows, lambda rows: "rows!")
    executor = DummyExecutor({"q": [{"v": 1}]})
    notifier = DummyNotifier()
    engine, clock = _engine(tmp_path, registry, executor=executor, notifier=notifier)

    first = await engine.run_tick()
    clock.advance(5 * MINUTE_MS - 1)
    second = await engine.run_tick()
    clock.advance(1)
    third = await engine.run_tick()

    assert first.notified == ["five"]
    assert second.skipped == ["five"] and not second.any_ran
    assert third.notified == ["five"]
    assert len(executor.calls) == 2
    assert executor.calls[0] == ("q", "five")
    saved = json.loads((tmp_path / "lastRuns.json").read_text(encoding="utf-8"))
    assert saved == {"five": clock.now}


@pytest.mark.asyncio
async def test_condition_false_still_advances_marker(tmp_path) -> None:
    registry = AlertRegistry()
    registry.register("quiet", "1m", "q", _has_rows, lambda rows: "x")
    notifier = DummyNotifier()
    engine, clock = _engine(tmp_path, registry, notifier=notifier)

    report = await engine.run_tick()

    assert report.ran == ["quiet"]
    assert notifier.sent == []
    assert engine.run_state["quiet"] == clock.now


@pytest.mark.asyncio
async def test_run_state_survives_restart(tmp_path) -> None:
    registry = AlertRegistry()
    registry.register("hourly", "1h", "q", _always, lambda rows: "x")
    engine, clock = _engine(tmp_path, registry)
    await engine.run_tick()

    restarted, _ = _engine(tmp_path, registry)
    assert restarted.is_due(registry.get("hourly"), clock.now + HOUR_MS - 1) is False
    assert restarted.is_due(registry.get("hourly"), clock.now + HOUR_MS) is True


@pytest.mark.asyncio
async def test_chaos_gate_blocks_and_records_only_on_fire(tmp_path) -> None:
    registry = AlertRegistry()
    registry.register("chaotic", "chaos:15m", "q", _always, lambda rows: "boo")
    notifier = DummyNotifier()
    engine, clock = _engine(
        tmp_path, registry, notifier=notifier, draws=(0.99, 0.0)
    )

    held = await engine.run_tick()
    assert held.ran == ["chaotic"] and held.notified == []
    assert engine.chaos.last_fire("chaotic") is None

    clock.advance(15 * MINUTE_MS)
    fired = await engine.run_tick()
    assert fired.notified == ["chaotic"]
    assert engine.chaos.last_fire("chaotic") == clock.now


@pytest.mark.asyncio
async def test_chaos_not_recorded_when_condition_false(tmp_path) -> None:
    registry = AlertRegistry()
    registry.register("chaotic", "chaos", "q", _has_rows, lambda rows: "boo")
    engine, _ = _engine(tmp_path, registry, draws=(0.0,))

    await engine.run_tick()

    assert engine.chaos.last_fire("chaotic") is None


@pytest.mark.asyncio
async def test_run_forever_stops_on_event(tmp_path) -> None:
    registry = AlertRegistry()
    registry.register("a", "1m", "q", _always, lambda rows: "x")
    notifier = DummyNotifier()
    engine, _ = _engine(tmp_path, registry, notifier=notifier)
    stop = asyncio.Event()

    task = asyncio.create_task(engine.run_forever(60, stop))
    await asyncio.sleep(0.05)
    stop.set()
    await asyncio.wait_for(task, timeout=1)

    assert notifier.texts() == ["x"]


@pytest.mark.asyncio
async def test_run_forever_survives_tick_failure(tmp_path) -> None:
    registry = AlertRegistry()
    engine, _ = _engine(tmp_path, registry)
    calls = 0

    async def broken_tick(now=None):
        nonlocal calls
        calls += 1
        raise RuntimeError("boom")

    engine.run_tick = broken_tick
    stop = asyncio.Event()
    task = asyncio.create_task(engine.run_forever(0.01, stop))
    await asyncio.sleep(0.1)
    stop.set()
    await asyncio.wait_for(task, timeout=1)

    assert calls >= 2


def _utc_ms(*args) -> int:
    return int(datetime(*args, tzinfo=timezone.utc).timestamp() * 1000)


@pytest.mark.asyncio
async def test_unknown_timezone_unit_does_not_stop_the_tick(tmp_path) -> None:
    registry = AlertRegistry()
    registry.add(
        AlertUnit(
            name="daily-bad-zone",
            cadence=DailyAtHour(9, "Not/A_Zone"),
            query="q-daily",
            condition=_always,
            message=lambda rows: "never",
        )
    )
    registry.register("healthy", "1m", "q-ok", _always, lambda rows: "hello")
    notifier = DummyNotifier()
    engine, clock = _engine(tmp_path, registry, notifier=notifier)

    report = await engine.run_tick()

    assert notifier.texts(Channel.PRIMARY) == ["hello"]
    assert report.failed == ["daily-bad-zone"]
    assert report.notified == ["healthy"]
    saved = json.loads((tmp_path / "lastRuns.json").read_text(encoding="utf-8"))
    assert saved == {"daily-bad-zone": clock.now, "healthy": clock.now}


@pytest.mark.asyncio
async def test_daily_unit_runs_once_per_local_day(tmp_path) -> None:
    registry = AlertRegistry(daily_hour=9, timezone="UTC")
    registry.register("daily", "daily", "q", _always, lambda rows: "winners")
    notifier = DummyNotifier()
    engine, clock = _engine(tmp_path, registry, notifier=notifier)
    clock.now = _utc_ms(2024, 3, 1, 9, 5)

    first = await engine.run_tick()
    clock.advance(30 * MINUTE_MS)
    second = await engine.run_tick()

    assert first.notified == ["daily"]
    assert second.skipped == ["daily"]
    saved = json.loads((tmp_path / "lastRuns.json").read_text(encoding="utf-8"))
    assert saved == {"daily": "2024-03-01"}

    restarted, restarted_clock = _engine(tmp_path, registry, notifier=notifier)
    restarted_clock.now = clock.now
    assert (await restarted.run_tick()).skipped == ["daily"]

    restarted_clock.now = _utc_ms(2024, 3, 1, 9, 5) + DAY_MS
    assert (await restarted.run_tick()).notified == ["daily"]
    assert notifier.texts() == ["winners", "winners"]
    assert restarted.run_state == {"daily": "2024-03-02"}


@pytest.mark.asyncio
async def test_run_forever_logs_query_summary(tmp_path) -> None:
    class SummarisingExecutor(DummyExecutor):
        summaries = 0

        def log_performance_summary(self) -> None:
            self.summaries += 1

    registry = AlertRegistry()
    executor = SummarisingExecutor()
    engine, _ = _engine(tmp_path, registry, executor=executor)
    engine.summary_interval_s = 0
    stop = asyncio.Event()

    task = asyncio.create_task(engine.run_forever(0.01, stop))
    await asyncio.sleep(0.05)
    stop.set()
    await asyncio.wait_for(task, timeout=1)

    assert executor.summaries >= 1


def test_query_summary_skipped_for_plain_executor(tmp_path) -> None:
    engine, _ = _engine(tmp_path, AlertRegistry())
    engine.log_query_summary()
