import logging

import pytest

from multigig_alerter.logger import SINK_LOGGER_NAME, SystemChannelHandler
from multigig_alerter.notifier import Channel

from conftest import DummyNotifier


def _record(level: int, msg: str, name: str = "multigig_alerter.engine") -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, msg, None, None)


class Clock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_forward_filter() -> None:
    handler = SystemChannelHandler(DummyNotifier())
    assert handler.should_forward(_record(logging.ERROR, "anything"))
    assert handler.should_forward(_record(logging.WARNING, "Read-only file system"))
    assert handler.should_forward(_record(logging.WARNING, "Permission denied on /app"))
    assert not handler.should_forward(_record(logging.WARNING, "slow query"))
    assert not handler.should_forward(_record(logging.ERROR, "loop", SINK_LOGGER_NAME))


def test_format_truncates_and_titles() -> None:
    handler = SystemChannelHandler(DummyNotifier())
    text, username = handler.format_alert(_record(logging.ERROR, "x" * 2000))
    assert text.startswith("🚨 **SYSTEM ERROR**")
    assert "... (truncated)" in text
    assert username == "System Error"

    text, username = handler.format_alert(_record(logging.WARNING, "configuration missing"))
    assert text.startswith("⚠️ **SYSTEM WARNING**")
    assert username == "System Warning"


@pytest.mark.asyncio
async def test_rate_limited_with_single_notice() -> None:
    notifier = DummyNotifier()
    clock = Clock()
    handler = SystemChannelHandler(notifier, max_per_window=5, window_s=60, clock=clock)

    for i in range(8):
        handler.emit(_record(logging.ERROR, f"error {i}"))
    await handler.drain()

    system = notifier.texts(Channel.SYSTEM)
    assert len(system) == 6
    assert sum("RATE LIMIT" in t for t in system) == 1

    clock.now += 61
    handler.emit(_record(logging.ERROR, "after window"))
    await handler.drain()
    assert "after window" in notifier.texts(Channel.SYSTEM)[-1]


@pytest.mark.asyncio
async def test_delivery_failure_does_not_raise() -> None:
    handler = SystemChannelHandler(DummyNotifier(fail_on=Channel.SYSTEM))
    handler.emit(_record(logging.ERROR, "boom"))
    await handler.drain()


def test_emit_without_loop_is_dropped() -> None:
    notifier = DummyNotifier()
    handler = SystemChannelHandler(notifier)
    handler.emit(_record(logging.ERROR, "no loop"))
    assert notifier.sent == []


@pytest.mark.asyncio
async def test_attached_to_logger_forwards_errors() -> None:
    notifier = DummyNotifier()
    handler = SystemChannelHandler(notifier)
    log = logging.getLogger("multigig_alerter.test_sink")
    log.addHandler(handler)
    try:
        log.error("Query failed for %s", "Packet Loss")
        log.info("not forwarded")
        await handler.drain()
    finally:
        log.removeHandler(handler)

    assert len(notifier.sent) == 1
    assert "Query failed for Packet Loss" in notifier.sent[0][0]
