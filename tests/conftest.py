"""Shared test fixtures and dummy classes."""

from __future__ import annotations

from typing import Any

from multigig_alerter.notifier import Channel, NotifyError


class DummyResponse:
    """Dummy HTTP response for testing."""

    def __init__(self, data: object, status: int = 200, text: str = "") -> None:
        self._data = data
        self.status_code = status
        self.text = text or str(data)
        self.ok = 200 <= status < 300

    def json(self) -> object:
        if isinstance(self._data, Exception):
            raise self._data
        return self._data


class DummyNotifier:
    """Records deliveries; optionally fails on one channel."""

    def __init__(self, fail_on: Channel | None = None) -> None:
        self.sent: list[tuple[str, Channel, str | None]] = []
        self.fail_on = fail_on

    async def deliver(
        self,
        text: str,
        channel: Channel = Channel.PRIMARY,
        *,
        username: str | None = None,
    ) -> None:
        if channel is self.fail_on:
            raise NotifyError(f"{channel.value} channel down")
        self.sent.append((text, channel, username))

    def texts(self, channel: Channel = Channel.PRIMARY) -> list[str]:
        return [text for text, ch, _ in self.sent if ch is channel]


class DummyExecutor:
    """Returns canned rows per query, or raises the configured exception."""

    def __init__(self, results: dict[str, Any] | None = None) -> None:
        self.results = results or {}
        self.calls: list[tuple[str, str]] = []

    async def execute(self, query: str, label: str = "unknown") -> list[dict]:
        self.calls.append((query, label))
        result = self.results.get(query, [])
        if isinstance(result, Exception):
            raise result
        return result


class SequenceRandom:
    """Stand-in for random.Random that replays fixed draws."""

    def __init__(self, values: list[float]) -> None:
        self.values = list(values)
        self.index = 0

    def random(self) -> float:
        value = self.values[self.index % len(self.values)]
        self.index += 1
        return value

    def choice(self, seq):
        return seq[0]


class FakeClock:
    def __init__(self, now: int = 1_700_000_000_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms
