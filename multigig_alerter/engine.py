"""The shared polling loop that drives every alert unit."""
from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from typing import Any, Callable, Protocol

from .cadence import Chaos, is_due, next_run_description, now_ms, run_marker
from .chaos import ChaosScheduler
from .models.alert_unit import AlertUnit
from .models.tick_report import TickReport
from .notifier import Channel, Notifier
from .registry import AlertRegistry
from .state_store import load_json, save_json

logger = logging.getLogger(__name__)


class QueryExecutor(Protocol):
    async def execute(self, query: str, label: str = ...) -> list[dict[str, Any]]: ...


class AlertEngine:
    """Evaluates due units once per tick and persists when each last ran.

    One unit failing (query, condition, message or delivery) never stops the
    others, and its run marker still advances so it is not retried every tick.
    """

    def __init__(
        self,
        registry: AlertRegistry,
        executor: QueryExecutor,
        notifier: Notifier,
        *,
        run_state_path: str | Path,
        chaos: ChaosScheduler,
        clock: Callable[[], int] = now_ms,
        summary_interval_s: float = 3600.0,
    ) -> None:
        self.registry = registry
        self.executor = executor
        self.notifier = notifier
        self.run_state_path = Path(run_state_path)
        self.chaos = chaos
        self._clock = clock
        self.summary_interval_s = summary_interval_s
        self.run_state: dict[str, int | str] = {}

    def load(self) -> None:
        state = load_json(self.run_state_path, {})
        self.run_state = dict(state)
        logger.info("Loaded last run times for %d alerts", len(self.run_state))

    def save(self) -> bool:
        return save_json(self.run_state_path, self.run_state)

    def is_due(self, unit: AlertUnit, now: int | None = None) -> bool:
        current = self._clock() if now is None else now
        return is_due(unit.cadence, self.run_state.get(unit.name), current)

    def _marker(self, unit: AlertUnit, now: int) -> int | str:
        try:
            return run_marker(unit.cadence, now)
        except Exception as exc:
            logger.error("Could not compute run marker for %s: %s", unit.name, exc)
            return now

    async def _notify_system(self, title: str, body: str) -> None:
        try:
            await self.notifier.deliver(
                f"🚨 **{title}**\n\n{body}", Channel.SYSTEM, username="System Alert"
            )
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning("Could not send %r system notification: %s", title, exc)

    async def _query(self, unit: AlertUnit) -> list[dict[str, Any]] | None:
        try:
            return await self.executor.execute(unit.query, label=unit.name)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("Query failed for %s: %s", unit.name, exc)
            await self._notify_system(
                "Database Error",
                f"Failed to execute query for **{unit.name}**\n\n**Error**: {exc}",
            )
            return None

    async def _evaluate(self, unit: AlertUnit, now: int, report: TickReport) -> None:
        rows = await self._query(unit)
        if rows is None:
            report.failed.append(unit.name)

        if isinstance(unit.cadence, Chaos) and not self.chaos.should_fire(
            unit.name, now
        ):
            logger.debug("Chaos gate held back %s", unit.name)
            return

        if not unit.condition(rows):
            logger.debug("Condition not met for %s", unit.name)
            return

        text = unit.message(rows)
        try:
            await self.notifier.deliver(text, Channel.PRIMARY)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("Failed to send alert %s: %s", unit.name, exc)
            if unit.name not in report.failed:
                report.failed.append(unit.name)
            await self._notify_system(
                "System Alert",
                f"Failed to deliver alert **{unit.name}**\n\n**Error**: {exc}",
            )
        else:
            report.notified.append(unit.name)
            logger.info("Alert sent: %s", unit.name)

        if isinstance(unit.cadence, Chaos):
            self.chaos.record_fire(unit.name, now)

    async def run_tick(self, now: int | None = None) -> TickReport:
        current = self._clock() if now is None else now
        report = TickReport()

        for unit in self.registry:
            try:
                if not self.is_due(unit, current):
                    report.skipped.append(unit.name)
                    logger.debug(
                        "Skipping %s; next run %s",
                        unit.name,
                        next_run_description(
                            unit.cadence, self.run_state.get(unit.name)
                        ),
                    )
                    continue
                report.ran.append(unit.name)
                logger.debug("Running alert: %s", unit.name)
                await self._evaluate(unit, current, report)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.exception("Error processing alert %s", unit.name)
                if unit.name not in report.failed:
                    report.failed.append(unit.name)
                await self._notify_system(
                    "Critical Alert Error",
                    f"Alert **{unit.name}** failed unexpectedly\n\n**Error**: {exc}",
                )
            # skipped units never reach here; everything else advances
            self.run_state[unit.name] = self._marker(unit, current)

        if report.any_ran and not self.save():
            logger.error("Run state not persisted; alerts may repeat after a restart")
        return report

    def log_query_summary(self) -> None:
        summary = getattr(self.executor, "log_performance_summary", None)
        if summary is not None:
            summary()

    async def run_forever(self, interval_s: float, stop_event: asyncio.Event) -> None:
        logger.info("Alert loop started (tick every %.0fs)", interval_s)
        last_summary = time.monotonic()
        while not stop_event.is_set():
            start = time.monotonic()
            try:
                report = await self.run_tick()
                if report.any_ran:
                    logger.info(
                        "Tick: %d ran, %d notified, %d failed",
                        len(report.ran),
                        len(report.notified),
                        len(report.failed),
                    )
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Alert loop tick failed")
            if time.monotonic() - last_summary >= self.summary_interval_s:
                self.log_query_summary()
                last_summary = time.monotonic()
            elapsed = time.monotonic() - start
            try:
                await asyncio.wait_for(
                    stop_event.wait(), timeout=max(0.0, interval_s - elapsed)
                )
            except asyncio.TimeoutError:
                pass
        logger.info("Alert loop stopped")
