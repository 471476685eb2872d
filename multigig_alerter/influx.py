"""InfluxDB 1.x (InfluxQL over HTTP) query executor."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

import requests

from .models.query_stats import QueryStats, QuerySummary

__all__ = ["InfluxQueryExecutor", "QueryError", "parse_influx_response"]

logger = logging.getLogger(__name__)

SLOW_QUERY_MS = 2000.0


class QueryError(RuntimeError):
    """Raised when the database cannot answer a query."""


def parse_influx_response(data: object) -> list[dict[str, Any]]:
    """Flatten an InfluxDB ``/query`` response into one dict per row.

    Null values are dropped, series tags are merged into each row and the
    measurement name is stored under ``_measurement``.
    """
    if not isinstance(data, dict):
        return []
    rows: list[dict[str, Any]] = []
    for result in data.get("results") or []:
        if result.get("error"):
            raise QueryError(f"InfluxDB query error: {result['error']}")
        for series in result.get("series") or []:
            columns = series.get("columns") or []
            tags = series.get("tags") or {}
            name = series.get("name")
            for values in series.get("values") or []:
                row: dict[str, Any] = {
                    column: value
                    for column, value in zip(columns, values)
                    if value is not None
                }
                row.update(tags)
                if name:
                    row["_measurement"] = name
                rows.append(row)
    return rows


class InfluxQueryExecutor:
    def __init__(
        self,
        host: str,
        database: str,
        *,
        port: int = 8086,
        protocol: str = "http",
        username: str | None = None,
        password: str | None = None,
        token: str | None = None,
        timeout_s: float = 30.0,
    ) -> None:
        if not host or not database:
            raise ValueError("InfluxDB configuration needs host and database")
        self.base_url = f"{protocol}://{host}:{port}"
        self.database = database
        self.timeout_s = timeout_s
        self.stats: dict[str, QueryStats] = {}

        self._auth: dict[str, str] = {}
        if token:
            logger.info("Using token authentication for InfluxDB")
            self._auth = {"u": "token", "p": token}
        elif username and password:
            logger.info("Using username/password authentication for InfluxDB")
            self._auth = {"u": username, "p": password}
        else:
            logger.info("Using no authentication for InfluxDB")

    def stats_for(self, label: str) -> QueryStats:
        return self.stats.setdefault(label, QueryStats())

    def performance_summary(self) -> QuerySummary:
        tracked = {label: s for label, s in self.stats.items() if s.count}
        queries = sum(s.count for s in tracked.values())
        total_ms = sum(s.total_ms for s in tracked.values())
        slow = sorted(
            (
                (label, s.average_ms, s.max_ms)
                for label, s in tracked.items()
                if s.average_ms > SLOW_QUERY_MS
            ),
            key=lambda entry: entry[1],
            reverse=True,
        )
        return QuerySummary(
            alerts=len(tracked),
            queries=queries,
            failures=sum(s.failures for s in tracked.values()),
            average_ms=total_ms / queries if queries else 0.0,
            slow=slow,
        )

    def log_performance_summary(self) -> None:
        summary = self.performance_summary()
        if not summary.alerts:
            return
        logger.info(
            "Query performance: %d alerts, %d queries, %d failed, average %.0fms",
            summary.alerts,
            summary.queries,
            summary.failures,
            summary.average_ms,
        )
        for label, average_ms, max_ms in summary.slow:
            logger.info(
                "Slow query %r: average %.0fms, max %.0fms", label, average_ms, max_ms
            )

    def query_sync(self, query: str) -> list[dict[str, Any]]:
        params = {"db": self.database, "q": query, "epoch": "ms", **self._auth}
        logger.debug("Executing InfluxDB query: %s", query)
        try:
            resp = requests.get(
                f"{self.base_url}/query",
                params=params,
                headers={"Accept": "application/json"},
                timeout=self.timeout_s,
            )
        except requests.exceptions.RequestException as exc:
            raise QueryError(f"InfluxDB connection failed: {exc}") from exc

        if not resp.ok:
            detail = (resp.text or "").strip()[:300]
            msg = f"InfluxDB query failed: HTTP {resp.status_code}"
            raise QueryError(f"{msg} - {detail}" if detail else msg)

        try:
            data = resp.json()
        except ValueError as exc:
            raise QueryError(f"InfluxDB returned invalid JSON: {exc}") from exc
        return parse_influx_response(data)

    async def execute(self, query: str, label: str = "unknown") -> list[dict[str, Any]]:
        stats = self.stats_for(label)
        start = time.monotonic()
        try:
            rows = await asyncio.to_thread(self.query_sync, query)
        except Exception:
            stats.failures += 1
            raise
        finally:
            elapsed_ms = (time.monotonic() - start) * 1000
            stats.count += 1
            stats.total_ms += elapsed_ms
            stats.max_ms = max(stats.max_ms, elapsed_ms)
            stats.last_run_ts = time.time()

        stats.last_result_count = len(rows)
        if elapsed_ms > SLOW_QUERY_MS:
            logger.warning(
                "Slow query detected for %r: %.0fms (%d results)",
                label,
                elapsed_ms,
                len(rows),
            )
        logger.debug("Query for %r returned %d rows", label, len(rows))
        return rows

    async def test_connection(self) -> bool:
        try:
            await self.execute(
                'SELECT COUNT(*) FROM "speedtest_result" LIMIT 1', "connection test"
            )
        except QueryError as exc:
            logger.error("InfluxDB connection test failed: %s", exc)
            return False
        return True
