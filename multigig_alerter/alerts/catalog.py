"""Explicit list of the alerts the bot runs."""
from __future__ import annotations

import logging
from functools import partial

from ..cadence import DEFAULT_DAILY_HOUR, DEFAULT_TIMEZONE
from ..registry import AlertRegistry
from . import (
    chaos_example,
    daily_winners,
    packet_loss,
    sentinel,
    speed_change,
    webhook_test,
    worst_latency,
)
from .base import AlertContext, MilestoneAlert
from .cumulative_data import CumulativeDataAlert
from .site_milestones import SiteDownloadMilestonesAlert, SiteUploadMilestonesAlert
from .time_wasted import TimeWastedAlert, TimeWastedChaosAlert

logger = logging.getLogger(__name__)


def _register_stateful(registry: AlertRegistry, alert: MilestoneAlert) -> None:
    registry.register(
        alert.name, alert.schedule, alert.query, alert.condition, alert.message
    )


def build_registry(
    ctx: AlertContext,
    *,
    daily_hour: int = DEFAULT_DAILY_HOUR,
    timezone: str = DEFAULT_TIMEZONE,
) -> AlertRegistry:
    registry = AlertRegistry(daily_hour=daily_hour, timezone=timezone)
    rng = ctx.rng

    registry.register(
        packet_loss.NAME,
        packet_loss.SCHEDULE,
        packet_loss.QUERY,
        packet_loss.condition,
        packet_loss.message,
    )
    registry.register(
        worst_latency.NAME,
        worst_latency.SCHEDULE,
        worst_latency.QUERY,
        worst_latency.condition,
        worst_latency.message,
    )
    registry.register(
        daily_winners.NAME,
        daily_winners.SCHEDULE,
        daily_winners.QUERY,
        daily_winners.condition,
        partial(daily_winners.message, rng=rng),
    )
    registry.register(
        speed_change.NAME,
        speed_change.SCHEDULE,
        speed_change.QUERY,
        speed_change.condition,
        partial(speed_change.message, rng=rng),
    )
    _register_stateful(registry, CumulativeDataAlert(ctx))
    _register_stateful(registry, SiteDownloadMilestonesAlert(ctx))
    _register_stateful(registry, SiteUploadMilestonesAlert(ctx))
    _register_stateful(registry, TimeWastedAlert(ctx))
    if ctx.test_mode:
        _register_stateful(registry, TimeWastedChaosAlert(ctx))
        registry.register(
            chaos_example.NAME,
            chaos_example.SCHEDULE,
            chaos_example.QUERY,
            chaos_example.condition,
            partial(chaos_example.message, rng=rng),
        )
    else:
        logger.debug("Skipping chaos demonstration alerts outside test mode")
    registry.register(
        sentinel.NAME,
        sentinel.SCHEDULE,
        sentinel.QUERY,
        sentinel.condition,
        partial(sentinel.message, rng=rng),
    )
    tester = webhook_test.WebhookTestAlert(ctx)
    registry.register(
        webhook_test.NAME,
        webhook_test.SCHEDULE,
        webhook_test.QUERY,
        tester.condition,
        tester.message,
    )

    logger.info("Registered %d alerts", len(registry))
    return registry
