"""Entrypoint for running the alert bot from the package.

This module wires up settings, the InfluxDB executor, the notifier and the
alert registry, then runs the polling loop until SIGINT/SIGTERM.
"""

from __future__ import annotations

import asyncio
import logging
import signal
from datetime import datetime

from . import config
from .alerts.base import AlertContext
from .alerts.catalog import build_registry
from .chaos import ChaosScheduler
from .engine import AlertEngine
from .influx import InfluxQueryExecutor
from .logger import SystemChannelHandler, setup_logging
from .notifier import Channel, Notifier, build_notifier
from .state_store import is_writable_dir

logger = logging.getLogger(__name__)


def build_executor(settings: config.Settings) -> InfluxQueryExecutor:
    return InfluxQueryExecutor(
        settings.INFLUXDB_HOST,
        settings.INFLUXDB_DATABASE,
        port=settings.INFLUXDB_PORT,
        protocol=settings.INFLUXDB_PROTOCOL,
        username=settings.INFLUXDB_USERNAME,
        password=settings.INFLUXDB_PASSWORD,
        token=settings.INFLUXDB_TOKEN,
        timeout_s=settings.INFLUXDB_TIMEOUT_S,
    )


def build_engine(
    settings: config.Settings,
    executor: InfluxQueryExecutor,
    notifier: Notifier,
) -> AlertEngine:
    state_dir = settings.STATE_DIR
    ctx = AlertContext(
        state_dir=state_dir,
        test_mode=settings.TEST_MODE,
        test_webhook=settings.TEST_WEBHOOK,
    )
    registry = build_registry(
        ctx, daily_hour=settings.DAILY_ALERT_HOUR, timezone=settings.TIMEZONE
    )
    engine = AlertEngine(
        registry,
        executor,
        notifier,
        run_state_path=state_dir / config.RUN_STATE_FILE,
        chaos=ChaosScheduler(state_dir / config.CHAOS_STATE_FILE),
    )
    engine.load()
    return engine


async def send_status(notifier: Notifier, text: str) -> None:
    """Best-effort status message to the system channel."""
    try:
        await notifier.deliver(text, Channel.SYSTEM, username="System Status")
    except Exception as e:
        logger.warning("Failed to send status message: %s", e)


def startup_message(settings: config.Settings, engine: AlertEngine) -> str:
    lines = [
        "🟢 **MultiGig Bot Started Successfully**",
        "",
        f"**Time**: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        f"**Alerts Loaded**: {len(engine.registry)}",
        f"**Tick Interval**: {settings.TICK_INTERVAL_S:.0f}s",
        f"**State Directory**: {settings.STATE_DIR}",
    ]
    if settings.TEST_MODE:
        lines.append("🧪 **Test mode**: primary messages go to the alert channel")
    return "\n".join(lines)


async def serve(settings: config.Settings) -> None:
    notifier = build_notifier(settings)
    executor = build_executor(settings)

    if not is_writable_dir(settings.STATE_DIR):
        logger.warning(
            "State directory %s is not writable (read-only or permission denied); "
            "milestones may be celebrated more than once",
            settings.STATE_DIR,
        )

    sink: SystemChannelHandler | None = None
    if settings.FORWARD_LOGS:
        sink = SystemChannelHandler(notifier)
        logging.getLogger().addHandler(sink)

    engine = build_engine(settings, executor, notifier)
    if not await executor.test_connection():
        logger.warning("Starting without a working InfluxDB connection")

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            logger.debug("Signal handlers not supported on this platform")

    await send_status(notifier, startup_message(settings, engine))
    try:
        await engine.run_forever(settings.TICK_INTERVAL_S, stop_event)
    finally:
        logger.info("Shutting down")
        engine.log_query_summary()
        await send_status(
            notifier,
            "🔴 **MultiGig Bot Shutting Down**\n\n"
            f"**Time**: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        )
        if sink is not None:
            logging.getLogger().removeHandler(sink)
            await sink.drain()
        close = getattr(notifier, "close", None)
        if close is not None:
            await close()


def run() -> None:
    setup_logging()
    logger.info("Starting multigig_alerter")
    settings = config.load_settings()
    asyncio.run(serve(settings))


if __name__ == "__main__":
    run()
