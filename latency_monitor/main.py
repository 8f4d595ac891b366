"""Binance depth stream latency monitor."""

import asyncio
import logging
import sys
import time

from latency_monitor.config import load_config, Config
from latency_monitor.connectors import BinanceDepthSupervisor
from latency_monitor.connectors.base import ConnectionState, ConnectionSupervisor
from latency_monitor.rate_limited_logger import RateLimitedLogger

# Setup logging
logging.basicConfig(
    level=Config.LOG_LEVEL, format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Suppress noisy third-party library logs
logging.getLogger("websockets").setLevel(logging.WARNING)


async def stats_monitor(supervisor: ConnectionSupervisor) -> None:
    """Monitor and log connector statistics periodically."""
    while True:
        await asyncio.sleep(Config.STATS_INTERVAL)

        stats = supervisor.logger.get_stats()
        status = "✅" if supervisor.is_connected() else "❌"
        logger.info(
            f"📈 {supervisor.config.name.capitalize()} {status}: "
            f"{stats['parse_errors']} parse errors, "
            f"{stats['missing_fields']} missing fields, "
            f"{stats['connection_errors']} conn errors"
        )
        supervisor.logger.flush_suppressed()


async def event_loop_monitor() -> None:
    """Detect event loop blocking (it shows up as latency)."""
    logger.info("⚡ Event loop monitor started")

    while True:
        start = time.perf_counter()
        await asyncio.sleep(0)
        lag_ms = (time.perf_counter() - start) * 1000

        if lag_ms > Config.LOOP_LAG_WARN_MS:
            logger.warning(f"⚠️  Event loop lag: {lag_ms:.0f}ms")

        await asyncio.sleep(Config.LOOP_LAG_CHECK_INTERVAL)


async def main() -> int:
    """Main application entry point."""
    config = load_config()

    supervisor = BinanceDepthSupervisor(
        config, RateLimitedLogger(config.name, logger, window=Config.LOGGER_WINDOW)
    )

    logger.info(f"🚀 Starting latency monitor for {config.url}")

    monitors = [
        asyncio.create_task(stats_monitor(supervisor)),
        asyncio.create_task(event_loop_monitor()),
    ]

    try:
        state = await supervisor.run()
    finally:
        for task in monitors:
            task.cancel()
        await asyncio.gather(*monitors, return_exceptions=True)
        await supervisor.stop()

    logger.info("Completed")
    return 1 if state is ConnectionState.FAILED else 0


def run() -> None:
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        logger.info("Shutting down...")


if __name__ == "__main__":
    run()
