"""Binance futures depth stream connector."""

import random
import time
from typing import Callable, Optional

from latency_monitor.connectors.base import (
    ConnectionSupervisor,
    ConnectorConfig,
    Scheduler,
)
from latency_monitor.extractor import find_field, parse_int, to_fixed_point_cents
from latency_monitor.rate_limited_logger import RateLimitedLogger

# Only depthUpdate messages carry the numbers we care about
DEPTH_UPDATE_MARKER = b'"depthUpdate"'
EVENT_TIME_MARKER = b'"E":'
BEST_ASK_MARKER = b'"a":[["'


def wall_clock_us() -> int:
    """Microseconds since the Unix epoch (same epoch as Binance event times)."""
    return time.time_ns() // 1000


class BinanceDepthSupervisor(ConnectionSupervisor):
    """Measures event latency and best ask price on the Binance depth stream."""

    def __init__(
        self,
        config: ConnectorConfig,
        logger: RateLimitedLogger,
        scheduler: Optional[Scheduler] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], int] = wall_clock_us,
    ):
        super().__init__(config, logger, scheduler=scheduler, rng=rng)
        self.clock = clock

    def _handle_message(self, message: bytes) -> None:
        """Fold the event latency and best ask of a depthUpdate message."""
        now_us = self.clock()

        if DEPTH_UPDATE_MARKER not in message:
            return

        event_time = find_field(message, EVENT_TIME_MARKER)
        if event_time is None:
            self.logger.missing_field('"E"', message[:100].decode(errors="replace"))
            return

        try:
            event_time_ms = parse_int(event_time)
        except ValueError as e:
            self.logger.parse_error(e, message[:100].decode(errors="replace"))
            return

        # Not clamped: skewed clocks produce negative latencies
        self.latency.fold(now_us - event_time_ms * 1000)

        best_ask = find_field(message, BEST_ASK_MARKER)
        if best_ask is None:
            return

        try:
            self.price.fold(to_fixed_point_cents(best_ask))
        except ValueError as e:
            self.logger.parse_error(e, message[:100].decode(errors="replace"))
