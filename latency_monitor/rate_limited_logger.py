"""Rate-limited logging for a single supervised stream."""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Dict, Optional, Tuple


@dataclass
class Suppressed:
    """Messages of one category held back since it was last logged."""

    last_logged: float = 0.0
    pending: int = 0
    sample: Optional[str] = None

    def due(self, now: float, window: float) -> bool:
        return self.last_logged == 0.0 or (now - self.last_logged) >= window


class RateLimitedLogger:
    """Logs each message category at most once per ``window`` seconds.

    Repeats inside the window are counted; the next logged line carries the
    count, and ``flush_suppressed`` reports whatever is still held back.
    """

    def __init__(
        self, connector_name: str, base_logger: logging.Logger, window: float = 10.0
    ):
        self.name = connector_name
        self.base_logger = base_logger
        self.window = window
        self._categories: Dict[Tuple[int, str], Suppressed] = {}
        self._lock = threading.Lock()
        self._counters = {
            "parse_errors": 0,
            "missing_fields": 0,
            "connection_errors": 0,
        }

    def _limited(self, level: int, category: str, message: str) -> None:
        key = (level, f"{self.name}_{category}")

        with self._lock:
            entry = self._categories.setdefault(key, Suppressed())
            now = time.time()

            if not entry.due(now, self.window):
                entry.pending += 1
                entry.sample = entry.sample or message
                return

            if entry.pending:
                elapsed = now - entry.last_logged
                message += f" (+{entry.pending} suppressed in {elapsed:.1f}s)"
            entry.last_logged = now
            entry.pending = 0
            entry.sample = None

        self.base_logger.log(level, f"[{key[1]}] {message}")

    def flush_suppressed(self) -> None:
        """Log a summary of messages still held back, then forget them."""
        with self._lock:
            held = [
                (category, entry.pending, entry.sample)
                for (_, category), entry in self._categories.items()
                if entry.pending
            ]
            for entry in self._categories.values():
                entry.pending = 0
                entry.sample = None

        if not held:
            return

        lines = ["📊 Suppressed messages:"]
        for category, pending, sample in sorted(held, key=lambda x: -x[1]):
            lines.append(f"  • {category}: {pending} suppressed")
            if sample:
                lines.append(f"    Sample: {sample[:100]}")
        self.base_logger.info("\n".join(lines))

    def parse_error(self, error: Exception, message_sample: str = ""):
        """Log a number that could not be parsed."""
        self._counters["parse_errors"] += 1
        msg = f"{self.name} parse error: {type(error).__name__}: {error}"
        if message_sample:
            msg += f" | Sample: {message_sample[:200]}..."
        self._limited(logging.WARNING, "parse", msg)

    def missing_field(self, marker: str, message_sample: str = ""):
        """Log a message that lacks an expected field."""
        self._counters["missing_fields"] += 1
        msg = f"{self.name} message without {marker}"
        if message_sample:
            msg += f" | Sample: {message_sample[:200]}..."
        self._limited(logging.WARNING, "field", msg)

    def connection_error(self, error: object, retry: int, conceal_count: int):
        """Log a failed or lost connection that will be retried."""
        self._counters["connection_errors"] += 1
        self._limited(
            logging.ERROR,
            "connection",
            f"{self.name} connection failed: {error} (retry {retry}/{conceal_count})",
        )

    def info(self, message: str):
        self.base_logger.info(f"[{self.name}] {message}")

    def debug(self, message: str):
        self.base_logger.debug(f"[{self.name}] {message}")

    def warning(self, message: str):
        self.base_logger.warning(f"[{self.name}] {message}")

    def error(self, message: str):
        self.base_logger.error(f"[{self.name}] {message}")

    def get_stats(self) -> dict:
        """Counters since start, including suppressed messages."""
        return dict(self._counters)
