"""Configuration management for connectors."""

import random
from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff table and idle thresholds for one connection.

    Failures are concealed (retried silently) for ``conceal_count`` attempts.
    If ``conceal_count`` is larger than the backoff table, the policy never
    gives up and keeps retrying at the last table delay plus jitter.
    """

    backoff_ms: tuple[int, ...] = (1000, 2000, 3000, 4000, 5000)
    conceal_count: int = 5
    jitter_percent: int = 0
    secs_since_valid_ping: float = 400.0  # force PINGs after secs idle
    secs_since_valid_hangup: float = 400.0  # hangup after secs idle

    def __post_init__(self) -> None:
        if not self.backoff_ms:
            raise ValueError("backoff_ms table must not be empty")
        if any(delay < 0 for delay in self.backoff_ms):
            raise ValueError(f"backoff delays must be >= 0: {self.backoff_ms}")
        if self.conceal_count < 0:
            raise ValueError(f"conceal_count must be >= 0: {self.conceal_count}")
        if not 0 <= self.jitter_percent <= 100:
            raise ValueError(
                f"jitter_percent must be within 0..100: {self.jitter_percent}"
            )
        if self.secs_since_valid_ping <= 0 or self.secs_since_valid_hangup <= 0:
            raise ValueError("idle thresholds must be positive")

    @property
    def gives_up(self) -> bool:
        """True when retries are eventually exhausted."""
        return self.conceal_count <= len(self.backoff_ms)

    def next_delay(
        self, attempt_count: int, rng: Optional[random.Random] = None
    ) -> Optional[int]:
        """Return the retry delay in ms, or None when retries are exhausted.

        Args:
            attempt_count: Consecutive failures so far (0 for the first retry)
            rng: Random source for jitter (module-level random if omitted)
        """
        if self.gives_up and attempt_count >= self.conceal_count:
            return None

        delay = self.backoff_ms[min(attempt_count, len(self.backoff_ms) - 1)]

        if self.jitter_percent:
            spread = delay * self.jitter_percent // 100
            delay += (rng or random).randint(0, spread)

        return delay


@dataclass(frozen=True)
class ConnectorConfig:
    """Configuration for WebSocket connector."""

    name: str
    address: str
    path: str
    port: int = 443
    use_ssl: bool = True
    compression: Optional[str] = "deflate"  # permessage-deflate
    subprotocols: tuple[str, ...] = ()
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    tick_interval: float = 1.0  # seconds between summaries
    connect_timeout: float = 10.0

    @property
    def url(self) -> str:
        scheme = "wss" if self.use_ssl else "ws"
        path = self.path if self.path.startswith("/") else f"/{self.path}"
        return f"{scheme}://{self.address}:{self.port}{path}"
