"""Configuration loader."""

from latency_monitor.connectors.base import ConnectorConfig, RetryPolicy


class Config:
    """Application configuration constants."""

    # Logging
    LOG_LEVEL = "INFO"
    LOGGER_WINDOW = 10.0

    # Monitoring
    STATS_INTERVAL = 300.0
    LOOP_LAG_CHECK_INTERVAL = 5.0
    LOOP_LAG_WARN_MS = 50.0


def load_config() -> ConnectorConfig:
    """Load the connector configuration."""

    # Try to conceal any problem for one pass over the backoff table, then
    # give up. Make conceal_count larger than the table to retry forever at
    # the last delay (plus jitter).
    retry = RetryPolicy(
        backoff_ms=(1000, 2000, 3000, 4000, 5000),
        conceal_count=5,
        jitter_percent=0,
        secs_since_valid_ping=400,
        secs_since_valid_hangup=400,
    )

    streams = ["btcusdt@depth@0ms", "btcusdt@bookTicker", "btcusdt@aggTrade"]

    # permessage-deflate keeps the TLS records small when the server is busy,
    # otherwise messages wait for a large coalesced record to be decrypted
    return ConnectorConfig(
        name="binance",
        address="fstream.binance.com",
        port=443,
        path=f"/stream?streams={'/'.join(streams)}",
        compression="deflate",
        retry=retry,
        tick_interval=1.0,
        connect_timeout=10.0,
    )
