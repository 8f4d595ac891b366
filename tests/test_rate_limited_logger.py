"""Tests for rate-limited connector logging."""

import logging

from latency_monitor.rate_limited_logger import RateLimitedLogger

LOGGER_NAME = "tests.rate_limited"


def test_repeated_connection_errors_logged_once(caplog):
    rl_logger = RateLimitedLogger(
        "binance", logging.getLogger(LOGGER_NAME), window=60.0
    )

    with caplog.at_level(logging.ERROR, logger=LOGGER_NAME):
        for retry in range(1, 6):
            rl_logger.connection_error(ConnectionRefusedError("refused"), retry, 5)

    records = [r for r in caplog.records if "connection failed" in r.getMessage()]
    assert len(records) == 1
    assert "[binance_connection]" in records[0].getMessage()
    assert "(retry 1/5)" in records[0].getMessage()
    assert rl_logger.get_stats()["connection_errors"] == 5


def test_zero_window_logs_everything(caplog):
    rl_logger = RateLimitedLogger(
        "binance", logging.getLogger(LOGGER_NAME), window=0.0
    )

    with caplog.at_level(logging.WARNING, logger=LOGGER_NAME):
        for _ in range(3):
            rl_logger.missing_field('"E"', '{"e":"depthUpdate"}')

    assert len(caplog.records) == 3
    assert rl_logger.get_stats()["missing_fields"] == 3


def test_flush_reports_suppressed(caplog):
    rl_logger = RateLimitedLogger(
        "binance", logging.getLogger(LOGGER_NAME), window=60.0
    )

    with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
        for _ in range(4):
            rl_logger.parse_error(ValueError("not a price: b'abc'"), "sample")
        rl_logger.flush_suppressed()

    assert "Suppressed messages" in caplog.text
    assert "binance_parse: 3 suppressed" in caplog.text
    assert "Sample: binance parse error: ValueError" in caplog.text
    assert rl_logger.get_stats()["parse_errors"] == 4


def test_flush_forgets_reported_messages(caplog):
    rl_logger = RateLimitedLogger(
        "binance", logging.getLogger(LOGGER_NAME), window=60.0
    )
    rl_logger.missing_field('"E"')
    rl_logger.missing_field('"E"')
    rl_logger.flush_suppressed()
    caplog.clear()

    with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
        rl_logger.flush_suppressed()

    assert caplog.records == []


def test_next_logged_line_carries_suppressed_count(caplog, monkeypatch):
    now = [1000.0]
    monkeypatch.setattr(
        "latency_monitor.rate_limited_logger.time.time", lambda: now[0]
    )
    rl_logger = RateLimitedLogger(
        "binance", logging.getLogger(LOGGER_NAME), window=10.0
    )

    with caplog.at_level(logging.WARNING, logger=LOGGER_NAME):
        rl_logger.missing_field('"E"')
        rl_logger.missing_field('"E"')
        rl_logger.missing_field('"E"')
        now[0] += 10.0
        rl_logger.missing_field('"E"')

    assert len(caplog.records) == 2
    assert "(+2 suppressed in 10.0s)" in caplog.records[1].getMessage()


def test_plain_messages_are_prefixed(caplog):
    rl_logger = RateLimitedLogger("binance", logging.getLogger(LOGGER_NAME))

    with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
        rl_logger.info("Connected successfully")

    assert caplog.records[0].getMessage() == "[binance] Connected successfully"
