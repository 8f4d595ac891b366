"""Resilient Binance depth stream client with live latency and price statistics."""
