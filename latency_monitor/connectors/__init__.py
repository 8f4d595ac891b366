"""Exchange connectors."""

from .binance import BinanceDepthSupervisor

__all__ = ["BinanceDepthSupervisor"]
