"""Base connector components for WebSocket connections."""

from .connector import ConnectionSupervisor
from .config import ConnectorConfig, RetryPolicy
from .events import Event, EventKind
from .scheduler import Scheduler
from .state import ConnectionState

__all__ = [
    "ConnectionSupervisor",
    "ConnectorConfig",
    "RetryPolicy",
    "Event",
    "EventKind",
    "Scheduler",
    "ConnectionState",
]
