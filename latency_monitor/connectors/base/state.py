"""Connection state management."""

from enum import Enum, auto


class ConnectionState(Enum):
    """WebSocket connection states."""

    IDLE = auto()
    CONNECTING = auto()
    ESTABLISHED = auto()
    CLOSED = auto()
    FAILED = auto()  # retries exhausted, terminal

    def __str__(self) -> str:
        return self.name
