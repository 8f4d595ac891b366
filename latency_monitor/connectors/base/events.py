"""Events delivered to a connection supervisor."""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any


class EventKind(Enum):
    CONNECT = auto()  # attempt connection now
    CONNECT_SUCCEEDED = auto()
    CONNECT_FAILED = auto()
    MESSAGE = auto()
    TICK = auto()  # summary window elapsed
    CLOSED = auto()  # established connection closed or errored

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Event:
    kind: EventKind
    payload: Any = None
