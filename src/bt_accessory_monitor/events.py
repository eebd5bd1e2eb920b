"""Notifications produced by the connection watcher."""

import enum
from dataclasses import dataclass


class EventKind(enum.Enum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


@dataclass(frozen=True)
class AccessoryEvent:
    """One connect/disconnect of a tracked accessory."""

    address: str
    name: str
    kind: EventKind

    @property
    def connected(self) -> bool:
        return self.kind is EventKind.CONNECTED
