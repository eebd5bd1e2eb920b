"""Watch BlueZ for connections of a specific audio accessory class."""

from .events import AccessoryEvent, EventKind
from .resolver import NameResolver
from .watcher import ConnectionWatcher

__all__ = [
    "AccessoryEvent",
    "ConnectionWatcher",
    "EventKind",
    "NameResolver",
]
