"""BlueZ D-Bus helpers for watching accessory connections."""

from .classifier import is_target_accessory, is_target_accessory_at_path
from .constants import TARGET_ACCESSORY_UUID
from .session import BusSession, ManagedObjectTree, PropertiesChangedSignal

__all__ = [
    "BusSession",
    "ManagedObjectTree",
    "PropertiesChangedSignal",
    "TARGET_ACCESSORY_UUID",
    "is_target_accessory",
    "is_target_accessory_at_path",
]
