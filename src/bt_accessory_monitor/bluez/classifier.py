"""Decide whether a device belongs to the tracked accessory class."""

import logging
from collections.abc import Iterable

from ..errors import MonitorError
from .constants import DEVICE_INTERFACE, TARGET_ACCESSORY_UUID
from .properties import unwrap
from .session import BusSession

logger = logging.getLogger(__name__)


def is_target_accessory(uuids: Iterable[str]) -> bool:
    """True iff the accessory service UUID is among ``uuids``."""
    return TARGET_ACCESSORY_UUID in uuids


async def is_target_accessory_at_path(session: BusSession, path: str) -> bool:
    """Fetch Device1.UUIDs at ``path`` and classify it.

    A failed fetch is a non-match, never an error.
    """
    try:
        variant = await session.get_property(path, DEVICE_INTERFACE, "UUIDs")
    except MonitorError as e:
        logger.debug("Could not read UUIDs at %s: %s", path, e)
        return False
    uuids = unwrap(variant)
    if not isinstance(uuids, (list, tuple, set, frozenset)):
        return False
    return is_target_accessory(uuids)
