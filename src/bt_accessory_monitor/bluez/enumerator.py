"""Queries over the BlueZ ObjectManager tree.

Every query re-fetches the whole tree; nothing is cached between calls.
"""

import logging
from collections.abc import Iterator

from .constants import ADAPTER_PATH_RE, DEFAULT_ADAPTER_PATH, DEVICE_INTERFACE
from .session import BusSession, ManagedObjectTree

logger = logging.getLogger(__name__)


async def list_managed_objects(session: BusSession) -> ManagedObjectTree:
    """Fetch the full managed-object tree in one call, without retries.

    Propagates BusUnavailableError / BusCallFailedError; callers decide
    whether that means "empty" or "not found".
    """
    tree = await session.get_managed_objects()
    logger.debug("GetManagedObjects returned %d object(s)", len(tree))
    return tree


def find_adapter_paths(tree: ManagedObjectTree) -> list[str]:
    """Return adapter object paths (/org/bluez/hciN) in tree order."""
    return [path for path in tree if ADAPTER_PATH_RE.match(path)]


def normalize_address(address: str) -> str:
    """AA:BB:CC:DD:EE:FF -> aa_bb_cc_dd_ee_ff (the BlueZ path form)."""
    return address.lower().replace(":", "_").replace("-", "_")


def default_device_path(address: str) -> str:
    """Guess the device path on hci0.  The object may not exist."""
    return f"{DEFAULT_ADAPTER_PATH}/dev_{normalize_address(address)}"


def resolve_device_path(tree: ManagedObjectTree, address: str) -> str:
    """Find the object path for a hardware address.

    Falls back to the hci0 guess when no tree path contains the
    normalized address.
    """
    needle = normalize_address(address)
    for path in tree:
        if needle in path:
            return path
    fallback = default_device_path(address)
    logger.debug("No object path for %s in tree, guessing %s", address, fallback)
    return fallback


def device_records(tree: ManagedObjectTree) -> Iterator[tuple[str, dict]]:
    """Yield (path, Device1 properties) for every device object."""
    for path, interfaces in tree.items():
        props = interfaces.get(DEVICE_INTERFACE)
        if props is not None:
            yield path, props
