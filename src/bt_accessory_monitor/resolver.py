"""Best-effort display-name resolution for a Bluetooth hardware address.

Four sources are tried in order and the first non-empty name wins:

1. ``Device1.Name`` at the device's object path (known, or looked up in
   the ObjectManager tree, or guessed on hci0).
2. ``Adapter1.GetDevice`` on every adapter, then ``Device1.Name`` there.
   Covers devices that live on an adapter other than the guessed one.
3. ``bluetoothctl info <address>``, bounded to a couple of seconds.
4. BlueZ's on-disk storage (``<dir>/<adapter>/<ADDRESS>/info``).

``resolve_name`` never raises; when everything fails the address itself
is the display name.
"""

import asyncio
import logging
import os
import re
from pathlib import Path

from .bluez.constants import DEVICE_INTERFACE
from .bluez.enumerator import (
    default_device_path,
    find_adapter_paths,
    list_managed_objects,
    resolve_device_path,
)
from .bluez.properties import unwrap
from .bluez.session import BusSession
from .errors import ExternalToolError, MonitorError

logger = logging.getLogger(__name__)

DEFAULT_CLI_TOOL = "bluetoothctl"
DEFAULT_CLI_TIMEOUT = 2.0  # seconds

# Scanned in this order; the first directory holding a match wins.
DEFAULT_CACHE_DIRS = (
    "/var/lib/bluetooth",
    "~/.cache/bluetooth",
)

CACHE_INFO_FILENAME = "info"
UNKNOWN_DEVICE_NAME = "Unknown Device"

_CACHE_NAME_RE = re.compile(r"^Name=(.+)$", re.MULTILINE)
_CLI_NAME_LABEL = "Name:"


def parse_cli_name(output: str) -> str:
    """Extract the value of the first ``Name:`` line from bluetoothctl output."""
    for line in output.splitlines():
        stripped = line.strip()
        if stripped.startswith(_CLI_NAME_LABEL):
            return stripped[len(_CLI_NAME_LABEL):].strip()
    return ""


def parse_cache_name(content: str) -> str:
    """Extract the first ``Name=`` value from a BlueZ info file."""
    match = _CACHE_NAME_RE.search(content)
    return match.group(1).strip() if match else ""


class NameResolver:
    """Resolves a hardware address to a display name."""

    def __init__(
        self,
        session: BusSession,
        cli_tool: str = DEFAULT_CLI_TOOL,
        cli_timeout: float = DEFAULT_CLI_TIMEOUT,
        cache_dirs: tuple[str, ...] = DEFAULT_CACHE_DIRS,
    ):
        self._session = session
        self._cli_tool = cli_tool
        self._cli_timeout = cli_timeout
        self._cache_dirs = tuple(cache_dirs)

    async def resolve_name(self, address: str, device_path: str | None = None) -> str:
        """Return a non-empty display name for ``address``.

        ``device_path`` skips the object-path lookup of the first tier when
        the caller already knows it (e.g. the path a signal came from).
        """
        logger.debug("Resolving name for %s", address)

        name = await self._name_from_device_path(address, device_path)
        if name:
            logger.debug("Name for %s from Device1.Name: %s", address, name)
            return name

        name = await self._name_from_adapters(address)
        if name:
            logger.debug("Name for %s via adapter lookup: %s", address, name)
            return name

        name = await self._name_from_cli(address)
        if name:
            logger.debug("Name for %s from %s: %s", address, self._cli_tool, name)
            return name

        name = self._name_from_cache(address)
        if name:
            logger.debug("Name for %s from BlueZ storage: %s", address, name)
            return name

        logger.warning("Could not resolve device name for %s", address)
        return address or UNKNOWN_DEVICE_NAME

    async def _read_name(self, path: str) -> str:
        try:
            variant = await self._session.get_property(path, DEVICE_INTERFACE, "Name")
        except MonitorError as e:
            logger.debug("Name not readable at %s: %s", path, e)
            return ""
        value = unwrap(variant)
        return value.strip() if isinstance(value, str) else ""

    async def _name_from_device_path(self, address: str, device_path: str | None) -> str:
        if not device_path:
            try:
                tree = await list_managed_objects(self._session)
            except MonitorError as e:
                logger.debug("Object tree unavailable for %s: %s", address, e)
                device_path = default_device_path(address)
            else:
                device_path = resolve_device_path(tree, address)
        return await self._read_name(device_path)

    async def _name_from_adapters(self, address: str) -> str:
        try:
            tree = await list_managed_objects(self._session)
        except MonitorError as e:
            logger.debug("Cannot enumerate adapters: %s", e)
            return ""
        for adapter_path in find_adapter_paths(tree):
            try:
                path = await self._session.adapter_get_device(adapter_path, address)
            except MonitorError as e:
                logger.debug("%s has no device %s: %s", adapter_path, address, e)
                continue
            name = await self._read_name(path)
            if name:
                return name
        return ""

    async def _run_cli(self, address: str) -> str:
        """Run ``<tool> info <address>`` and return its stdout.

        Raises ExternalToolError on a missing tool, timeout or non-zero exit.
        """
        try:
            proc = await asyncio.create_subprocess_exec(
                self._cli_tool, "info", address,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
                stdin=asyncio.subprocess.DEVNULL,
            )
        except (OSError, ValueError) as e:
            raise ExternalToolError(f"{self._cli_tool} not available: {e}") from e

        try:
            stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=self._cli_timeout)
        except asyncio.TimeoutError:
            raise ExternalToolError(
                f"{self._cli_tool} info timed out after {self._cli_timeout}s"
            ) from None
        finally:
            # Timeout or cancellation: never leave the child behind.
            if proc.returncode is None:
                try:
                    proc.kill()
                except ProcessLookupError:
                    pass
                await proc.wait()

        if proc.returncode != 0:
            raise ExternalToolError(f"{self._cli_tool} info exited {proc.returncode}")
        return stdout.decode(errors="replace")

    async def _name_from_cli(self, address: str) -> str:
        try:
            output = await self._run_cli(address)
        except ExternalToolError as e:
            logger.debug("CLI lookup for %s failed: %s", address, e)
            return ""
        return parse_cli_name(output)

    def _name_from_cache(self, address: str) -> str:
        needle = address.lower()
        if not needle:
            return ""
        for base in self._cache_dirs:
            root = Path(os.path.expanduser(base))
            if not root.is_dir():
                continue
            # Lexicographic order makes the pick stable when several
            # directories match one address.
            for candidate in sorted(self._matching_dirs(root, needle)):
                info_file = candidate / CACHE_INFO_FILENAME
                try:
                    content = info_file.read_text(errors="replace")
                except OSError:
                    continue
                name = parse_cache_name(content)
                if name:
                    return name
        return ""

    @staticmethod
    def _matching_dirs(root: Path, needle: str) -> list[Path]:
        matches = []
        for dirpath, dirnames, _ in os.walk(root):
            for dirname in dirnames:
                if needle in dirname.lower():
                    matches.append(Path(dirpath) / dirname)
        return matches
