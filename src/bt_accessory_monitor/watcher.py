"""Connection watcher for the tracked accessory class.

Subscribes to BlueZ ``PropertiesChanged`` signals, reconciles devices that
were already connected at startup, and turns ``Device1.Connected`` changes
on matching devices into connected/disconnected notifications.
"""

import asyncio
import logging
from typing import Callable

from .bluez.classifier import is_target_accessory, is_target_accessory_at_path
from .bluez.constants import DEVICE_INTERFACE, RECONCILE_REQUIRED_PROPERTIES
from .bluez.enumerator import device_records, list_managed_objects
from .bluez.properties import get_bool, get_string, get_string_set, has_properties, unwrap
from .bluez.session import BusSession
from .errors import MonitorError
from .events import AccessoryEvent, EventKind
from .resolver import NameResolver

logger = logging.getLogger(__name__)


class ConnectionWatcher:
    """Emits connect/disconnect notifications for tracked accessories.

    Signals are handled one at a time: each is classified, resolved and
    emitted before the next one is read from the session.
    """

    def __init__(self, session: BusSession, resolver: NameResolver | None = None):
        self._session = session
        self._resolver = resolver or NameResolver(session)
        self._connect_callbacks: list[Callable[[str, str], None]] = []
        self._disconnect_callbacks: list[Callable[[str, str], None]] = []
        self._subscribed = False
        self._running = False

    def on_connected(self, callback: Callable[[str, str], None]) -> None:
        """Register a callback(address, name) for accessory connections."""
        self._connect_callbacks.append(callback)

    def on_disconnected(self, callback: Callable[[str, str], None]) -> None:
        """Register a callback(address, name) for accessory disconnections."""
        self._disconnect_callbacks.append(callback)

    @property
    def subscribed(self) -> bool:
        return self._subscribed

    async def start(self) -> bool:
        """Subscribe to signals, then reconcile already-connected devices.

        Signals that arrive during reconciliation stay queued in the
        session until run() drains them.  Returns the reconcile() result.
        """
        try:
            await self._session.subscribe_properties_changed()
            self._subscribed = True
        except MonitorError as e:
            logger.warning("Failed to subscribe to PropertiesChanged signals: %s", e)
        return await self.reconcile()

    async def reconcile(self) -> bool:
        """Emit Connected for every accessory already connected.

        Uses the Name from the object tree as-is.  Returns True if at
        least one accessory was found.
        """
        try:
            tree = await list_managed_objects(self._session)
        except MonitorError as e:
            logger.warning("Failed to get managed objects: %s", e)
            return False

        found = False
        for path, props in device_records(tree):
            # Not fully populated yet; a later signal will cover it.
            if not has_properties(props, *RECONCILE_REQUIRED_PROPERTIES):
                continue
            if not is_target_accessory(get_string_set(props, "UUIDs")):
                continue
            if not get_bool(props, "Connected"):
                continue
            address = get_string(props, "Address")
            if not address:
                continue
            name = get_string(props, "Name") or ""
            logger.info("Found already connected accessory %s (%s) at %s", name, address, path)
            self._emit(AccessoryEvent(address, name, EventKind.CONNECTED))
            found = True
        return found

    async def on_signal(
        self, interface: str, changed: dict, sender_path: str
    ) -> AccessoryEvent | None:
        """Handle one PropertiesChanged signal from ``sender_path``.

        Returns the emitted event, or None when the signal was filtered out.
        """
        if interface != DEVICE_INTERFACE:
            return None
        if "Connected" not in changed:
            return None
        connected = unwrap(changed["Connected"])
        if not isinstance(connected, bool):
            return None

        if not await is_target_accessory_at_path(self._session, sender_path):
            return None

        try:
            variant = await self._session.get_property(sender_path, DEVICE_INTERFACE, "Address")
        except MonitorError as e:
            logger.debug("No Address at %s, dropping signal: %s", sender_path, e)
            return None
        address = unwrap(variant)
        if not isinstance(address, str) or not address:
            return None

        name = await self._resolver.resolve_name(address, device_path=sender_path)
        kind = EventKind.CONNECTED if connected else EventKind.DISCONNECTED
        logger.info("Accessory %s: %s (%s)", kind.value, name, address)
        event = AccessoryEvent(address, name, kind)
        self._emit(event)
        return event

    async def run(self) -> None:
        """Receive and handle signals until stop() or cancellation."""
        self._running = True
        logger.debug("Connection watcher loop started")
        try:
            while self._running:
                signal = await self._session.next_signal()
                await self.on_signal(signal.interface, signal.changed, signal.path)
        finally:
            self._running = False
            logger.debug("Connection watcher loop stopped")

    def stop(self) -> None:
        """Stop after the signal currently being handled."""
        self._running = False

    async def run_until(self, stop_event: asyncio.Event) -> None:
        """Run the receive loop until ``stop_event`` is set."""
        loop_task = asyncio.create_task(self.run())
        stop_task = asyncio.create_task(stop_event.wait())
        try:
            await asyncio.wait({loop_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (loop_task, stop_task):
                if not task.done():
                    task.cancel()
                    try:
                        await task
                    except asyncio.CancelledError:
                        pass
        if loop_task.done() and not loop_task.cancelled() and loop_task.exception():
            raise loop_task.exception()

    def _emit(self, event: AccessoryEvent) -> None:
        callbacks = (
            self._connect_callbacks if event.connected else self._disconnect_callbacks
        )
        for cb in callbacks:
            try:
                cb(event.address, event.name)
            except Exception:
                logger.exception("Notification callback failed for %s", event.address)
