"""System bus session used by the monitor.

Wraps a connected ``dbus_next.aio.MessageBus`` and exposes only what the
monitor needs: a few synchronous-style method calls against BlueZ and a
receive primitive for ``PropertiesChanged`` signals.  Signals are queued by a
message handler and drained explicitly by the watcher's loop, so the sender
path travels with each signal instead of living in handler context.
"""

import asyncio
import logging
from typing import NamedTuple

from dbus_next import BusType, Message, MessageType, Variant
from dbus_next.aio import MessageBus
from dbus_next.errors import (
    DBusError,
    InvalidBusNameError,
    InvalidInterfaceNameError,
    InvalidMemberNameError,
    InvalidObjectPathError,
    InvalidSignatureError,
)

from ..errors import BusCallFailedError, BusUnavailableError
from .constants import (
    ADAPTER_INTERFACE,
    BLUEZ_SERVICE,
    DBUS_INTERFACE,
    DBUS_PATH,
    DBUS_SERVICE,
    OBJECT_MANAGER_INTERFACE,
    PROPERTIES_CHANGED,
    PROPERTIES_CHANGED_MATCH_RULE,
    PROPERTIES_INTERFACE,
)

logger = logging.getLogger(__name__)

ManagedObjectTree = dict[str, dict[str, dict[str, Variant]]]

_INVALID_MESSAGE_ERRORS = (
    InvalidBusNameError,
    InvalidInterfaceNameError,
    InvalidMemberNameError,
    InvalidObjectPathError,
    InvalidSignatureError,
)


def _method_call(**fields) -> Message:
    """Build a method call, mapping invalid header fields to BusCallFailedError.

    Object paths are derived from hardware addresses, so a malformed address
    yields a path dbus_next refuses to put on the wire.
    """
    try:
        return Message(**fields)
    except _INVALID_MESSAGE_ERRORS as e:
        raise BusCallFailedError(fields.get("member", ""), str(fields.get("path", "")), str(e)) from e


class PropertiesChangedSignal(NamedTuple):
    """One ``org.freedesktop.DBus.Properties.PropertiesChanged`` signal."""

    interface: str
    changed: dict
    invalidated: list
    path: str


class BusSession:
    """Connection to the system bus, scoped to BlueZ queries.

    Calls are sent as raw method-call messages rather than through
    introspected proxy objects: most device paths are guesses, and
    introspecting an object that does not exist would fail before the
    call it is meant to serve.
    """

    SIGNAL_QUEUE_SIZE = 256

    def __init__(self, bus: MessageBus):
        self._bus = bus
        self._signals: asyncio.Queue[PropertiesChangedSignal] = asyncio.Queue(
            maxsize=self.SIGNAL_QUEUE_SIZE
        )
        self._subscribed = False

    @classmethod
    async def connect(cls, bus_type: BusType = BusType.SYSTEM) -> "BusSession":
        """Connect to the bus, raising BusUnavailableError on failure."""
        try:
            bus = await MessageBus(bus_type=bus_type).connect()
        except (DBusError, OSError, ValueError) as e:
            raise BusUnavailableError(f"Failed to connect to D-Bus: {e}") from e
        logger.info("Connected to %s D-Bus", bus_type.name.lower())
        return cls(bus)

    @property
    def connected(self) -> bool:
        return bool(getattr(self._bus, "connected", False))

    async def call(self, message: Message) -> Message:
        """Send a method call and return the reply.

        Raises BusUnavailableError when the bus is gone and
        BusCallFailedError for any error raised or replied.
        """
        if not self.connected:
            raise BusUnavailableError("D-Bus connection is not established")
        try:
            reply = await self._bus.call(message)
        except (DBusError, OSError, EOFError, ValueError) as e:
            raise BusCallFailedError(message.member, message.path, str(e)) from e
        if reply is None:
            raise BusCallFailedError(message.member, message.path, "no reply")
        if reply.message_type == MessageType.ERROR:
            detail = reply.error_name or ""
            if reply.body and isinstance(reply.body[0], str):
                detail = f"{detail} {reply.body[0]}".strip()
            raise BusCallFailedError(message.member, message.path, detail)
        return reply

    async def get_managed_objects(self) -> ManagedObjectTree:
        """Return the full BlueZ object tree (adapters, devices, ...)."""
        reply = await self.call(
            _method_call(
                destination=BLUEZ_SERVICE,
                path="/",
                interface=OBJECT_MANAGER_INTERFACE,
                member="GetManagedObjects",
            )
        )
        return reply.body[0] if reply.body else {}

    async def get_property(self, path: str, interface: str, name: str) -> Variant:
        """Fetch one property via org.freedesktop.DBus.Properties.Get."""
        reply = await self.call(
            _method_call(
                destination=BLUEZ_SERVICE,
                path=path,
                interface=PROPERTIES_INTERFACE,
                member="Get",
                signature="ss",
                body=[interface, name],
            )
        )
        if not reply.body:
            raise BusCallFailedError("Get", path, f"empty reply for {name}")
        return reply.body[0]

    async def adapter_get_device(self, adapter_path: str, address: str) -> str:
        """Ask an adapter to map a hardware address to a device object path."""
        reply = await self.call(
            _method_call(
                destination=BLUEZ_SERVICE,
                path=adapter_path,
                interface=ADAPTER_INTERFACE,
                member="GetDevice",
                signature="s",
                body=[address],
            )
        )
        if not reply.body or not isinstance(reply.body[0], str):
            raise BusCallFailedError("GetDevice", adapter_path, "no object path in reply")
        return reply.body[0]

    async def subscribe_properties_changed(self) -> None:
        """Start queueing PropertiesChanged signals from every object path."""
        if self._subscribed:
            return
        await self.call(
            _method_call(
                destination=DBUS_SERVICE,
                path=DBUS_PATH,
                interface=DBUS_INTERFACE,
                member="AddMatch",
                signature="s",
                body=[PROPERTIES_CHANGED_MATCH_RULE],
            )
        )
        self._bus.add_message_handler(self._on_message)
        self._subscribed = True
        logger.debug("Subscribed to %s.%s", PROPERTIES_INTERFACE, PROPERTIES_CHANGED)

    def _on_message(self, msg: Message) -> bool:
        if (
            msg.message_type != MessageType.SIGNAL
            or msg.interface != PROPERTIES_INTERFACE
            or msg.member != PROPERTIES_CHANGED
            or not msg.body
            or len(msg.body) < 2
        ):
            return False
        interface, changed = msg.body[0], msg.body[1]
        if not isinstance(interface, str) or not isinstance(changed, dict):
            return False
        invalidated = msg.body[2] if len(msg.body) > 2 else []
        try:
            self._signals.put_nowait(
                PropertiesChangedSignal(interface, changed, invalidated, msg.path)
            )
        except asyncio.QueueFull:
            logger.warning(
                "Dropping PropertiesChanged for %s (signal queue full)", msg.path
            )
        return False  # don't consume

    async def next_signal(self) -> PropertiesChangedSignal:
        """Wait for the next queued PropertiesChanged signal."""
        return await self._signals.get()

    def disconnect(self) -> None:
        """Drop the signal handler and close the bus connection."""
        if self._subscribed:
            self._bus.remove_message_handler(self._on_message)
            self._subscribed = False
        if self.connected:
            self._bus.disconnect()
            logger.info("Disconnected from D-Bus")
