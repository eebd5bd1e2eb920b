from __future__ import annotations

import asyncio

import pytest
from dbus_next import Variant

from bt_accessory_monitor.bluez.constants import DEVICE_INTERFACE, TARGET_ACCESSORY_UUID
from bt_accessory_monitor.bluez.session import PropertiesChangedSignal
from bt_accessory_monitor.errors import BusCallFailedError, BusUnavailableError

ADDRESS = "AA:BB:CC:DD:EE:FF"
DEVICE_PATH = "/org/bluez/hci0/dev_aa_bb_cc_dd_ee_ff"
OTHER_UUID = "0000110b-0000-1000-8000-00805f9b34fb"


def device_props(
    address: str = ADDRESS,
    name: str | None = "MyBuds",
    connected: bool = True,
    uuids: tuple[str, ...] = (TARGET_ACCESSORY_UUID,),
) -> dict:
    props = {
        "Address": Variant("s", address),
        "Connected": Variant("b", connected),
        "UUIDs": Variant("as", list(uuids)),
    }
    if name is not None:
        props["Name"] = Variant("s", name)
    return props


class FakeSession:
    """Stands in for BusSession; records every call it receives."""

    def __init__(self, tree: dict | None = None) -> None:
        self.tree = tree if tree is not None else {}
        self.properties: dict[tuple[str, str], object] = {}
        self.adapter_devices: dict[tuple[str, str], str] = {}
        self.tree_error: Exception | None = None
        self.subscribe_error: Exception | None = None
        self.subscribed = False
        self.calls: list[tuple] = []
        self.signals: asyncio.Queue = asyncio.Queue()

    def set_property(self, path: str, name: str, value: object) -> None:
        self.properties[(path, name)] = value

    async def get_managed_objects(self) -> dict:
        self.calls.append(("GetManagedObjects",))
        if self.tree_error is not None:
            raise self.tree_error
        return self.tree

    async def get_property(self, path: str, interface: str, name: str) -> Variant:
        self.calls.append(("Get", path, interface, name))
        assert interface == DEVICE_INTERFACE
        try:
            value = self.properties[(path, name)]
        except KeyError:
            raise BusCallFailedError("Get", path, "org.bluez.Error.DoesNotExist") from None
        if isinstance(value, Exception):
            raise value
        return value

    async def adapter_get_device(self, adapter_path: str, address: str) -> str:
        self.calls.append(("GetDevice", adapter_path, address))
        try:
            return self.adapter_devices[(adapter_path, address)]
        except KeyError:
            raise BusCallFailedError("GetDevice", adapter_path, "UnknownMethod") from None

    async def subscribe_properties_changed(self) -> None:
        self.calls.append(("AddMatch",))
        if self.subscribe_error is not None:
            raise self.subscribe_error
        self.subscribed = True

    def push_signal(self, interface: str, changed: dict, path: str) -> None:
        self.signals.put_nowait(PropertiesChangedSignal(interface, changed, [], path))

    async def next_signal(self) -> PropertiesChangedSignal:
        return await self.signals.get()

    def called(self, member: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == member]


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def unavailable_session() -> FakeSession:
    s = FakeSession()
    s.tree_error = BusUnavailableError("D-Bus connection is not established")
    return s


@pytest.fixture
def no_cli(monkeypatch: pytest.MonkeyPatch) -> list:
    """Fail the test if the CLI tier spawns a process; returns the call log."""
    calls: list = []

    async def fake_exec(*args, **kwargs):
        calls.append(args)
        raise AssertionError(f"Unexpected subprocess: {args}")

    monkeypatch.setattr(asyncio, "create_subprocess_exec", fake_exec)
    return calls
