from __future__ import annotations

from dbus_next import Variant

from bt_accessory_monitor.bluez.properties import (
    get_bool,
    get_string,
    get_string_set,
    has_properties,
    unwrap,
)


def test_unwrap_variant_and_plain_values() -> None:
    assert unwrap(Variant("s", "x")) == "x"
    assert unwrap("x") == "x"
    assert unwrap(None) is None


def test_get_string() -> None:
    props = {"Name": Variant("s", "MyBuds"), "Connected": Variant("b", True)}
    assert get_string(props, "Name") == "MyBuds"
    assert get_string(props, "Connected") is None
    assert get_string(props, "Missing") is None


def test_get_bool_rejects_non_bool() -> None:
    props = {"Connected": Variant("b", False), "RSSI": Variant("n", -60), "Plain": True}
    assert get_bool(props, "Connected") is False
    assert get_bool(props, "Plain") is True
    assert get_bool(props, "RSSI") is None
    assert get_bool(props, "Missing") is None


def test_get_string_set() -> None:
    props = {
        "UUIDs": Variant("as", ["a", "b", "a"]),
        "Mixed": ["a", 3, None],
        "Name": Variant("s", "abc"),
    }
    assert get_string_set(props, "UUIDs") == frozenset({"a", "b"})
    assert get_string_set(props, "Mixed") == frozenset({"a"})
    # A bare string is not a set of identifiers
    assert get_string_set(props, "Name") == frozenset()
    assert get_string_set(props, "Missing") == frozenset()


def test_has_properties() -> None:
    props = {"UUIDs": [], "Connected": False, "Address": "x"}
    assert has_properties(props, "UUIDs", "Connected")
    assert not has_properties(props, "UUIDs", "Name")
