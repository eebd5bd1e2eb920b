"""Typed accessors for BlueZ property maps.

Property maps from ``GetManagedObjects``, ``Get`` and ``PropertiesChanged``
hold ``dbus_next.Variant`` values.  Tests and some callers hand in plain
Python values instead, so every accessor accepts both.
"""

from collections.abc import Iterable, Mapping

from dbus_next import Variant


def unwrap(value):
    """Return the payload of a Variant, or the value itself."""
    if isinstance(value, Variant):
        return value.value
    return value


def get_string(props: Mapping, key: str) -> str | None:
    """Return ``props[key]`` as a string, or None if missing or mistyped."""
    value = unwrap(props.get(key))
    return value if isinstance(value, str) else None


def get_bool(props: Mapping, key: str) -> bool | None:
    """Return ``props[key]`` as a bool, or None if missing or mistyped."""
    value = unwrap(props.get(key))
    return value if isinstance(value, bool) else None


def get_string_set(props: Mapping, key: str) -> frozenset[str]:
    """Return ``props[key]`` as a set of strings (empty if missing).

    Non-string items are dropped rather than failing the whole lookup.
    """
    value = unwrap(props.get(key))
    if value is None or isinstance(value, (str, bytes)):
        return frozenset()
    if not isinstance(value, Iterable):
        return frozenset()
    return frozenset(item for item in value if isinstance(item, str))


def has_properties(props: Mapping, *keys: str) -> bool:
    """True when every key is present in the map."""
    return all(key in props for key in keys)
