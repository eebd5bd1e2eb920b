"""BlueZ D-Bus names and the accessory service UUID."""

import re

# Service UUID advertised by the accessory class this monitor tracks.
# Compared against Device1.UUIDs; not configurable.
TARGET_ACCESSORY_UUID = "74ec2172-0bad-4d01-8f77-997b2be0722a"

# BlueZ D-Bus service and interface names
BLUEZ_SERVICE = "org.bluez"
ADAPTER_INTERFACE = "org.bluez.Adapter1"
DEVICE_INTERFACE = "org.bluez.Device1"
PROPERTIES_INTERFACE = "org.freedesktop.DBus.Properties"
OBJECT_MANAGER_INTERFACE = "org.freedesktop.DBus.ObjectManager"
PROPERTIES_CHANGED = "PropertiesChanged"

# Bus daemon, for match rules
DBUS_SERVICE = "org.freedesktop.DBus"
DBUS_PATH = "/org/freedesktop/DBus"
DBUS_INTERFACE = "org.freedesktop.DBus"

# No path or sender filter: the watcher filters by payload.
PROPERTIES_CHANGED_MATCH_RULE = (
    f"type='signal',interface='{PROPERTIES_INTERFACE}',member='{PROPERTIES_CHANGED}'"
)

# Adapter objects live at /org/bluez/hciN
DEFAULT_ADAPTER_PATH = "/org/bluez/hci0"
ADAPTER_PATH_RE = re.compile(r"^/org/bluez/hci\d+$")

# Device1 properties that must all be present for startup reconciliation
RECONCILE_REQUIRED_PROPERTIES = ("UUIDs", "Connected", "Address", "Name")
