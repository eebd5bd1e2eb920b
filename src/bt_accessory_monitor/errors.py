"""Error taxonomy for the accessory monitor."""


class MonitorError(Exception):
    """Base error for bt_accessory_monitor."""


class BusUnavailableError(MonitorError):
    """Raised when the system bus cannot be reached or is not connected."""


class BusCallFailedError(MonitorError):
    """Raised when a single D-Bus method call fails or returns an error."""

    def __init__(self, member: str, path: str, detail: str = "") -> None:
        self.member = member
        self.path = path
        self.detail = detail
        message = f"{member} on {path} failed"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class ExternalToolError(MonitorError):
    """Raised when the device-info CLI exits non-zero, times out or is missing."""
