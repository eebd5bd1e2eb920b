"""Configuration loader for the accessory monitor.

Reads optional settings from a JSON options file
(/etc/bt_accessory_monitor/options.json, or the path in
BT_ACCESSORY_MONITOR_OPTIONS).  BT_ACCESSORY_MONITOR_LOG_LEVEL overrides
the log level from the file.

The accessory service UUID and the BlueZ storage directories are fixed and
deliberately not part of the configuration.
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

OPTIONS_PATH = "/etc/bt_accessory_monitor/options.json"
OPTIONS_PATH_ENV = "BT_ACCESSORY_MONITOR_OPTIONS"
LOG_LEVEL_ENV = "BT_ACCESSORY_MONITOR_LOG_LEVEL"

_LOG_LEVELS = {"debug", "info", "warning", "error", "critical"}


@dataclass
class MonitorConfig:
    """Runtime options for the monitor."""

    log_level: str = "info"
    cli_tool: str = "bluetoothctl"
    cli_timeout_seconds: float = 2.0

    @classmethod
    def load(cls, path: str | None = None) -> "MonitorConfig":
        """Load options from disk and environment, falling back to defaults."""
        config = cls()

        opts_path = Path(path or os.environ.get(OPTIONS_PATH_ENV, OPTIONS_PATH))
        if opts_path.exists():
            try:
                data = json.loads(opts_path.read_text())
                config._apply(data)
                logger.info("Loaded options from %s", opts_path)
            except (OSError, json.JSONDecodeError, TypeError, ValueError) as e:
                logger.error("Failed to parse options %s: %s, using defaults", opts_path, e)
                config = cls()

        env_level = os.environ.get(LOG_LEVEL_ENV)
        if env_level:
            config.log_level = env_level

        if config.log_level.lower() not in _LOG_LEVELS:
            logger.error("Unknown log level %r, using info", config.log_level)
            config.log_level = "info"
        return config

    def _apply(self, data: dict) -> None:
        if not isinstance(data, dict):
            raise TypeError("options must be a JSON object")
        self.log_level = str(data.get("log_level", self.log_level))
        self.cli_tool = str(data.get("cli_tool", self.cli_tool))
        timeout = float(data.get("cli_timeout_seconds", self.cli_timeout_seconds))
        if timeout <= 0:
            raise ValueError("cli_timeout_seconds must be positive")
        self.cli_timeout_seconds = timeout
