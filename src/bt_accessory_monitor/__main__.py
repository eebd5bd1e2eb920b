"""Entry point for the accessory connection monitor."""

import asyncio
import logging
import signal
import sys

from .bluez.session import BusSession
from .config import MonitorConfig
from .errors import BusUnavailableError
from .resolver import NameResolver
from .watcher import ConnectionWatcher

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(level_name: str) -> None:
    """Configure logging to stdout."""
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        stream=sys.stdout,
    )
    # Quiet noisy libraries
    logging.getLogger("dbus_next").setLevel(logging.WARNING)


async def main() -> None:
    """Watch for accessory connections until signalled to stop."""
    config = MonitorConfig.load()
    setup_logging(config.log_level)

    logger = logging.getLogger(__name__)
    logger.info("Accessory monitor starting...")

    try:
        session = await BusSession.connect()
    except BusUnavailableError as e:
        # No retry: without a bus there is nothing to watch.
        logger.warning("%s", e)
        return

    resolver = NameResolver(
        session,
        cli_tool=config.cli_tool,
        cli_timeout=config.cli_timeout_seconds,
    )
    watcher = ConnectionWatcher(session, resolver)
    watcher.on_connected(
        lambda address, name: logger.info("Device connected: %s (%s)", name, address)
    )
    watcher.on_disconnected(
        lambda address, name: logger.info("Device disconnected: %s (%s)", name, address)
    )

    loop = asyncio.get_running_loop()
    shutdown_event = asyncio.Event()

    def _signal_handler() -> None:
        logger.info("Received shutdown signal")
        shutdown_event.set()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, _signal_handler)

    try:
        if not await watcher.start():
            logger.info("No accessory connected at startup")
        if watcher.subscribed:
            logger.info("Watching for accessory connections. Waiting for shutdown signal...")
            await watcher.run_until(shutdown_event)
    except Exception as e:
        logger.error("Fatal error: %s", e, exc_info=True)
    finally:
        watcher.stop()
        session.disconnect()
        logger.info("Goodbye.")


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
