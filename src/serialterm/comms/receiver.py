"""
Background Receive Loop
=======================

A single daemon thread that runs for the whole session, draining the
open port and rendering what arrives:

1. Port closed  -> sleep IDLE_INTERVAL and poll again
2. Port open    -> blocking read (up to the 1 s port timeout)
3. Data         -> render under Connection.lock in the receive color,
                   then restore the send color

Rendering holds the same lock as every command handler, so a color or
mode change never lands in the middle of a render. Read failures (for
example a USB adapter being unplugged) are logged at debug level and the
loop carries on; it only stops when the shared running flag is cleared.
"""

import logging
import threading
import time
from typing import Callable, Final

from serialterm.codec import decode_for_display
from serialterm.comms.connection import Connection
from serialterm.console import Console

# Configure module logger
logger = logging.getLogger(__name__)

# Poll interval while the port is closed, in seconds
IDLE_INTERVAL: Final[float] = 0.05


class ReceiveLoop(threading.Thread):
    """
    Perpetual reader for a Connection.

    Args:
        connection: The shared connection to read from.
        console: Where received data is rendered.
        running: Session-wide flag; the loop exits once it is cleared.
        sleep: Sleep function, replaceable in tests.
    """

    def __init__(
        self,
        connection: Connection,
        console: Console,
        running: threading.Event,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        super().__init__(name="serialterm-receive", daemon=True)
        self._connection = connection
        self._console = console
        self._running = running
        self._sleep = sleep

    def run(self) -> None:
        logger.debug("Receive loop started")
        while self._running.is_set():
            self.run_once()
        logger.debug("Receive loop stopped")

    def run_once(self) -> int:
        """
        Perform one loop iteration.

        Returns:
            Number of bytes rendered (0 when idle, on timeout or on error).
        """
        if not self._connection.is_open:
            self._sleep(IDLE_INTERVAL)
            return 0

        try:
            data = self._connection.read_available()
            if data:
                self.render(data)
            return len(data)
        except Exception as e:
            logger.debug("Receive error ignored: %s", e)
            self._sleep(IDLE_INTERVAL)
            return 0

    def render(self, data: bytes) -> None:
        """Show received bytes using the current profile's mode and colors."""
        with self._connection.lock:
            profile = self._connection.current
            if profile is None:
                return
            self._console.set_color(profile.receive_color)
            self._console.write(decode_for_display(data, profile.text_mode))
            self._console.set_color(profile.send_color)
