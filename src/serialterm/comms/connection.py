"""
Serial Connection State Machine
===============================

The Connection owns the single platform port handle and the profile
currently bound to it. It is shared between the interactive command
dispatcher and the background receive loop.

State Machine
-------------

    ┌────────┐   open() ok    ┌────────┐
    │ CLOSED │ ─────────────▶ │  OPEN  │
    │        │ ◀───────────── │        │
    └────────┘    close()     └────────┘
       │  ▲                      │
       └──┘ open() failed        └── bind(other port) closes first

- configure() stages line parameters in either state
- write() on a closed connection is silently ignored
- close() is idempotent and always ends CLOSED, even if releasing the
  handle fails (the failure is still reported)

Locking
-------
``Connection.lock`` is a re-entrant lock guarding "current profile +
handle". Every method that touches them takes it, and callers that need
several steps to be atomic (a command handler, a render of received
data) hold it around the whole sequence. The blocking read in
read_available() deliberately runs without the lock so that commands
are not delayed by the read timeout.
"""

import logging
import threading
from enum import Enum
from typing import Any, Callable, Optional

import serial

from serialterm.comms.serial import (
    PORT_TIMEOUT,
    READ_BUFFER_SIZE,
    create_handle,
    describe_open_error,
    stage_settings,
)
from serialterm.errors import DeviceError
from serialterm.profile import PortProfile

# Configure module logger
logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    CLOSED = "closed"
    OPEN = "open"


class Connection:
    """
    Live serial connection bound to one port profile.

    Usage:
        connection = Connection()
        connection.bind(store.get_or_create("COM3"))
        with connection.lock:
            connection.configure()
            connection.open()
            connection.write(b"AT\\r")
        data = connection.read_available()
        connection.close()

    Args:
        handle_factory: Creates an unopened pyserial-compatible handle for
                        a port name. Defaults to serial.serial_for_url.
    """

    def __init__(
        self,
        handle_factory: Callable[[str], Any] = create_handle,
    ) -> None:
        self.lock = threading.RLock()
        self._handle_factory = handle_factory
        self._handle: Optional[Any] = None
        self._current: Optional[PortProfile] = None
        self._state = ConnectionState.CLOSED

    @property
    def current(self) -> Optional[PortProfile]:
        """The profile bound to this connection, if any."""
        return self._current

    @property
    def handle(self) -> Optional[Any]:
        """The underlying port handle (for diagnostics and tests)."""
        return self._handle

    @property
    def state(self) -> ConnectionState:
        """
        Current state.

        A handle that the platform reports closed counts as CLOSED even if
        close() was never called.
        """
        if self._state is ConnectionState.OPEN and self._handle is not None:
            if self._handle.is_open:
                return ConnectionState.OPEN
        return ConnectionState.CLOSED

    @property
    def is_open(self) -> bool:
        return self.state is ConnectionState.OPEN

    # -------------------------------------------------------------------------
    # Binding and Configuration
    # -------------------------------------------------------------------------

    def bind(self, profile: PortProfile) -> None:
        """
        Make profile the current one.

        If a different port is bound, it is closed first and a fresh
        handle is created for the new port name.
        """
        with self.lock:
            if self._handle is not None and self._current is not None:
                if self._current.name == profile.name:
                    self._current = profile
                    return
                self._release()

            self._handle = self._handle_factory(profile.name)
            self._current = profile
            logger.debug("Bound %s", profile.name)

    def configure(self, profile: Optional[PortProfile] = None) -> None:
        """
        Stage line parameters onto the handle without changing state.

        Args:
            profile: Profile to stage; binds it first if it is not the
                     current one. Defaults to the current profile.

        Raises:
            DeviceError: If nothing is bound or a value is unsupported.
        """
        with self.lock:
            if profile is not None and profile is not self._current:
                self.bind(profile)
            if self._current is None or self._handle is None:
                raise DeviceError("No port selected")
            stage_settings(self._handle, self._current)

    # -------------------------------------------------------------------------
    # Open / Close
    # -------------------------------------------------------------------------

    def open(self) -> None:
        """
        Open the bound port with the fixed read/write timeouts.

        Raises:
            DeviceError: If already open, nothing is bound, or the platform
                         refuses the port. The state stays CLOSED.
        """
        with self.lock:
            if self._current is None or self._handle is None:
                raise DeviceError("No port selected")
            if self.is_open:
                raise DeviceError(f"{self._current.name} is already open")
            if self._handle.is_open:
                # Stale handle left open after a device was removed
                self._release()

            self._handle.timeout = PORT_TIMEOUT
            self._handle.write_timeout = PORT_TIMEOUT
            try:
                self._handle.open()
            except (serial.SerialException, OSError, ValueError) as e:
                self._state = ConnectionState.CLOSED
                logger.debug("Open of %s failed: %s", self._current.name, e)
                raise DeviceError(
                    describe_open_error(self._current.name, e)
                ) from e

            self._state = ConnectionState.OPEN
            logger.info("Opened %s", self._current.title)

    def close(self) -> None:
        """
        Close the port. Safe to call when already closed.

        Raises:
            DeviceError: If releasing the handle failed. The connection is
                         CLOSED regardless.
        """
        with self.lock:
            error = self._release()
            if error is not None:
                name = self._current.name if self._current else "port"
                raise DeviceError(f"Error closing {name}: {error}") from error

    def shutdown(self) -> None:
        """Best-effort close at process exit; never raises."""
        with self.lock:
            self._release()

    def _release(self) -> Optional[Exception]:
        """Transition to CLOSED, returning the release failure if any."""
        self._state = ConnectionState.CLOSED
        handle = self._handle
        if handle is None or not handle.is_open:
            return None
        try:
            handle.close()
        except (serial.SerialException, OSError) as e:
            logger.warning("Error closing serial port: %s", e)
            return e
        logger.info("Closed %s", self._current.name if self._current else "port")
        return None

    # -------------------------------------------------------------------------
    # Data Transfer
    # -------------------------------------------------------------------------

    def write(self, data: bytes) -> int:
        """
        Write bytes to the open port.

        Writing to a closed connection does nothing, so the operator can
        type ahead before opening a port.

        Returns:
            Number of bytes written (0 when closed).

        Raises:
            DeviceError: On write timeout or device failure.
        """
        with self.lock:
            if not self.is_open:
                logger.debug("Port closed, %d byte(s) dropped", len(data))
                return 0
            try:
                written = self._handle.write(data)
                self._handle.flush()
            except serial.SerialTimeoutException as e:
                raise DeviceError(f"Write timeout on {self._current.name}") from e
            except (serial.SerialException, OSError) as e:
                raise DeviceError(f"Write failed: {e}") from e
            return len(data) if written is None else written

    def read_available(self) -> bytes:
        """
        Read received bytes, blocking up to the read timeout.

        Waits for at least one byte, then drains whatever else is already
        buffered, up to READ_BUFFER_SIZE bytes. An empty result means the
        timeout expired with nothing received.

        Returns:
            Received bytes; b"" when closed or on timeout.

        Raises:
            DeviceError: If the device fails or disappears mid-read.
        """
        handle = self._handle
        if handle is None or not self.is_open:
            return b""

        try:
            waiting = min(handle.in_waiting, READ_BUFFER_SIZE)
            data = bytes(handle.read(waiting or 1))
            if data and len(data) < READ_BUFFER_SIZE:
                extra = min(handle.in_waiting, READ_BUFFER_SIZE - len(data))
                if extra:
                    data += bytes(handle.read(extra))
        except (serial.SerialException, OSError, TypeError) as e:
            raise DeviceError(f"Read failed: {e}") from e
        return data
