"""
Tests for the Connection State Machine
======================================

Uses FakeSerial handles (see conftest.py) to check staging of line
parameters, open/close transitions, error reporting and reads/writes.
"""

import itertools

import pytest
import serial

from serialterm.comms.connection import Connection, ConnectionState
from serialterm.comms.serial import PORT_TIMEOUT, READ_BUFFER_SIZE
from serialterm.errors import DeviceError
from serialterm.profile import (
    VALID_BAUD_RATES,
    VALID_DATA_BITS,
    Handshake,
    Parity,
    PortProfile,
    StopBits,
)


PARITY_CODES = {
    Parity.NONE: "N", Parity.ODD: "O", Parity.EVEN: "E",
    Parity.MARK: "M", Parity.SPACE: "S",
}

STOP_BITS_VALUES = {
    StopBits.ONE: 1, StopBits.ONE_POINT_FIVE: 1.5, StopBits.TWO: 2,
}

HANDSHAKE_FLAGS = {
    Handshake.NONE: (False, False),
    Handshake.XON_XOFF: (True, False),
    Handshake.REQUEST_TO_SEND: (False, True),
    Handshake.REQUEST_TO_SEND_XON_XOFF: (True, True),
}


def open_connection(connection: Connection, name: str = "COM1", **fields):
    profile = PortProfile(name, **fields)
    connection.configure(profile)
    connection.open()
    return profile


# =============================================================================
# Configuration Tests
# =============================================================================

class TestConfigure:
    """configure() followed by open() stages exactly the profile values."""

    @pytest.mark.parametrize("baud_rate", VALID_BAUD_RATES)
    def test_baud_rates(self, connection, baud_rate):
        open_connection(connection, baud_rate=baud_rate)
        assert connection.handle.baudrate == baud_rate

    @pytest.mark.parametrize(
        "data_bits,parity,stop_bits,handshake",
        list(itertools.product(
            VALID_DATA_BITS, list(Parity), list(STOP_BITS_VALUES), list(Handshake),
        )),
    )
    def test_line_parameters(self, connection, data_bits, parity, stop_bits, handshake):
        open_connection(
            connection,
            data_bits=data_bits,
            parity=parity,
            stop_bits=stop_bits,
            handshake=handshake,
        )
        handle = connection.handle
        assert handle.baudrate == 9600
        assert handle.bytesize == data_bits
        assert handle.parity == PARITY_CODES[parity]
        assert handle.stopbits == STOP_BITS_VALUES[stop_bits]
        assert (handle.xonxoff, handle.rtscts) == HANDSHAKE_FLAGS[handshake]

    def test_configure_while_closed_does_not_open(self, connection):
        connection.configure(PortProfile("COM1", baud_rate=300))
        assert connection.state is ConnectionState.CLOSED
        assert connection.handle.baudrate == 300
        assert not connection.handle.is_open

    def test_configure_while_open_keeps_open(self, connection):
        profile = open_connection(connection)
        profile.update(baud_rate=57600)
        connection.configure()
        assert connection.is_open
        assert connection.handle.baudrate == 57600

    def test_stop_bits_none_rejected(self, connection):
        connection.bind(PortProfile("COM1", baud_rate=300, stop_bits=StopBits.NONE))
        with pytest.raises(DeviceError, match="not supported"):
            connection.configure()
        assert connection.handle.baudrate == 9600

    def test_configure_without_profile(self, connection):
        with pytest.raises(DeviceError, match="No port selected"):
            connection.configure()


# =============================================================================
# Open / Close Tests
# =============================================================================

class TestOpenClose:
    """Tests for state transitions."""

    def test_initial_state(self, connection):
        assert connection.state is ConnectionState.CLOSED
        assert connection.current is None
        assert connection.handle is None

    def test_open_applies_timeouts(self, connection):
        open_connection(connection)
        assert connection.state is ConnectionState.OPEN
        assert connection.handle.timeout == PORT_TIMEOUT
        assert connection.handle.write_timeout == PORT_TIMEOUT

    def test_open_twice_rejected(self, connection):
        open_connection(connection)
        with pytest.raises(DeviceError, match="already open"):
            connection.open()
        assert connection.is_open

    def test_open_failure_stays_closed(self, connection, fake_handles):
        connection.configure(PortProfile("COM1"))
        fake_handles["COM1"].open_error = serial.SerialException(
            "[Errno 13] could not open port COM1: Permission denied"
        )
        with pytest.raises(DeviceError, match="Permission denied"):
            connection.open()
        assert connection.state is ConnectionState.CLOSED

    def test_open_failure_not_found(self, connection, fake_handles):
        connection.configure(PortProfile("/dev/ttyUSB9"))
        fake_handles["/dev/ttyUSB9"].open_error = serial.SerialException(
            "[Errno 2] No such file or directory: '/dev/ttyUSB9'"
        )
        with pytest.raises(DeviceError, match="not found"):
            connection.open()

    def test_close_when_closed_is_noop(self, connection):
        """Closing a closed (even unbound) connection does not raise."""
        connection.close()
        connection.close()
        assert connection.state is ConnectionState.CLOSED

    def test_close_releases_handle(self, connection):
        open_connection(connection)
        connection.close()
        assert connection.state is ConnectionState.CLOSED
        assert not connection.handle.is_open

    def test_close_failure_still_closes(self, connection):
        open_connection(connection)
        connection.handle.close_error = OSError("I/O error")
        with pytest.raises(DeviceError, match="Error closing COM1"):
            connection.close()
        assert connection.state is ConnectionState.CLOSED

    def test_shutdown_never_raises(self, connection):
        open_connection(connection)
        connection.handle.close_error = OSError("I/O error")
        connection.shutdown()
        assert connection.state is ConnectionState.CLOSED

    def test_handle_reporting_closed_counts_as_closed(self, connection):
        open_connection(connection)
        connection.handle.is_open = False
        assert connection.state is ConnectionState.CLOSED


# =============================================================================
# Binding Tests
# =============================================================================

class TestBind:
    """Tests for switching the current profile."""

    def test_switching_port_closes_old_one(self, connection, fake_handles):
        open_connection(connection, "COM1")
        connection.bind(PortProfile("COM3"))
        assert not fake_handles["COM1"].is_open
        assert connection.state is ConnectionState.CLOSED
        assert connection.handle is fake_handles["COM3"]
        assert connection.current.name == "COM3"

    def test_rebinding_same_port_keeps_handle(self, connection, fake_handles):
        open_connection(connection, "COM1")
        connection.bind(PortProfile("COM1", baud_rate=300))
        assert connection.handle is fake_handles["COM1"]
        assert connection.is_open
        assert connection.current.baud_rate == 300

    def test_reopen_after_switch(self, connection, fake_handles):
        open_connection(connection, "COM1")
        open_connection(connection, "COM3")
        assert connection.is_open
        assert fake_handles["COM3"].is_open
        assert not fake_handles["COM1"].is_open


# =============================================================================
# Data Transfer Tests
# =============================================================================

class TestReadWrite:
    """Tests for write() and read_available()."""

    def test_write_when_closed_is_ignored(self, connection):
        connection.configure(PortProfile("COM1"))
        assert connection.write(b"typed ahead") == 0
        assert connection.handle.written == []

    def test_write_when_open(self, connection):
        open_connection(connection)
        assert connection.write(b"AT\r") == 3
        assert connection.handle.written == [b"AT\r"]

    def test_write_timeout(self, connection):
        open_connection(connection)
        connection.handle.write_error = serial.SerialTimeoutException("Write timeout")
        with pytest.raises(DeviceError, match="Write timeout on COM1"):
            connection.write(b"x")

    def test_write_failure(self, connection):
        open_connection(connection)
        connection.handle.write_error = serial.SerialException("device gone")
        with pytest.raises(DeviceError, match="Write failed"):
            connection.write(b"x")

    def test_read_when_closed(self, connection):
        assert connection.read_available() == b""

    def test_read_timeout_returns_empty(self, connection):
        open_connection(connection)
        assert connection.read_available() == b""

    def test_read_drains_buffer(self, connection):
        open_connection(connection)
        connection.handle.feed(b"hello world")
        assert connection.read_available() == b"hello world"
        assert connection.handle.in_waiting == 0

    def test_read_caps_at_buffer_size(self, connection):
        open_connection(connection)
        connection.handle.feed(b"x" * (READ_BUFFER_SIZE + 10))
        assert len(connection.read_available()) == READ_BUFFER_SIZE
        assert connection.handle.in_waiting == 10

    def test_read_failure(self, connection):
        open_connection(connection)
        connection.handle.read_error = serial.SerialException("device reports readiness")
        with pytest.raises(DeviceError, match="Read failed"):
            connection.read_available()
