"""
Serial Port Utilities
=====================

This module wraps pyserial for the rest of the package. It handles:

- Port enumeration (fresh on every call; adapters come and go)
- Creation of unopened port handles for device names and URLs
- Mapping of PortProfile line parameters onto a handle
- Translation of open failures into operator-friendly messages

Port Names
----------
Besides platform device names ('COM3', '/dev/ttyUSB0') any pyserial URL
is accepted, which is handy for testing without hardware:

    loop://                   - local loopback
    socket://host:port        - raw TCP
    rfc2217://host:port       - telnet COM port control

Platform Limitations
--------------------
pyserial has no "zero stop bits" setting, so StopBits.NONE is rejected
when staged. Hardware and software flow control are combined from the
single Handshake value.
"""

import logging
from dataclasses import dataclass
from typing import Final, Optional

import serial
import serial.tools.list_ports

from serialterm.errors import DeviceError
from serialterm.profile import Handshake, Parity, PortProfile, StopBits

# Configure module logger
logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Fixed read and write timeout in seconds
PORT_TIMEOUT: Final[float] = 1.0

# Largest single read drained by the receive loop
READ_BUFFER_SIZE: Final[int] = 4096

# USB Vendor IDs for common USB-serial adapters
USB_VENDOR_IDS: Final[dict[int, str]] = {
    0x0403: "FTDI",       # Future Technology Devices International
    0x10C4: "Silicon Labs",  # Silicon Labs CP210x
    0x067B: "Prolific",   # Prolific Technology
    0x1A86: "QinHeng",    # QinHeng Electronics (CH340)
}

PARITY_MAP: Final[dict[Parity, str]] = {
    Parity.NONE: serial.PARITY_NONE,
    Parity.ODD: serial.PARITY_ODD,
    Parity.EVEN: serial.PARITY_EVEN,
    Parity.MARK: serial.PARITY_MARK,
    Parity.SPACE: serial.PARITY_SPACE,
}

STOP_BITS_MAP: Final[dict[StopBits, float]] = {
    StopBits.ONE: serial.STOPBITS_ONE,
    StopBits.ONE_POINT_FIVE: serial.STOPBITS_ONE_POINT_FIVE,
    StopBits.TWO: serial.STOPBITS_TWO,
}

DATA_BITS_MAP: Final[dict[int, int]] = {
    5: serial.FIVEBITS,
    6: serial.SIXBITS,
    7: serial.SEVENBITS,
    8: serial.EIGHTBITS,
}

# Handshake -> (xonxoff, rtscts)
HANDSHAKE_MAP: Final[dict[Handshake, tuple[bool, bool]]] = {
    Handshake.NONE: (False, False),
    Handshake.XON_XOFF: (True, False),
    Handshake.REQUEST_TO_SEND: (False, True),
    Handshake.REQUEST_TO_SEND_XON_XOFF: (True, True),
}


# =============================================================================
# Port Information
# =============================================================================

@dataclass(frozen=True)
class PortInfo:
    """
    Information about an available serial port.

    Attributes:
        device: System device path (e.g., '/dev/ttyUSB0', 'COM3')
        description: Human-readable description from the driver
        manufacturer: Device manufacturer (if available)
        vid: USB Vendor ID (None for non-USB ports)
        pid: USB Product ID (None for non-USB ports)
    """

    device: str
    description: str
    manufacturer: Optional[str] = None
    vid: Optional[int] = None
    pid: Optional[int] = None

    @property
    def vendor_name(self) -> Optional[str]:
        """Return the vendor name for known USB adapters."""
        if self.vid is not None:
            return USB_VENDOR_IDS.get(self.vid)
        return None

    def __str__(self) -> str:
        parts = [self.device]
        if self.description and self.description != self.device:
            parts.append(f"- {self.description}")
        if self.vendor_name:
            parts.append(f"({self.vendor_name})")
        return " ".join(parts)


# =============================================================================
# Port Enumeration
# =============================================================================

def list_serial_ports() -> list[PortInfo]:
    """
    List all serial ports currently present on the system.

    Returns:
        PortInfo objects sorted by device name.
    """
    ports = []
    for port in serial.tools.list_ports.comports():
        ports.append(PortInfo(
            device=port.device,
            description=port.description or "",
            manufacturer=port.manufacturer,
            vid=port.vid,
            pid=port.pid,
        ))
    ports.sort(key=lambda p: p.device)
    logger.debug("Enumerated %d port(s)", len(ports))
    return ports


def list_port_names() -> list[str]:
    """Return the device names of the ports currently present."""
    return [port.device for port in list_serial_ports()]


def is_port_url(name: str) -> bool:
    """Return True if name is a pyserial URL such as 'loop://'."""
    return "://" in name


def format_port_list(ports: list[PortInfo], verbose: bool = False) -> str:
    """
    Format a list of ports for display to the user.

    Args:
        ports: List of PortInfo objects to format.
        verbose: If True, include manufacturer and USB ids.

    Returns:
        Formatted string with one port per line.
    """
    if not ports:
        return "No serial ports found."

    lines = []
    for port in ports:
        line = f"  {port}"
        if verbose:
            if port.manufacturer:
                line += f"\n    Manufacturer: {port.manufacturer}"
            if port.vid is not None and port.pid is not None:
                line += f"\n    USB VID:PID: {port.vid:04X}:{port.pid:04X}"
        lines.append(line)
    return "\n".join(lines)


# =============================================================================
# Handle Management
# =============================================================================

def create_handle(name: str) -> serial.SerialBase:
    """
    Create an unopened handle for a device name or URL.

    Raises:
        DeviceError: If the URL scheme is not supported.
    """
    try:
        handle = serial.serial_for_url(name, do_not_open=True)
    except (ValueError, serial.SerialException) as e:
        raise DeviceError(f"Cannot use port {name}: {e}") from e
    logger.debug("Created %s handle for %s", type(handle).__name__, name)
    return handle


def stage_settings(handle: serial.SerialBase, profile: PortProfile) -> None:
    """
    Apply a profile's line parameters to a handle.

    Works on open and closed handles; pyserial reconfigures an open port
    immediately.

    Raises:
        DeviceError: If a value has no pyserial equivalent.
    """
    if profile.stop_bits not in STOP_BITS_MAP:
        raise DeviceError(
            f"Stop bits {profile.stop_bits} is not supported by this platform"
        )

    xonxoff, rtscts = HANDSHAKE_MAP[profile.handshake]
    try:
        handle.baudrate = profile.baud_rate
        handle.bytesize = DATA_BITS_MAP[profile.data_bits]
        handle.parity = PARITY_MAP[profile.parity]
        handle.stopbits = STOP_BITS_MAP[profile.stop_bits]
        handle.xonxoff = xonxoff
        handle.rtscts = rtscts
    except (ValueError, serial.SerialException) as e:
        raise DeviceError(f"Cannot configure {profile.name}: {e}") from e

    logger.debug("Staged %s", profile.title)


def describe_open_error(device: str, error: Exception) -> str:
    """Turn a pyserial open failure into a message for the operator."""
    error_msg = str(error)

    if "Permission denied" in error_msg or "Access is denied" in error_msg:
        return (
            f"Permission denied accessing {device}. "
            "On Linux, add your user to the 'dialout' group."
        )
    elif "No such file" in error_msg or "not found" in error_msg.lower():
        return f"Serial port not found: {device}"
    elif "busy" in error_msg.lower() or "in use" in error_msg.lower():
        return (
            f"Serial port {device} is busy. "
            "Close any other programs using the port."
        )
    return f"Cannot open {device}: {error}"
