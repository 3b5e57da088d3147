"""
SerialTerm - Interactive Serial Port Terminal
=============================================

This package provides a console terminal for talking to a device on a
serial port. The operator picks a port and its line parameters, types
text or hex which is sent to the device, and sees everything the device
sends back, in color, while typing.

Main Components
---------------
- **profile**: Per-port settings (baud, data bits, parity, stop bits,
  handshake, text/hex mode, colors) and the profile collection

- **codec**: Conversion between typed lines, wire bytes and display text

- **comms**: The serial connection state machine and the background
  receive loop

- **session**: The interactive command dispatcher

- **settings**: Saving profiles between sessions

Quick Start
-----------
Run the terminal:
    $ serialterm
    $ serialterm COM3 115200
    $ serialterm loop://

Or drive a session from code:
    >>> from serialterm import SessionController
    >>> session = SessionController()
    >>> session.run(["loop://"])
"""

__version__ = "1.0.0"

# =============================================================================
# Public API Exports
# =============================================================================

from serialterm.codec import decode_for_display, encode_for_send
from serialterm.comms import Connection, ConnectionState, ReceiveLoop
from serialterm.console import Console
from serialterm.errors import (
    DecodeError,
    DeviceError,
    SerialTermError,
    SettingsError,
    ValidationError,
)
from serialterm.profile import (
    Color,
    Handshake,
    Parity,
    PortProfile,
    ProfileStore,
    StopBits,
)
from serialterm.session import SessionController
from serialterm.settings import SettingsStore

__all__ = [
    "__version__",
    # Codec
    "encode_for_send",
    "decode_for_display",
    # Comms
    "Connection",
    "ConnectionState",
    "ReceiveLoop",
    # Console
    "Console",
    # Errors
    "SerialTermError",
    "ValidationError",
    "DecodeError",
    "DeviceError",
    "SettingsError",
    # Profiles
    "Color",
    "Handshake",
    "Parity",
    "PortProfile",
    "ProfileStore",
    "StopBits",
    # Session
    "SessionController",
    "SettingsStore",
]
