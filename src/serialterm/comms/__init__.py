"""
Serial Communication Module
===========================

This module owns everything that touches the serial port:

- **serial**: pyserial wrappers (enumeration, handle creation, settings)
- **connection**: the open/close state machine and its guard lock
- **receiver**: the background receive loop

Quick Start
-----------
    import threading

    from serialterm.comms import Connection, ReceiveLoop
    from serialterm.console import Console
    from serialterm.profile import PortProfile

    connection = Connection()
    connection.configure(PortProfile("loop://", baud_rate=115200))
    connection.open()

    running = threading.Event()
    running.set()
    ReceiveLoop(connection, Console(), running).start()

    connection.write(b"hello")

Thread Safety
-------------
Connection methods take ``Connection.lock`` themselves. Hold the lock
explicitly when several calls must happen without the receive loop
rendering in between.
"""

# =============================================================================
# Public API Exports
# =============================================================================

from serialterm.comms.connection import Connection, ConnectionState
from serialterm.comms.receiver import IDLE_INTERVAL, ReceiveLoop
from serialterm.comms.serial import (
    PORT_TIMEOUT,
    READ_BUFFER_SIZE,
    PortInfo,
    create_handle,
    format_port_list,
    is_port_url,
    list_port_names,
    list_serial_ports,
    stage_settings,
)

__all__ = [
    # Serial
    "PORT_TIMEOUT",
    "READ_BUFFER_SIZE",
    "PortInfo",
    "create_handle",
    "format_port_list",
    "is_port_url",
    "list_port_names",
    "list_serial_ports",
    "stage_settings",
    # Connection
    "Connection",
    "ConnectionState",
    # Receive loop
    "IDLE_INTERVAL",
    "ReceiveLoop",
]
