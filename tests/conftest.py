"""
SerialTerm Test Configuration
=============================

Shared fakes and fixtures:

- FakeSerial: in-memory stand-in for a pyserial handle that records the
  settings staged on it and every chunk written
- RecordingConsole: Console over StringIO that records color changes,
  writes and messages in order
- make_session: builds a SessionController wired to the fakes
"""

import io
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

import pytest
import serial

from serialterm.comms.connection import Connection
from serialterm.console import Console
from serialterm.session import SessionController
from serialterm.settings import SettingsStore


# =============================================================================
# Fakes
# =============================================================================

class FakeSerial:
    """Unopened pyserial-like handle backed by in-memory buffers."""

    def __init__(self, port: Optional[str] = None):
        self.port = port
        self.baudrate = 9600
        self.bytesize = serial.EIGHTBITS
        self.parity = serial.PARITY_NONE
        self.stopbits = serial.STOPBITS_ONE
        self.xonxoff = False
        self.rtscts = False
        self.timeout = None
        self.write_timeout = None
        self.is_open = False
        self.written: list[bytes] = []
        self.rx = bytearray()
        self.open_error: Optional[Exception] = None
        self.close_error: Optional[Exception] = None
        self.write_error: Optional[Exception] = None
        self.read_error: Optional[Exception] = None
        self.open_count = 0

    def open(self) -> None:
        if self.open_error is not None:
            raise self.open_error
        self.is_open = True
        self.open_count += 1

    def close(self) -> None:
        if self.close_error is not None:
            raise self.close_error
        self.is_open = False

    @property
    def in_waiting(self) -> int:
        return len(self.rx)

    def read(self, size: int = 1) -> bytes:
        if self.read_error is not None:
            raise self.read_error
        data = bytes(self.rx[:size])
        del self.rx[:size]
        return data

    def write(self, data: bytes) -> int:
        if self.write_error is not None:
            raise self.write_error
        self.written.append(bytes(data))
        return len(data)

    def flush(self) -> None:
        pass

    def feed(self, data: bytes) -> None:
        """Simulate bytes arriving from the device."""
        self.rx.extend(data)

    @property
    def sent(self) -> bytes:
        return b"".join(self.written)


class RecordingConsole(Console):
    """Console that keeps an ordered log of what the session did."""

    def __init__(self, lines: Sequence[str] = ()):
        stdin = io.StringIO("".join(f"{line}\n" for line in lines))
        super().__init__(stdin=stdin, stdout=io.StringIO())
        self.events: list[tuple] = []

    def set_color(self, color) -> None:
        super().set_color(color)
        self.events.append(("color", color))

    def write(self, text: str) -> None:
        super().write(text)
        self.events.append(("write", text))

    def echo(self, text: str = "") -> None:
        super().echo(text)
        self.events.append(("echo", text))

    @property
    def output(self) -> str:
        return self._out.getvalue()

    @property
    def messages(self) -> list[str]:
        return [event[1] for event in self.events if event[0] == "echo"]


# =============================================================================
# Fixtures
# =============================================================================

@dataclass
class Harness:
    """A session wired to fakes, with handles to inspect them."""

    session: SessionController
    console: RecordingConsole
    settings: SettingsStore
    ports: list[str]
    handles: dict[str, FakeSerial] = field(default_factory=dict)

    @property
    def connection(self) -> Connection:
        return self.session.connection

    @property
    def handle(self) -> FakeSerial:
        """Handle of the currently bound port."""
        return self.connection.handle


@pytest.fixture
def settings_path(tmp_path: Path) -> Path:
    return tmp_path / "ports.json"


@pytest.fixture
def fake_handles() -> dict[str, FakeSerial]:
    return {}


@pytest.fixture
def handle_factory(fake_handles):
    """Handle factory that records every FakeSerial it creates."""
    def factory(name: str) -> FakeSerial:
        handle = FakeSerial(name)
        fake_handles[name] = handle
        return handle
    return factory


@pytest.fixture
def connection(handle_factory) -> Connection:
    return Connection(handle_factory=handle_factory)


@pytest.fixture
def make_session(settings_path, fake_handles, handle_factory):
    """
    Factory fixture: make_session(lines=(), ports=("COM1", "COM3")).

    The session is enumerated (profiles registered, first port bound) but
    its receive loop is not started.
    """
    def make(
        lines: Sequence[str] = (),
        ports: Sequence[str] = ("COM1", "COM3"),
    ) -> Harness:
        port_list = list(ports)
        console = RecordingConsole(lines)
        settings = SettingsStore(settings_path)
        session = SessionController(
            connection=Connection(handle_factory=handle_factory),
            settings=settings,
            console=console,
            list_ports=lambda: list(port_list),
        )
        session._enumerate()
        return Harness(session, console, settings, port_list, fake_handles)
    return make


@pytest.fixture
def console_factory():
    """Factory fixture: console_factory(lines=()) -> RecordingConsole."""
    return RecordingConsole
