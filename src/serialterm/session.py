"""
Interactive Session
===================

The SessionController ties the pieces together. It reads operator lines,
dispatches dot-commands, encodes and sends everything else, and runs the
background receive loop next to the input loop.

Commands
--------
    .open [port] [baud] [bits] [parity] [stop] [handshake]
    .close
    .send <file>
    .hex | .bin
    .asc | .text
    .color [receive] [send]
    .exit
    .help

Every handler that touches the current profile or the port handle holds
``Connection.lock`` for its whole duration, the same lock the receive
loop takes while rendering. Errors are reported to the operator as
messages; nothing short of ``.exit`` (or end of input) ends the session.
"""

import logging
import threading
from pathlib import Path
from typing import Callable, Final, Optional, Sequence, Union

from serialterm.codec import encode_for_send
from serialterm.comms.connection import Connection
from serialterm.comms.receiver import ReceiveLoop
from serialterm.comms.serial import PORT_TIMEOUT, is_port_url, list_port_names
from serialterm.console import Console
from serialterm.errors import DeviceError, SerialTermError, SettingsError, ValidationError
from serialterm.help import HELP_HINT, USAGE
from serialterm.profile import (
    LINE_FIELDS,
    Color,
    PortProfile,
    ProfileStore,
    select_choice,
)
from serialterm.settings import SettingsStore

# Configure module logger
logger = logging.getLogger(__name__)

COMMAND_MARKER: Final[str] = "."

# Files are streamed to the port in chunks of this size
FILE_CHUNK_SIZE: Final[int] = 1024

CLOSED_TITLE: Final[str] = "Closed"

# Handler signature: (arguments after the command word, raw remainder)
CommandHandler = Callable[[list[str], str], None]


class SessionController:
    """
    Top-level orchestrator of one terminal session.

    Args:
        connection: Shared port connection (a new one by default).
        store: Port profiles (empty by default; filled from settings).
        settings: Profile persistence.
        console: Input/output surface.
        list_ports: Returns the currently present port names.
        running: Session-wide running flag, cleared by ``.exit``.

    Usage:
        session = SessionController()
        session.run(["COM3", "115200"])
    """

    def __init__(
        self,
        connection: Optional[Connection] = None,
        store: Optional[ProfileStore] = None,
        settings: Optional[SettingsStore] = None,
        console: Optional[Console] = None,
        list_ports: Callable[[], list[str]] = list_port_names,
        running: Optional[threading.Event] = None,
    ) -> None:
        self.connection = connection if connection is not None else Connection()
        self.store = store if store is not None else ProfileStore()
        self.settings = settings if settings is not None else SettingsStore()
        self.console = console if console is not None else Console()
        self._list_ports = list_ports

        if running is None:
            running = threading.Event()
            running.set()
        self.running = running

        self.receiver = ReceiveLoop(self.connection, self.console, self.running)

        self._commands: dict[str, CommandHandler] = {
            ".open": self._cmd_open,
            ".close": self._cmd_close,
            ".send": self._cmd_send,
            ".hex": self._cmd_hex,
            ".bin": self._cmd_hex,
            ".asc": self._cmd_text,
            ".text": self._cmd_text,
            ".color": self._cmd_color,
            ".exit": self._cmd_exit,
            ".help": self._cmd_help,
        }

    @property
    def current(self) -> Optional[PortProfile]:
        """The profile bound to the connection."""
        return self.connection.current

    # -------------------------------------------------------------------------
    # Session Lifecycle
    # -------------------------------------------------------------------------

    def start(self, open_args: Sequence[str] = ()) -> None:
        """
        Prepare the session and start the receive loop.

        Loads saved profiles (the first becomes current), registers the
        ports present right now, and opens a port if arguments are given.
        """
        for profile in self.settings.load():
            stored = self.store.add(profile)
            if self.current is None:
                self._select(stored)
        self._enumerate()

        self.console.set_title(CLOSED_TITLE)
        self._use_send_color()
        self.console.echo(HELP_HINT)
        self.console.echo()

        self.receiver.start()

        if open_args:
            self.execute(" ".join([".open", *open_args]))

    def run(self, open_args: Sequence[str] = ()) -> None:
        """Run the interactive loop until ``.exit`` or end of input."""
        self.start(open_args)
        try:
            while self.running.is_set():
                self._use_send_color()
                line = self.console.read_line()
                if line is None:
                    self.exit()
                    break
                self.handle_line(line)
        except KeyboardInterrupt:
            self.exit()
        finally:
            self.stop()

    def exit(self) -> None:
        """Clear the running flag and persist profiles."""
        self.running.clear()
        self._save()

    def stop(self) -> None:
        """Wait for the receive loop and release the port."""
        self.running.clear()
        if self.receiver.is_alive():
            self.receiver.join(timeout=2 * PORT_TIMEOUT)
        self.connection.shutdown()
        self.console.reset()

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    def handle_line(self, line: str) -> None:
        """Dispatch one input line as a command or as payload."""
        if line.startswith(COMMAND_MARKER):
            self.execute(line.rstrip())
        else:
            self.send_line(line)

    def execute(self, line: str) -> None:
        """
        Run a dot-command line.

        Every SerialTermError raised by a handler is shown to the operator.
        """
        words = line.split()
        if not words:
            return

        command = words[0].lower()
        handler = self._commands.get(command)
        if handler is None:
            self._say(f"Unknown command {words[0]} (type '.help')")
            return

        rest = line.strip()[len(words[0]):].strip()
        logger.debug("Command %s %s", command, rest)
        try:
            handler(words[1:], rest)
        except SerialTermError as e:
            self._say(str(e))

    def send_line(self, line: str) -> None:
        """Encode a payload line in the current mode and write it."""
        with self.connection.lock:
            profile = self.current
            text_mode = profile.text_mode if profile is not None else True
            try:
                data = encode_for_send(line, text_mode)
                self.connection.write(data)
            except SerialTermError as e:
                self._say(str(e))

    # -------------------------------------------------------------------------
    # Open / Close
    # -------------------------------------------------------------------------

    def _cmd_open(self, args: list[str], rest: str) -> None:
        if args:
            self.open_with_args(args)
        else:
            self.open_interactive()

    def open_with_args(self, words: Sequence[str]) -> None:
        """
        Non-interactive open: ``port [baud] [bits] [parity] [stop] [handshake]``.

        Omitted trailing values keep the profile's current ones. Every
        supplied value is validated before anything changes; one bad value
        aborts the command and leaves the profile untouched.

        Raises:
            ValidationError: For an invalid line parameter.
            DeviceError: If the port cannot be opened.
        """
        names = self._enumerate()
        if not names and not is_port_url(words[0]):
            self._say("No serial port detected")
            return

        name = self._match_port(words[0], names)
        if name is None:
            self._say(f"Unknown port {words[0]}")
            return

        changes = {}
        for param, text in zip(LINE_FIELDS, words[1:]):
            changes[param.attr] = param.parse(text)

        with self.connection.lock:
            profile = self.store.get_or_create(name)
            profile.update(**changes)
            self._connect(profile)

    def open_interactive(self) -> None:
        """
        Wizard: prompt for port, baud, data bits, parity, stop bits and
        handshake in turn, then open.

        Each prompt accepts an empty line (keep the shown value), a value
        or its number in the list. Invalid answers repeat the prompt.
        """
        self._close_quietly()

        names = self._enumerate()
        if not names:
            self._say("No serial port detected")
            return

        current = self.current
        default = current.name if current is not None else names[0]
        port = self._ask("Port", names, default, "port", allow_url=True)
        if port is None:
            self._say("Open cancelled")
            return

        profile = self.store.get_or_create(port)
        changes = {}
        for param in LINE_FIELDS:
            answer = self._ask(
                param.prompt,
                param.choices,
                param.format(getattr(profile, param.attr)),
                param.label,
            )
            if answer is None:
                self._say("Open cancelled")
                return
            changes[param.attr] = param.parse(answer)

        with self.connection.lock:
            profile.update(**changes)
            self._connect(profile)

    def _ask(
        self,
        prompt: str,
        choices: Sequence[str],
        default: str,
        field: str,
        allow_url: bool = False,
    ) -> Optional[str]:
        """Prompt until a valid choice is entered; None at end of input."""
        while True:
            self.console.echo()
            for number, choice in enumerate(choices, start=1):
                self.console.echo(f"    {number}\t{choice}")

            answer = self.console.prompt(f"{prompt} [{default}]> ")
            if answer is None:
                return None

            answer = answer.strip() or default
            if allow_url and is_port_url(answer):
                return answer
            try:
                return select_choice(answer, choices, field)
            except ValidationError as e:
                self.console.echo(str(e))

    def _connect(self, profile: PortProfile) -> None:
        """Close, rebind, configure and open; persist on success."""
        with self.connection.lock:
            self._close_quietly()
            self.connection.bind(profile)
            self.connection.configure()
            self.connection.open()

            self.console.set_title(profile.title)
            self._save()
            self._use_send_color()
            self.console.echo("Connected...")
            self.console.echo()

    def _cmd_close(self, args: list[str], rest: str) -> None:
        with self.connection.lock:
            try:
                self.connection.close()
            finally:
                self.console.set_title(CLOSED_TITLE)

    def _close_quietly(self) -> None:
        with self.connection.lock:
            try:
                self.connection.close()
            except DeviceError as e:
                self._say(str(e))
            self.console.set_title(CLOSED_TITLE)

    # -------------------------------------------------------------------------
    # File Transfer
    # -------------------------------------------------------------------------

    def _cmd_send(self, args: list[str], rest: str) -> None:
        path_text = rest.replace('"', " ").strip()
        if not path_text:
            self._say("Usage: .send filename")
            return
        self.send_file(path_text)

    def send_file(self, path: Union[str, Path]) -> int:
        """
        Stream a file's raw bytes to the open port.

        The file is sent in FILE_CHUNK_SIZE chunks regardless of the
        text/hex mode. A leading ``~`` is expanded. A failure stops the
        transfer and is reported; chunks already written stay sent.

        Returns:
            Number of bytes sent.
        """
        with self.connection.lock:
            if not self.connection.is_open:
                self._say("Port is closed, nothing sent")
                return 0

            sent = 0
            try:
                path = Path(path).expanduser()
                with open(path, "rb") as source:
                    while True:
                        chunk = source.read(FILE_CHUNK_SIZE)
                        if not chunk:
                            break
                        self.connection.write(chunk)
                        sent += len(chunk)
                        logger.debug("Sent chunk of %d bytes", len(chunk))
            except OSError as e:
                self._say(f"Cannot send {path}: {e.strerror or e} ({sent} bytes sent)")
                return sent
            except (RuntimeError, ValueError) as e:
                # Unknown ~user, or a NUL in the path
                self._say(f"Cannot send {path}: {e} ({sent} bytes sent)")
                return sent
            except DeviceError as e:
                self._say(f"{e} ({sent} bytes sent)")
                return sent

            self._say(f"{sent} bytes sent")
            return sent

    # -------------------------------------------------------------------------
    # Display Settings
    # -------------------------------------------------------------------------

    def _cmd_hex(self, args: list[str], rest: str) -> None:
        self._set_text_mode(False)

    def _cmd_text(self, args: list[str], rest: str) -> None:
        self._set_text_mode(True)

    def _set_text_mode(self, text_mode: bool) -> None:
        with self.connection.lock:
            self._require_current().text_mode = text_mode
        self._save()

    def _cmd_color(self, args: list[str], rest: str) -> None:
        """Change receive/send colors; unknown names leave that side as is."""
        with self.connection.lock:
            profile = self._require_current()
            changes = {}
            if len(args) > 0:
                receive = Color.lookup(args[0])
                if receive is not None:
                    changes["receive_color"] = receive
            if len(args) > 1:
                send = Color.lookup(args[1])
                if send is not None:
                    changes["send_color"] = send
            profile.update(**changes)
            self.console.set_color(profile.send_color)
        self._save()

    def _cmd_exit(self, args: list[str], rest: str) -> None:
        self.exit()

    def _cmd_help(self, args: list[str], rest: str) -> None:
        self._say(USAGE)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _enumerate(self) -> list[str]:
        """Poll the platform for ports and register new ones."""
        names = self._list_ports()
        profiles = self.store.register(names)
        if self.current is None and profiles:
            self._select(profiles[0])
        return names

    def _select(self, profile: PortProfile) -> None:
        try:
            self.connection.bind(profile)
        except DeviceError as e:
            logger.warning("Cannot select %s: %s", profile.name, e)

    @staticmethod
    def _match_port(text: str, names: Sequence[str]) -> Optional[str]:
        for name in names:
            if name.lower() == text.lower():
                return name
        if is_port_url(text):
            return text
        return None

    def _require_current(self) -> PortProfile:
        profile = self.current
        if profile is None:
            raise SerialTermError("No port selected")
        return profile

    def _use_send_color(self) -> None:
        with self.connection.lock:
            if self.current is not None:
                self.console.set_color(self.current.send_color)

    def _say(self, text: str) -> None:
        """Print a message without interleaving with received data."""
        with self.connection.lock:
            self.console.echo(text)

    def _save(self) -> None:
        try:
            self.settings.save(self.store.profiles())
        except SettingsError as e:
            self._say(str(e))
