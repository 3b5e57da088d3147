"""
Port Profiles
=============

This module defines the per-port configuration model and the in-memory
collection that holds one profile per observed port name.

Every field of a PortProfile is constrained to an enumerated domain:

- Baud rate: 300, 600, 1200, 2400, 4800, 9600*, 14400, 19200, 38400,
  57600, 115200
- Data bits: 5, 6, 7, 8*
- Parity: None*, Odd, Even, Mark, Space
- Stop bits: None, One*, Two, OnePointFive
- Handshake: None*, XOnXOff, RequestToSend, RequestToSendXOnXOff
- Colors: the 16-color console palette (receive White*, send Gray*)

(* marks the defaults)

Values typed by the operator are parsed case-insensitively. A value
outside its domain raises ValidationError and the profile keeps its
previous value: PortProfile.update() validates every candidate before
assigning any of them.
"""

import dataclasses
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Final, Iterable, Iterator, Optional, Sequence

from serialterm.errors import ValidationError

# Configure module logger
logger = logging.getLogger(__name__)


# =============================================================================
# Enumerated Domains
# =============================================================================

VALID_BAUD_RATES: Final[tuple[int, ...]] = (
    300, 600, 1200, 2400, 4800, 9600, 14400, 19200, 38400, 57600, 115200,
)

DEFAULT_BAUD_RATE: Final[int] = 9600

VALID_DATA_BITS: Final[tuple[int, ...]] = (5, 6, 7, 8)

DEFAULT_DATA_BITS: Final[int] = 8


class _NamedChoice(Enum):
    """
    Enum whose values are the display names shown to the operator.

    Provides case-insensitive parsing from typed text.
    """

    @classmethod
    def names(cls) -> list[str]:
        """Return the display names in declaration order."""
        return [member.value for member in cls]

    @classmethod
    def lookup(cls, text: str) -> Optional["_NamedChoice"]:
        """Return the member whose name matches text, ignoring case."""
        wanted = text.strip().lower()
        for member in cls:
            if member.value.lower() == wanted:
                return member
        return None

    def __str__(self) -> str:
        return self.value


class Parity(_NamedChoice):
    NONE = "None"
    ODD = "Odd"
    EVEN = "Even"
    MARK = "Mark"
    SPACE = "Space"


class StopBits(_NamedChoice):
    NONE = "None"
    ONE = "One"
    TWO = "Two"
    ONE_POINT_FIVE = "OnePointFive"

    @property
    def short(self) -> str:
        """Numeric form used in the connection summary (8N1 style)."""
        return {
            StopBits.NONE: "0",
            StopBits.ONE: "1",
            StopBits.TWO: "2",
            StopBits.ONE_POINT_FIVE: "1.5",
        }[self]


class Handshake(_NamedChoice):
    NONE = "None"
    XON_XOFF = "XOnXOff"
    REQUEST_TO_SEND = "RequestToSend"
    REQUEST_TO_SEND_XON_XOFF = "RequestToSendXOnXOff"


class Color(_NamedChoice):
    """The 16-color console palette."""

    BLACK = "Black"
    DARK_BLUE = "DarkBlue"
    DARK_GREEN = "DarkGreen"
    DARK_CYAN = "DarkCyan"
    DARK_RED = "DarkRed"
    DARK_MAGENTA = "DarkMagenta"
    DARK_YELLOW = "DarkYellow"
    GRAY = "Gray"
    DARK_GRAY = "DarkGray"
    BLUE = "Blue"
    GREEN = "Green"
    CYAN = "Cyan"
    RED = "Red"
    MAGENTA = "Magenta"
    YELLOW = "Yellow"
    WHITE = "White"


# =============================================================================
# Field Parsing
# =============================================================================

def parse_baud_rate(text: str) -> int:
    """Parse a baud rate, raising ValidationError if not supported."""
    choices = [str(b) for b in VALID_BAUD_RATES]
    if text.strip() not in choices:
        raise ValidationError("baud rate", text, choices)
    return int(text)


def parse_data_bits(text: str) -> int:
    """Parse a data bits value (5-8)."""
    choices = [str(d) for d in VALID_DATA_BITS]
    if text.strip() not in choices:
        raise ValidationError("data bits", text, choices)
    return int(text)


def parse_parity(text: str) -> Parity:
    parity = Parity.lookup(text)
    if parity is None:
        raise ValidationError("parity", text, Parity.names())
    return parity


def parse_stop_bits(text: str) -> StopBits:
    stop_bits = StopBits.lookup(text)
    if stop_bits is None:
        raise ValidationError("stop bits", text, StopBits.names())
    return stop_bits


def parse_handshake(text: str) -> Handshake:
    handshake = Handshake.lookup(text)
    if handshake is None:
        raise ValidationError("handshake", text, Handshake.names())
    return handshake


def select_choice(text: str, choices: Sequence[str], field: str) -> str:
    """
    Resolve operator input against a displayed list of choices.

    The input may be a literal choice (case-insensitive) or a 1-based
    index into the list. Literals win over indexes so that data bits
    "5" means five bits rather than the fifth entry.

    Args:
        text: The typed input (already known to be non-empty).
        choices: The values displayed to the operator.
        field: Field name used in the error message.

    Returns:
        The selected choice, spelled as in ``choices``.

    Raises:
        ValidationError: If the input matches no choice and no index.
    """
    wanted = text.strip()
    for choice in choices:
        if choice.lower() == wanted.lower():
            return choice

    if wanted.isdecimal():
        number = int(wanted)
        if 1 <= number <= len(choices):
            return choices[number - 1]

    raise ValidationError(field, text, choices)


@dataclass(frozen=True)
class FieldSpec:
    """
    Describes one line parameter for the open commands.

    Attributes:
        attr: PortProfile attribute name
        label: Lowercase name used in error messages
        prompt: Capitalized name used in wizard prompts
        choices: Display strings of the enumerated domain
        parse: Converts a display string into the typed value
    """

    attr: str
    label: str
    prompt: str
    choices: tuple[str, ...]
    parse: Callable[[str], Any]

    def format(self, value: Any) -> str:
        """Render a typed value as its display string."""
        return str(value)


# Positional order shared by ".open" and the command line
LINE_FIELDS: Final[tuple[FieldSpec, ...]] = (
    FieldSpec("baud_rate", "baud rate", "Baud rate",
              tuple(str(b) for b in VALID_BAUD_RATES), parse_baud_rate),
    FieldSpec("data_bits", "data bits", "Data bits",
              tuple(str(d) for d in VALID_DATA_BITS), parse_data_bits),
    FieldSpec("parity", "parity", "Parity",
              tuple(Parity.names()), parse_parity),
    FieldSpec("stop_bits", "stop bits", "Stop bits",
              tuple(StopBits.names()), parse_stop_bits),
    FieldSpec("handshake", "handshake", "Handshake",
              tuple(Handshake.names()), parse_handshake),
)


# =============================================================================
# Port Profile
# =============================================================================

@dataclass
class PortProfile:
    """
    Named configuration for one physical port.

    Attributes:
        name: Platform port identifier ('COM3', '/dev/ttyUSB0', 'loop://')
        baud_rate: Line speed, one of VALID_BAUD_RATES
        data_bits: Character size, one of VALID_DATA_BITS
        parity: Parity checking mode
        stop_bits: Number of stop bits
        handshake: Flow control mode
        text_mode: True for ASCII text, False for hex
        receive_color: Color used for received data
        send_color: Color used for typed input and messages
    """

    name: str
    baud_rate: int = DEFAULT_BAUD_RATE
    data_bits: int = DEFAULT_DATA_BITS
    parity: Parity = Parity.NONE
    stop_bits: StopBits = StopBits.ONE
    handshake: Handshake = Handshake.NONE
    text_mode: bool = True
    receive_color: Color = Color.WHITE
    send_color: Color = Color.GRAY

    def __post_init__(self) -> None:
        """Validate every field against its domain."""
        if not isinstance(self.name, str) or not self.name:
            raise ValidationError("port", repr(self.name))
        if self.baud_rate not in VALID_BAUD_RATES:
            raise ValidationError(
                "baud rate", str(self.baud_rate),
                [str(b) for b in VALID_BAUD_RATES],
            )
        if self.data_bits not in VALID_DATA_BITS:
            raise ValidationError(
                "data bits", str(self.data_bits),
                [str(d) for d in VALID_DATA_BITS],
            )
        for attr, enum_cls in (
            ("parity", Parity),
            ("stop_bits", StopBits),
            ("handshake", Handshake),
            ("receive_color", Color),
            ("send_color", Color),
        ):
            value = getattr(self, attr)
            if not isinstance(value, enum_cls):
                raise ValidationError(
                    attr.replace("_", " "), str(value), enum_cls.names()
                )
        if not isinstance(self.text_mode, bool):
            raise ValidationError("text mode", str(self.text_mode))

    def update(self, **changes: Any) -> None:
        """
        Update several fields atomically.

        All candidates are validated before any field is assigned, so a
        rejected value leaves the profile exactly as it was.

        Raises:
            ValidationError: If any candidate is outside its domain.
            TypeError: If a keyword is not a profile field.
        """
        if "name" in changes:
            raise TypeError("Profile name cannot be changed")
        candidate = dataclasses.replace(self, **changes)
        for key in changes:
            setattr(self, key, getattr(candidate, key))

    @property
    def title(self) -> str:
        """
        Connection summary shown as the terminal title.

        Example:
            >>> PortProfile("COM3").title
            'COM3 9600 8N1 None'
        """
        return (
            f"{self.name} {self.baud_rate} "
            f"{self.data_bits}{self.parity.value[0]}{self.stop_bits.short} "
            f"{self.handshake.value}"
        )

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-compatible mapping."""
        return {
            "name": self.name,
            "baud_rate": self.baud_rate,
            "data_bits": self.data_bits,
            "parity": self.parity.value,
            "stop_bits": self.stop_bits.value,
            "handshake": self.handshake.value,
            "text_mode": self.text_mode,
            "receive_color": self.receive_color.value,
            "send_color": self.send_color.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PortProfile":
        """
        Build a profile from a mapping produced by to_dict().

        Fields that are missing or hold values outside their domain fall
        back to the defaults, so a hand-edited settings file never leaves
        a profile with an undefined value.

        Raises:
            ValidationError: If the mapping has no usable port name.
        """
        name = data.get("name")
        if not isinstance(name, str) or not name:
            raise ValidationError("port", repr(name))

        profile = cls(name)
        readers: dict[str, Callable[[Any], Any]] = {
            "baud_rate": lambda v: parse_baud_rate(str(v)),
            "data_bits": lambda v: parse_data_bits(str(v)),
            "parity": lambda v: parse_parity(str(v)),
            "stop_bits": lambda v: parse_stop_bits(str(v)),
            "handshake": lambda v: parse_handshake(str(v)),
            "text_mode": _parse_bool,
            "receive_color": lambda v: _parse_color(str(v)),
            "send_color": lambda v: _parse_color(str(v)),
        }
        for attr, read in readers.items():
            if attr not in data:
                continue
            try:
                profile.update(**{attr: read(data[attr])})
            except ValidationError as e:
                logger.warning("Ignoring stored value for %s: %s", name, e)
        return profile


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    raise ValidationError("text mode", str(value), ["true", "false"])


def _parse_color(text: str) -> Color:
    color = Color.lookup(text)
    if color is None:
        raise ValidationError("color", text, Color.names())
    return color


# =============================================================================
# Profile Store
# =============================================================================

class ProfileStore:
    """
    Keyed collection of port profiles.

    A profile is created the first time its port name is observed and
    lives for the rest of the process; it is updated in place, never
    removed. Persistence is handled by serialterm.settings.

    Usage:
        store = ProfileStore()
        store.register(["COM1", "COM3"])
        profile = store.get_or_create("COM3")
    """

    def __init__(self, profiles: Iterable[PortProfile] = ()) -> None:
        self._profiles: dict[str, PortProfile] = {}
        for profile in profiles:
            self.add(profile)

    def __contains__(self, name: object) -> bool:
        return name in self._profiles

    def __len__(self) -> int:
        return len(self._profiles)

    def __iter__(self) -> Iterator[PortProfile]:
        return iter(list(self._profiles.values()))

    def get(self, name: str) -> Optional[PortProfile]:
        """Return the profile for name, or None."""
        return self._profiles.get(name)

    def add(self, profile: PortProfile) -> PortProfile:
        """
        Insert a profile unless one with the same name exists.

        Returns:
            The stored profile (the existing one on a name clash).
        """
        existing = self._profiles.get(profile.name)
        if existing is not None:
            logger.debug("Duplicate profile %s ignored", profile.name)
            return existing
        self._profiles[profile.name] = profile
        return profile

    def get_or_create(self, name: str) -> PortProfile:
        """Return the profile for name, creating a default one if absent."""
        profile = self._profiles.get(name)
        if profile is None:
            profile = PortProfile(name)
            self._profiles[name] = profile
            logger.debug("Created profile for %s", name)
        return profile

    def register(self, names: Iterable[str]) -> list[PortProfile]:
        """Ensure a profile exists for each enumerated port name."""
        return [self.get_or_create(name) for name in names]

    def profiles(self) -> list[PortProfile]:
        """Snapshot of all profiles, for saving."""
        return list(self._profiles.values())
