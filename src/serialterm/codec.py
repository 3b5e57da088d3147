"""
Line Codec
==========

Stateless conversion between what the operator types and the bytes on
the wire, and between received bytes and what is displayed.

Two representations are supported, selected by the profile's text mode:

Text mode
---------
Typed lines may contain backslash escapes, which are expanded before
the line is encoded as ASCII:

    \\n  LF (0x0A)        \\r  CR (0x0D)        \\t  TAB (0x09)
    \\a  BEL (0x07)       \\b  BS (0x08)        \\f  FF (0x0C)
    \\v  VT (0x0B)        \\e  ESC (0x1B)       \\0  NUL (0x00)
    \\xHH  character HH    \\uHHHH  code point  \\\\  backslash

Any other escaped character stands for itself, so ``\\.`` sends a
leading dot instead of being taken as a command. Characters outside
ASCII are sent as '?', including those written as ``\\x80``-``\\xFF``.

Received bytes are shown as ASCII with control characters passed
through untouched; bytes 0x80-0xFF are shown as '?'.

Hex mode
--------
Typed lines are hex digit pairs, one pair per byte, e.g. ``900391239900``.
Whitespace between pairs is ignored. Received bytes are shown as
uppercase pairs separated by spaces, e.g. ``90 03 91``.
"""

import string
from typing import Final

from serialterm.errors import DecodeError


# =============================================================================
# Constants
# =============================================================================

# Single-character escapes understood in text mode
SIMPLE_ESCAPES: Final[dict[str, str]] = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "e": "\x1b",
    "0": "\x00",
}

HEX_DIGITS: Final[frozenset[str]] = frozenset(string.hexdigits)

# Shown in place of bytes/characters outside 7-bit ASCII
REPLACEMENT: Final[str] = "?"


# =============================================================================
# Escape Handling
# =============================================================================

def unescape(line: str) -> str:
    """
    Expand backslash escape sequences in a typed line.

    Args:
        line: Text as typed by the operator.

    Returns:
        The line with every escape sequence replaced.

    Raises:
        DecodeError: On a trailing lone backslash or a malformed
                     ``\\x``/``\\u`` sequence; index points at the backslash.

    Example:
        >>> unescape(r"A\\nB")
        'A\\nB'
    """
    result = []
    i = 0
    length = len(line)

    while i < length:
        char = line[i]
        if char != "\\":
            result.append(char)
            i += 1
            continue

        if i + 1 >= length:
            raise DecodeError(i, "Illegal \\ at end of line")

        code = line[i + 1]
        if code in SIMPLE_ESCAPES:
            result.append(SIMPLE_ESCAPES[code])
            i += 2
        elif code in ("x", "u"):
            width = 2 if code == "x" else 4
            digits = line[i + 2:i + 2 + width]
            if len(digits) != width or not all(d in HEX_DIGITS for d in digits):
                raise DecodeError(i, f"Invalid \\{code} escape")
            result.append(chr(int(digits, 16)))
            i += 2 + width
        else:
            result.append(code)
            i += 2

    return "".join(result)


def _to_ascii(text: str) -> bytes:
    return text.encode("ascii", errors="replace")


# =============================================================================
# Hex Handling
# =============================================================================

def parse_hex(line: str) -> bytes:
    """
    Convert a string of hex digit pairs to bytes.

    Whitespace may separate pairs but may not split one.

    Args:
        line: Hex text such as ``"414243"`` or ``"41 42 43"``.

    Returns:
        The decoded bytes; nothing is returned on error.

    Raises:
        DecodeError: With the index of the first character that cannot
                     form a valid byte (a non-hex character, or the first
                     digit of an incomplete pair).
    """
    result = bytearray()
    i = 0
    length = len(line)

    while i < length:
        if line[i].isspace():
            i += 1
            continue

        if line[i] not in HEX_DIGITS:
            raise DecodeError(i)
        if i + 1 >= length or line[i + 1].isspace():
            # Lone digit, e.g. the trailing "4" in "41 4"
            raise DecodeError(i)
        if line[i + 1] not in HEX_DIGITS:
            raise DecodeError(i + 1)

        result.append(int(line[i:i + 2], 16))
        i += 2

    return bytes(result)


def format_hex(data: bytes) -> str:
    """Render bytes as uppercase hex pairs separated by spaces."""
    return " ".join(f"{b:02X}" for b in data)


# =============================================================================
# Public API
# =============================================================================

def encode_for_send(line: str, text_mode: bool) -> bytes:
    """
    Convert a typed line to the bytes to transmit.

    Args:
        line: The line as typed (without the terminating newline).
        text_mode: True to unescape and ASCII-encode, False to parse hex.

    Returns:
        Bytes ready for Connection.write().

    Raises:
        DecodeError: If the line is malformed for the active mode.

    Example:
        >>> encode_for_send(r"A\\nB", text_mode=True)
        b'A\\nB'
        >>> encode_for_send("414243", text_mode=False)
        b'ABC'
    """
    if text_mode:
        return _to_ascii(unescape(line))
    return parse_hex(line)


def decode_for_display(data: bytes, text_mode: bool) -> str:
    """
    Convert received bytes to display text.

    Args:
        data: Bytes read from the port.
        text_mode: True for ASCII text, False for hex pairs.

    Returns:
        Text to write to the console.
    """
    if text_mode:
        return "".join(chr(b) if b < 0x80 else REPLACEMENT for b in data)
    return format_hex(data)
