"""
SerialTerm Error Hierarchy
==========================

This module defines the exception hierarchy for the whole package.
All exceptions inherit from SerialTermError, allowing callers to catch
every terminal-related error with a single except clause.

Exception Hierarchy
-------------------
SerialTermError (base)
├── ValidationError - user value outside its enumerated domain
├── DecodeError - malformed hex or escape sequence in typed input
├── DeviceError - platform open/read/write/close failure
└── SettingsError - profile persistence failure

Design Philosophy
-----------------
Errors are raised where they are detected and converted into an
operator-visible message at the command-dispatch boundary. None of them
terminates an interactive session.
"""

from typing import Optional, Sequence


# =============================================================================
# Base Exception Class
# =============================================================================

class SerialTermError(Exception):
    """
    Base exception for all SerialTerm errors.

        try:
            connection.open()
        except SerialTermError as e:
            print(f"Error: {e}")
    """
    pass


# =============================================================================
# Input Errors
# =============================================================================

class ValidationError(SerialTermError):
    """
    A user-supplied value is outside its enumerated domain.

    The message lists the valid values so it can be shown to the
    operator as-is, e.g.:

        Invalid baud rate value 9601 [300, 600, 1200, ...]

    Attributes:
        field: Human-readable field name ("baud rate", "parity", ...)
        value: The rejected text
        choices: The valid values, in display order
    """

    def __init__(
        self,
        field: str,
        value: str,
        choices: Optional[Sequence[str]] = None,
    ):
        self.field = field
        self.value = value
        self.choices = list(choices) if choices else []
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        message = f"Invalid {self.field} value {self.value}"
        if self.choices:
            message += f" [{', '.join(self.choices)}]"
        return message


class DecodeError(SerialTermError):
    """
    Malformed input line that cannot be converted to bytes.

    Raised by the codec for bad hex strings and bad escape sequences.
    No bytes are transmitted when this is raised.

    Attributes:
        index: Zero-based character index of the offending character
        reason: Short description of the problem
    """

    def __init__(self, index: int, reason: str = "Invalid hex string"):
        self.index = index
        self.reason = reason
        super().__init__(f"{reason} on index {index}")


# =============================================================================
# Device Errors
# =============================================================================

class DeviceError(SerialTermError):
    """
    Platform serial port failure.

    Raised when:
    - Serial port not found, busy or permission denied
    - A write times out or the device was removed
    - A setting has no platform equivalent

    The connection stays (or returns to) the closed state.
    """
    pass


# =============================================================================
# Persistence Errors
# =============================================================================

class SettingsError(SerialTermError):
    """Saving or loading the port profiles failed."""
    pass
