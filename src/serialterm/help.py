"""Static usage text shown by ``.help``."""

from typing import Final

from serialterm import __version__
from serialterm.profile import Color

HELP_HINT: Final[str] = "Type '.help' for a list of commands"

USAGE: Final[str] = f"""\
Simple serial port terminal.
Version {__version__}.

serialterm [Port] [Baud rate] [Data bits] [Parity] [Stop bits] [Handshake]

Supported values
  Baud rate: 300, 600, 1200, 2400, 4800, 9600*, 14400, 19200, 38400, 57600, 115200
  Data bits: 5, 6, 7, 8*
  Parity: None*, Odd, Even, Mark, Space
  Stop bits: None, One*, Two, OnePointFive
  Handshake: None*, XOnXOff, RequestToSend, RequestToSendXOnXOff

  *Default values

Interactive commands:
.open [Port] [Baud rate] [Data bits] [Parity] [Stop bits] [Handshake]
  Open a connection; without arguments, prompt for each value

.close
  Close the current connection

.send filename
  Send a file as raw bytes

.hex | .bin
  Input/output in hexadecimal mode

.asc | .text
  Input/output in ASCII mode

.color [received text color] [sent text color]
  Change the colors of received/sent text. Available colors:
  {", ".join(Color.names())}

.exit
  Exit SerialTerm

.help
  Print this help

Usage:

To send some data, type it followed by Enter.
Use escape sequences such as '\\n' (LF) or '\\r' (CR) to send special characters.
To send data that starts with a dot, escape it: '\\.'.

To send binary data, switch to hex mode and type hex digit pairs, e.g.:

900391239900
"""
