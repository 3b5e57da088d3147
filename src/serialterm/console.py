"""
Console Output Surface
======================

Thin wrapper over click's terminal helpers giving the session a
"current foreground color" model: set a color, write text, restore the
color. Styling and the window title are only emitted when the output is
a terminal; click strips ANSI codes otherwise, so redirected output and
tests see plain text.
"""

from typing import IO, Final, Optional

import click

from serialterm.profile import Color


# Console palette -> click/ANSI color names
CLICK_COLORS: Final[dict[Color, str]] = {
    Color.BLACK: "black",
    Color.DARK_BLUE: "blue",
    Color.DARK_GREEN: "green",
    Color.DARK_CYAN: "cyan",
    Color.DARK_RED: "red",
    Color.DARK_MAGENTA: "magenta",
    Color.DARK_YELLOW: "yellow",
    Color.GRAY: "white",
    Color.DARK_GRAY: "bright_black",
    Color.BLUE: "bright_blue",
    Color.GREEN: "bright_green",
    Color.CYAN: "bright_cyan",
    Color.RED: "bright_red",
    Color.MAGENTA: "bright_magenta",
    Color.YELLOW: "bright_yellow",
    Color.WHITE: "bright_white",
}


class Console:
    """
    Terminal used by the session for prompts, messages and received data.

    Args:
        stdin: Input stream (defaults to click's stdin).
        stdout: Output stream (defaults to click's stdout).
    """

    def __init__(
        self,
        stdin: Optional[IO[str]] = None,
        stdout: Optional[IO[str]] = None,
    ) -> None:
        self._in = stdin if stdin is not None else click.get_text_stream("stdin")
        self._out = stdout if stdout is not None else click.get_text_stream("stdout")
        self.color: Optional[Color] = None
        self.title: str = ""

    def _is_terminal(self) -> bool:
        isatty = getattr(self._out, "isatty", None)
        return bool(isatty and isatty())

    def set_color(self, color: Color) -> None:
        """Switch the foreground color for subsequent output."""
        self.color = color
        click.echo(
            click.style("", fg=CLICK_COLORS[color], reset=False),
            file=self._out,
            nl=False,
        )

    def reset(self) -> None:
        """Restore the terminal's default attributes."""
        self.color = None
        click.echo(click.style("", reset=True), file=self._out, nl=False)

    def write(self, text: str) -> None:
        """Write text without a trailing newline."""
        click.echo(text, file=self._out, nl=False)

    def echo(self, text: str = "") -> None:
        """Write a message line."""
        click.echo(text, file=self._out)

    def set_title(self, title: str) -> None:
        """Set the terminal window title (xterm OSC 0)."""
        self.title = title
        if self._is_terminal():
            self._out.write(f"\x1b]0;{title}\x07")
            self._out.flush()

    def read_line(self) -> Optional[str]:
        """
        Read one line of input.

        Returns:
            The line without its terminator, or None at end of input.
        """
        line = self._in.readline()
        if not line:
            return None
        return line.rstrip("\r\n")

    def prompt(self, text: str) -> Optional[str]:
        """Show text and read the answer; None at end of input."""
        self.write(text)
        return self.read_line()
