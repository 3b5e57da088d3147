"""
serialterm - Interactive Serial Terminal
========================================

This module implements the ``serialterm`` console script.

Usage Examples
--------------
Start the terminal and choose a port with ``.open``:
    $ serialterm

Open a port directly:
    $ serialterm COM3 115200 8 None One None
    $ serialterm /dev/ttyUSB0 9600

Try it without hardware (pyserial loopback):
    $ serialterm loop://

List available ports:
    $ serialterm --list-ports

Exit Codes
----------
0 - Normal ``.exit`` (or end of input)
1 - Device or settings error outside the session
2 - Invalid arguments
3 - Internal error
"""

import logging
from pathlib import Path
from typing import Optional

import click

from serialterm import __version__
from serialterm.cli.errors import handle_cli_exception
from serialterm.comms.serial import format_port_list, list_serial_ports
from serialterm.profile import LINE_FIELDS
from serialterm.session import SessionController
from serialterm.settings import SettingsStore

# Port name plus one value per line parameter
MAX_OPEN_ARGS = 1 + len(LINE_FIELDS)


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(name)s: %(message)s" if verbose else "%(levelname)s: %(message)s",
    )


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument(
    "open_args",
    nargs=-1,
    metavar="[PORT] [BAUD] [DATA_BITS] [PARITY] [STOP_BITS] [HANDSHAKE]",
)
@click.option(
    "--config", "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Settings file (default: per-user app dir, or $SERIALTERM_CONFIG)",
)
@click.option(
    "--list-ports", "-l",
    is_flag=True,
    help="List available serial ports and exit",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Enable verbose (debug) logging",
)
@click.version_option(version=__version__, prog_name="serialterm")
def main(
    open_args: tuple[str, ...],
    config_path: Optional[Path],
    list_ports: bool,
    verbose: bool,
) -> None:
    """
    Simple serial port terminal.

    With a PORT, the port is opened on startup; omitted values are taken
    from the saved settings for that port. Type '.help' inside the
    terminal for the list of commands.
    """
    setup_logging(verbose)

    if len(open_args) > MAX_OPEN_ARGS:
        raise click.BadParameter(
            f"expected at most {MAX_OPEN_ARGS} values, got {len(open_args)}",
            param_hint="PORT ...",
        )

    if list_ports:
        ports = list_serial_ports()
        if not ports:
            click.echo("No serial ports found.")
            return
        click.echo("Available serial ports:")
        click.echo(format_port_list(ports, verbose=verbose))
        return

    try:
        session = SessionController(settings=SettingsStore(config_path))
        session.run(open_args)
    except Exception as e:
        handle_cli_exception(e, verbose)


if __name__ == "__main__":
    main()
