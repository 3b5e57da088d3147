"""
Tests for the serialterm Command
================================

Runs the click command through CliRunner with port enumeration and the
session patched where real hardware would be needed.
"""

import json
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from serialterm import __version__
from serialterm.cli.errors import ExitCode
from serialterm.cli.serialterm import MAX_OPEN_ARGS, main
from serialterm.comms.serial import PortInfo
from serialterm.errors import SettingsError


@pytest.fixture
def runner():
    return CliRunner()


class TestOptions:
    """Tests for options that exit before a session starts."""

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help(self, runner):
        result = runner.invoke(main, ["-h"])
        assert result.exit_code == 0
        assert "--list-ports" in result.output

    def test_list_ports(self, runner):
        ports = [
            PortInfo("/dev/ttyS0", "ttyS0"),
            PortInfo("/dev/ttyUSB0", "USB Serial", vid=0x0403, pid=0x6001),
        ]
        with patch("serialterm.cli.serialterm.list_serial_ports", return_value=ports):
            result = runner.invoke(main, ["--list-ports"])
        assert result.exit_code == 0
        assert "Available serial ports:" in result.output
        assert "/dev/ttyUSB0 - USB Serial" in result.output
        assert "/dev/ttyS0" in result.output

    def test_list_ports_verbose(self, runner):
        ports = [PortInfo("/dev/ttyUSB0", "USB Serial", vid=0x0403, pid=0x6001)]
        with patch("serialterm.cli.serialterm.list_serial_ports", return_value=ports):
            result = runner.invoke(main, ["-l", "-v"])
        assert "USB VID:PID: 0403:6001" in result.output

    def test_list_ports_empty(self, runner):
        with patch("serialterm.cli.serialterm.list_serial_ports", return_value=[]):
            result = runner.invoke(main, ["-l"])
        assert result.exit_code == 0
        assert "No serial ports found." in result.output

    def test_too_many_arguments(self, runner):
        args = ["COM1", "9600", "8", "None", "One", "None", "extra"]
        assert len(args) > MAX_OPEN_ARGS
        result = runner.invoke(main, args)
        assert result.exit_code == 2


class TestSession:
    """Tests for starting the interactive session."""

    def test_arguments_passed_to_session(self, runner, tmp_path):
        config = tmp_path / "ports.json"
        with patch("serialterm.cli.serialterm.SessionController") as controller:
            result = runner.invoke(main, ["--config", str(config), "COM3", "115200"])

        assert result.exit_code == 0
        settings = controller.call_args.kwargs["settings"]
        assert settings.path == config
        controller.return_value.run.assert_called_once_with(("COM3", "115200"))

    @pytest.mark.parametrize("error,code", [
        (SettingsError("Cannot save settings"), ExitCode.DEVICE_ERROR),
        (PermissionError("settings directory not writable"), ExitCode.INVALID_ARGS),
        (RuntimeError("boom"), ExitCode.INTERNAL_ERROR),
    ])
    def test_escaping_errors_map_to_exit_codes(self, runner, error, code):
        session = MagicMock()
        session.run.side_effect = error
        with patch("serialterm.cli.serialterm.SessionController", return_value=session):
            result = runner.invoke(main, [])
        assert result.exit_code == code

    def test_exit_command_ends_session(self, runner, tmp_path):
        config = tmp_path / "ports.json"
        with patch("serial.tools.list_ports.comports", return_value=[]):
            result = runner.invoke(main, ["--config", str(config)], input=".exit\n")

        assert result.exit_code == 0
        assert "Type '.help' for a list of commands" in result.output
        document = json.loads(config.read_text())
        assert document == {"version": 1, "ports": []}

    def test_url_port_opened_from_command_line(self, runner, tmp_path):
        config = tmp_path / "ports.json"
        with patch("serial.tools.list_ports.comports", return_value=[]):
            result = runner.invoke(
                main,
                ["--config", str(config), "loop://", "115200"],
                input=".exit\n",
            )

        assert result.exit_code == 0
        assert "Connected..." in result.output
        document = json.loads(config.read_text())
        assert document["ports"][0]["name"] == "loop://"
        assert document["ports"][0]["baud_rate"] == 115200
