"""
Tests for Profile Persistence
=============================
"""

import json

import pytest

from serialterm.errors import SettingsError
from serialterm.profile import Color, Parity, PortProfile, StopBits
from serialterm.settings import (
    CONFIG_ENV_VAR,
    SETTINGS_FILENAME,
    SETTINGS_VERSION,
    SettingsStore,
    default_settings_path,
)


class TestDefaultPath:
    """Tests for locating the settings file."""

    def test_environment_override(self, monkeypatch, tmp_path):
        monkeypatch.setenv(CONFIG_ENV_VAR, str(tmp_path / "custom.json"))
        assert default_settings_path() == tmp_path / "custom.json"

    def test_app_dir(self, monkeypatch):
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        path = default_settings_path()
        assert path.name == SETTINGS_FILENAME
        assert "serialterm" in str(path.parent).lower()


class TestLoad:
    """Tests for reading saved profiles."""

    def test_missing_file(self, settings_path):
        assert SettingsStore(settings_path).load() == []

    def test_corrupt_file_is_ignored(self, settings_path, caplog):
        settings_path.write_text("{not json")
        assert SettingsStore(settings_path).load() == []
        assert "Cannot read settings" in caplog.text

    def test_document_without_ports(self, settings_path):
        settings_path.write_text(json.dumps({"version": 1}))
        assert SettingsStore(settings_path).load() == []

    def test_bad_entries_skipped(self, settings_path):
        settings_path.write_text(json.dumps({
            "version": 1,
            "ports": [
                "COM1",
                {"baud_rate": 9600},
                {"name": "COM2", "baud_rate": 2400},
            ],
        }))
        profiles = SettingsStore(settings_path).load()
        assert [p.name for p in profiles] == ["COM2"]
        assert profiles[0].baud_rate == 2400


class TestSave:
    """Tests for writing profiles."""

    def test_round_trip(self, settings_path):
        store = SettingsStore(settings_path)
        profiles = [
            PortProfile("COM1"),
            PortProfile(
                "/dev/ttyUSB0",
                baud_rate=115200,
                parity=Parity.MARK,
                stop_bits=StopBits.TWO,
                text_mode=False,
                receive_color=Color.DARK_GREEN,
            ),
        ]
        store.save(profiles)
        assert store.load() == profiles

    def test_file_format(self, settings_path):
        SettingsStore(settings_path).save([PortProfile("COM3", baud_rate=300)])
        document = json.loads(settings_path.read_text())
        assert document["version"] == SETTINGS_VERSION
        assert document["ports"] == [{
            "name": "COM3",
            "baud_rate": 300,
            "data_bits": 8,
            "parity": "None",
            "stop_bits": "One",
            "handshake": "None",
            "text_mode": True,
            "receive_color": "White",
            "send_color": "Gray",
        }]

    def test_creates_parent_directory(self, tmp_path):
        path = tmp_path / "nested" / "dir" / SETTINGS_FILENAME
        SettingsStore(path).save([])
        assert path.exists()
        assert not path.with_name(SETTINGS_FILENAME + ".tmp").exists()

    def test_save_replaces_previous(self, settings_path):
        store = SettingsStore(settings_path)
        store.save([PortProfile("COM1"), PortProfile("COM2")])
        store.save([PortProfile("COM2")])
        assert [p.name for p in store.load()] == ["COM2"]

    def test_unwritable_location(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("")
        with pytest.raises(SettingsError, match="Cannot save settings"):
            SettingsStore(blocker / SETTINGS_FILENAME).save([])
