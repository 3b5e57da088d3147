"""
Profile Persistence
===================

Port profiles are saved as JSON in the per-user application directory
reported by click (``~/.config/serialterm/ports.json`` on Linux,
``%APPDATA%\\serialterm\\ports.json`` on Windows). The location can be
overridden with the ``SERIALTERM_CONFIG`` environment variable or the
``--config`` command-line option.

File Format
-----------
    {
      "version": 1,
      "ports": [
        {"name": "COM3", "baud_rate": 115200, "data_bits": 8,
         "parity": "None", "stop_bits": "One", "handshake": "None",
         "text_mode": true, "receive_color": "White", "send_color": "Gray"}
      ]
    }

A missing file is an empty profile list. A corrupt file is reported as
a warning and treated as empty, so a bad settings file never prevents
the terminal from starting.
"""

import json
import logging
import os
from pathlib import Path
from typing import Final, Iterable, Optional, Union

import click

from serialterm.errors import SettingsError, ValidationError
from serialterm.profile import PortProfile

# Configure module logger
logger = logging.getLogger(__name__)

APP_NAME: Final[str] = "serialterm"

SETTINGS_FILENAME: Final[str] = "ports.json"

SETTINGS_VERSION: Final[int] = 1

# Environment variable overriding the settings file location
CONFIG_ENV_VAR: Final[str] = "SERIALTERM_CONFIG"


def default_settings_path() -> Path:
    """Return the settings file location, honoring SERIALTERM_CONFIG."""
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path(click.get_app_dir(APP_NAME)) / SETTINGS_FILENAME


class SettingsStore:
    """
    Loads and saves the list of port profiles.

    Args:
        path: Settings file; defaults to default_settings_path().
    """

    def __init__(self, path: Optional[Union[str, Path]] = None) -> None:
        self.path = Path(path) if path is not None else default_settings_path()

    def load(self) -> list[PortProfile]:
        """
        Read the saved profiles.

        Returns:
            Profiles in saved order; empty if there is no usable file.
        """
        if not self.path.exists():
            logger.debug("No settings file at %s", self.path)
            return []

        try:
            document = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning("Cannot read settings %s: %s", self.path, e)
            return []

        entries = document.get("ports") if isinstance(document, dict) else None
        if not isinstance(entries, list):
            logger.warning("Settings %s has no port list, ignored", self.path)
            return []

        profiles = []
        for entry in entries:
            if not isinstance(entry, dict):
                logger.warning("Ignoring malformed port entry: %r", entry)
                continue
            try:
                profiles.append(PortProfile.from_dict(entry))
            except ValidationError as e:
                logger.warning("Ignoring port entry: %s", e)

        logger.debug("Loaded %d profile(s) from %s", len(profiles), self.path)
        return profiles

    def save(self, profiles: Iterable[PortProfile]) -> None:
        """
        Write all profiles, replacing the previous file.

        Raises:
            SettingsError: If the file cannot be written.
        """
        document = {
            "version": SETTINGS_VERSION,
            "ports": [profile.to_dict() for profile in profiles],
        }
        temp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            temp_path.write_text(json.dumps(document, indent=2), encoding="utf-8")
            os.replace(temp_path, self.path)
        except OSError as e:
            raise SettingsError(f"Cannot save settings to {self.path}: {e}") from e

        logger.debug("Saved %d profile(s) to %s", len(document["ports"]), self.path)
