"""File path resolution using platformdirs.

Persistent data (the SQLite database) and user configuration live in the
platform-appropriate directories:
  macOS: ~/Library/Application Support/studio-assistant/
  Linux: ~/.local/share/studio-assistant/ and ~/.config/studio-assistant/
  Windows: %LOCALAPPDATA%/studio-assistant/

STUDIO_ASSISTANT_DATA_DIR overrides the data directory.
"""

import os
from pathlib import Path

import platformdirs

APP_NAME = "studio-assistant"


def get_data_dir() -> Path:
    """Return the directory for persistent data (database)."""
    override = os.environ.get("STUDIO_ASSISTANT_DATA_DIR", "").strip()
    if override:
        return Path(override).expanduser()
    return Path(platformdirs.user_data_dir(APP_NAME, appauthor=False))


def get_config_dir() -> Path:
    """Return the directory for the user-level config file."""
    return Path(platformdirs.user_config_dir(APP_NAME, appauthor=False))


def get_default_db_path() -> Path:
    """Return the default SQLite database file path."""
    return get_data_dir() / "studio-assistant.db"
