"""Tests for data and config path resolution."""

from pathlib import Path
from unittest.mock import patch

from src.utils.paths import (
    get_config_dir,
    get_data_dir,
    get_default_db_path,
)


def test_data_dir_override(monkeypatch, tmp_path):
    monkeypatch.setenv("STUDIO_ASSISTANT_DATA_DIR", str(tmp_path))
    assert get_data_dir() == tmp_path


def test_data_dir_uses_platformdirs_without_override(monkeypatch):
    monkeypatch.setenv("STUDIO_ASSISTANT_DATA_DIR", "  ")
    with patch("src.utils.paths.platformdirs.user_data_dir", return_value="/data/app") as mock:
        assert get_data_dir() == Path("/data/app")
    mock.assert_called_once_with("studio-assistant", appauthor=False)


def test_config_dir_uses_platformdirs():
    with patch("src.utils.paths.platformdirs.user_config_dir", return_value="/cfg/app"):
        assert get_config_dir() == Path("/cfg/app")


def test_default_db_path(monkeypatch, tmp_path):
    monkeypatch.setenv("STUDIO_ASSISTANT_DATA_DIR", str(tmp_path))
    assert get_default_db_path() == tmp_path / "studio-assistant.db"
