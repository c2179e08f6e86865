"""Tests for settings loading."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from library_circulation.config import LibrarySettings, get_config, reset_config


class TestLibrarySettings:
    def test_defaults(self, monkeypatch, tmp_path):
        monkeypatch.delenv("LIBRARY_DATABASE_PATH")
        monkeypatch.chdir(tmp_path)

        settings = LibrarySettings()

        assert settings.server_name == "library-circulation"
        assert settings.loan_period_days == 14
        assert settings.unknown_placeholder == "Unknown"
        assert settings.transport == "stdio"
        assert settings.notifier_workers == 1
        assert settings.database_path == Path.cwd() / "data" / "library.db"
        assert settings.database_path.parent.is_dir()

    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("LIBRARY_LOAN_PERIOD_DAYS", "21")
        monkeypatch.setenv("LIBRARY_TRANSPORT", "streamable_http")
        monkeypatch.setenv("LIBRARY_DEBUG", "true")

        settings = LibrarySettings()

        assert settings.loan_period_days == 21
        assert settings.transport == "streamable_http"
        assert settings.is_development
        assert settings.server_info["transport"] == "streamable_http"

    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("loan_period_days", 0),
            ("transport", "carrier-pigeon"),
            ("log_level", "LOUD"),
            ("notifier_workers", 0),
        ],
    )
    def test_invalid_values_are_rejected(self, field, value):
        with pytest.raises(ValidationError):
            LibrarySettings(**{field: value})

    def test_database_url_points_at_the_file(self, tmp_path):
        settings = LibrarySettings(database_path=tmp_path / "x" / "lib.db")
        assert settings.get_database_url() == f"sqlite:///{tmp_path / 'x' / 'lib.db'}"
        assert (tmp_path / "x").is_dir()

    def test_get_config_is_cached_until_reset(self, monkeypatch):
        first = get_config()
        assert get_config() is first

        monkeypatch.setenv("LIBRARY_LOAN_PERIOD_DAYS", "30")
        assert get_config().loan_period_days == 14

        reset_config()
        assert get_config().loan_period_days == 30

    def test_configured_path_is_absolute(self):
        assert get_config().database_path.is_absolute()
        assert isinstance(get_config().database_path, Path)
