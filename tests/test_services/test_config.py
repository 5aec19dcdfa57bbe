"""Tests for application configuration."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from fleetsync.config import Settings
from fleetsync.database import ensure_sqlite_directory


class TestSettings:
    def test_default_settings(self) -> None:
        s = Settings(_env_file=None)
        assert s.debug is False
        assert s.port == 8000
        assert s.driver_team_keyword == "CHAUFFEUR"
        assert s.api_token == ""
        assert s.cleanup_batch_size == 100

    def test_env_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FACTORIAL_API_KEY", "from-env")
        monkeypatch.setenv("PAGE_SIZE", "25")
        s = Settings(_env_file=None)
        assert s.factorial_api_key == "from-env"
        assert s.page_size == 25

    def test_settings_from_fixture(self, test_settings: Settings) -> None:
        assert test_settings.debug is True
        assert test_settings.database_url.startswith("sqlite+aiosqlite:///")


class TestMyRentCarCredentials:
    def test_valid_json(self) -> None:
        s = Settings(_env_file=None, myrentcar_login_credentials='{"Login": "a", "Pin": 1234}')
        assert s.myrentcar_credentials() == {"Login": "a", "Pin": "1234"}

    def test_absent(self) -> None:
        assert Settings(_env_file=None).myrentcar_credentials() is None

    @pytest.mark.parametrize("raw", ["not json", "[1, 2]", '"text"'])
    def test_invalid(self, raw: str) -> None:
        s = Settings(_env_file=None, myrentcar_login_credentials=raw)
        assert s.myrentcar_credentials() is None


class TestDatabasePath:
    def test_creates_parent_directory(self, tmp_path: Path) -> None:
        db_file = tmp_path / "nested" / "dir" / "fleet.db"
        ensure_sqlite_directory(f"sqlite+aiosqlite:///{db_file}")
        assert db_file.parent.is_dir()

    def test_ignores_memory_and_other_backends(self, tmp_path: Path) -> None:
        ensure_sqlite_directory("sqlite+aiosqlite:///:memory:")
        ensure_sqlite_directory("postgresql+asyncpg://db/fleet")
        assert not (tmp_path / "nested").exists()


class TestCliEntry:
    def test_cli_entry_uses_app_settings(self) -> None:
        """cli_entry() should use the global app's settings, not create a new Settings()."""
        from fleetsync.main import app, cli_entry

        original_settings = getattr(app.state, "settings", None)
        app.state.settings = Settings(_env_file=None, host="127.0.0.1", port=9999, debug=True)

        try:
            with patch("uvicorn.run") as mock_run:
                cli_entry()

            mock_run.assert_called_once_with(
                "fleetsync.main:app",
                host="127.0.0.1",
                port=9999,
                reload=True,
            )
        finally:
            if original_settings is None:
                del app.state.settings
            else:
                app.state.settings = original_settings
