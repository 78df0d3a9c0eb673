"""Tests for the command line entry point."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import yaml

from logger_bot.__main__ import main, parse_args, run_bot
from logger_bot.core.bot import StartupError


@pytest.fixture
def config_file(tmp_path: Path, config_dict) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(config_dict))
    return path


class TestParseArgs:
    """Test argument parsing."""

    def test_defaults(self) -> None:
        args = parse_args([])
        assert args.config == Path("config/config.yaml")
        assert args.debug is False
        assert args.dry_run is False
        assert args.format == "console"

    def test_all_options(self) -> None:
        args = parse_args(["-c", "bot.yaml", "--debug", "--dry-run", "--format", "json"])
        assert args.config == Path("bot.yaml")
        assert args.debug is True
        assert args.dry_run is True
        assert args.format == "json"

    def test_version(self, capsys) -> None:
        with pytest.raises(SystemExit) as exc_info:
            parse_args(["--version"])
        assert exc_info.value.code == 0
        assert "logger-bot" in capsys.readouterr().out


class TestRunBot:
    """Test the run_bot exit codes."""

    async def test_dry_run(self, config_file: Path) -> None:
        """Test that a valid config exits cleanly without connecting."""
        with patch("logger_bot.core.bot.create_bot") as create_bot:
            assert await run_bot(config_file, dry_run=True) == 0
        create_bot.assert_not_called()

    async def test_missing_config(self, tmp_path: Path) -> None:
        assert await run_bot(tmp_path / "missing.yaml") == 1

    async def test_invalid_config(self, tmp_path: Path, config_dict) -> None:
        """Test that a schema violation exits with an error."""
        config_dict["slack"]["bot_token"] = "not-a-bot-token"
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump(config_dict))

        assert await run_bot(path, dry_run=True) == 1

    async def test_startup_error(self, config_file: Path) -> None:
        """Test that a fatal bootstrap failure exits with an error."""
        bot = MagicMock()
        bot.start = AsyncMock(side_effect=StartupError("remote: invalid_auth"))

        with patch("logger_bot.core.bot.create_bot", AsyncMock(return_value=bot)):
            assert await run_bot(config_file) == 1

    async def test_clean_shutdown(self, config_file: Path) -> None:
        bot = MagicMock()
        bot.start = AsyncMock()

        with patch("logger_bot.core.bot.create_bot", AsyncMock(return_value=bot)):
            assert await run_bot(config_file) == 0
        bot.start.assert_awaited_once()


class TestMain:
    """Test the synchronous entry point."""

    def test_main_dry_run(self, config_file: Path) -> None:
        assert main(["--config", str(config_file), "--dry-run"]) == 0

    def test_main_missing_config(self, tmp_path: Path) -> None:
        assert main(["--config", str(tmp_path / "nope.yaml"), "--format", "json"]) == 1
