"""Entry point for running logger-bot.

This module provides the main entry point for logger-bot.
It handles:
- Configuration loading
- Logging setup with secret sanitization
- Bot instantiation and lifecycle
"""

import argparse
import asyncio
import sys
from pathlib import Path

import structlog
from pydantic import ValidationError

from logger_bot._version import __version__

log = structlog.get_logger()


def setup_logging(debug: bool = False, log_format: str = "console") -> None:
    """Configure structured logging before the config file is read.

    Args:
        debug: Enable debug logging if True
        log_format: Output format ("json" or "console")
    """
    from logger_bot.utils.logging import LogFormat, LogLevel, configure_logging

    level = LogLevel.DEBUG if debug else LogLevel.INFO
    configure_logging(level=level, log_format=LogFormat(log_format.lower()))


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="logger-bot",
        description="logger-bot - picks the meeting logger from a roster over Slack Socket Mode",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Path("config/config.yaml"),
        help="Path to configuration file (default: config/config.yaml)",
    )

    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Parse config and validate without connecting",
    )

    parser.add_argument(
        "--format",
        choices=["json", "console"],
        default="console",
        help="Log output format (default: console)",
    )

    return parser.parse_args(argv)


async def run_bot(config_path: Path, dry_run: bool = False, debug: bool = False) -> int:
    """Run logger-bot.

    Args:
        config_path: Path to configuration file
        dry_run: If True, only validate config without connecting
        debug: Keep DEBUG level even if the config asks for less

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    log.info("starting_logger_bot", version=__version__, config_path=str(config_path))

    try:
        from logger_bot.config.loader import load_config

        config = load_config(config_path)
        log.info("configuration_loaded")

        from logger_bot.utils.logging import configure_logging
        from logger_bot.utils.security import mask_config_value

        configure_logging(
            level="DEBUG" if debug else config.logging.level,
            log_format=config.logging.format,
            file_path=config.logging.file.path if config.logging.file.enabled else None,
            file_enabled=config.logging.file.enabled,
        )

        if dry_run:
            log.info(
                "dry_run_mode_config_valid",
                app_token=mask_config_value("app_token", config.slack.app_token),
                bot_token=mask_config_value("bot_token", config.slack.bot_token),
                default_channel=config.slack.default_channel,
                roster_size=len(config.roster.members),
            )
            return 0

        from logger_bot.core.bot import StartupError, create_bot

        bot = await create_bot(config)
        try:
            await bot.start()
        except StartupError as e:
            log.error("startup_failed", error=str(e))
            return 1

        return 0

    except FileNotFoundError as e:
        log.error("configuration_file_not_found", path=str(config_path), error=str(e))
        return 1
    except (ValueError, ValidationError) as e:
        log.error("configuration_invalid", error=str(e))
        return 1
    except Exception as e:
        log.exception("fatal_error", error=str(e))
        return 1


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    setup_logging(debug=args.debug, log_format=args.format)

    try:
        return asyncio.run(run_bot(args.config, args.dry_run, args.debug))
    except KeyboardInterrupt:
        log.info("shutting_down_gracefully")
        return 0


if __name__ == "__main__":
    sys.exit(main())
