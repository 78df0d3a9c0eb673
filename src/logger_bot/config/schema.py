"""Pydantic models for configuration schema."""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SlackConfig(BaseModel):
    """Slack-specific configuration."""

    app_token: str
    bot_token: str
    default_channel: str
    api_base_url: str = "https://slack.com/api/"

    @field_validator("bot_token")
    @classmethod
    def validate_bot_token(cls, v: str) -> str:
        """Validate Slack bot token format."""
        if not v.startswith("xoxb-"):
            raise ValueError("Bot token must start with xoxb-")
        return v

    @field_validator("app_token")
    @classmethod
    def validate_app_token(cls, v: str) -> str:
        """Validate Slack app token format."""
        if not v.startswith("xapp-"):
            raise ValueError("App token must start with xapp-")
        return v

    @field_validator("api_base_url")
    @classmethod
    def validate_api_base_url(cls, v: str) -> str:
        """Normalize the API base URL to end with a slash."""
        if not v.startswith(("https://", "http://")):
            raise ValueError("API base URL must be an http(s) URL")
        return v if v.endswith("/") else f"{v}/"


class RosterConfig(BaseModel):
    """Roster of members eligible to keep the log."""

    members: list[str] = []
    trigger: str = "!logger"

    @field_validator("members")
    @classmethod
    def validate_members(cls, v: list[str]) -> list[str]:
        """Reject blank roster entries."""
        stripped = [m.strip() for m in v]
        if any(not m for m in stripped):
            raise ValueError("Roster members must not be blank")
        return stripped

    @field_validator("trigger")
    @classmethod
    def validate_trigger(cls, v: str) -> str:
        """Validate the trigger keyword is a single word."""
        v = v.strip()
        if not v or any(ch.isspace() for ch in v):
            raise ValueError("Trigger must be a single non-empty word")
        return v


class ConnectionConfig(BaseModel):
    """Realtime connection timeouts (seconds)."""

    open_timeout: float = Field(10.0, gt=0, le=120)
    ping_interval: float = Field(20.0, gt=0, le=300)
    ping_timeout: float = Field(20.0, gt=0, le=300)
    close_timeout: float = Field(5.0, gt=0, le=60)
    request_timeout: float = Field(10.0, gt=0, le=120)


class ReconnectConfig(BaseModel):
    """Re-bootstrap policy after a session closes."""

    enabled: bool = True
    initial_delay: float = Field(1.0, ge=0.0, le=60.0)
    max_delay: float = Field(60.0, ge=1.0, le=600.0)
    bootstrap_attempts: int = Field(3, ge=1, le=10)


class FileLoggingConfig(BaseModel):
    """File logging configuration."""

    enabled: bool = False
    path: Path = Path("/var/log/logger-bot/bot.log")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["json", "console"] = "json"
    file: FileLoggingConfig = FileLoggingConfig()


class RuntimeConfig(BaseModel):
    """Runtime configuration."""

    max_concurrent: int = Field(5, ge=1, le=50, description="Max concurrent event dispatches")
    dispatch_timeout: float = Field(30.0, gt=0, le=300, description="Per-event timeout in seconds")
    post_rate: float = Field(1.0, gt=0, le=10, description="Replies per second per channel")
    redelivery_ttl: int = Field(
        600, ge=0, le=3600, description="Seconds an event id is remembered to skip redeliveries"
    )


class BotConfig(BaseSettings):
    """Root configuration for logger-bot."""

    slack: SlackConfig
    roster: RosterConfig = RosterConfig()
    connection: ConnectionConfig = ConnectionConfig()
    reconnect: ReconnectConfig = ReconnectConfig()
    runtime: RuntimeConfig = RuntimeConfig()
    logging: LoggingConfig = LoggingConfig()

    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        frozen=True,
    )
