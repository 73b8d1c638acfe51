"""Pydantic models for application configuration."""

from typing import Literal

from pydantic import BaseModel, Field


class DiscordConfig(BaseModel):
    """Discord bot configuration."""

    token: str = Field(..., description="Bot token used to log in to the gateway.")
    client_id: int = Field(
        ..., description="Application client ID, used for mentions and invites."
    )
    activity: str = Field(
        default="https://github.com/SOF3/blob-mirror",
        description="Text shown as the bot's 'Playing' activity.",
    )
    request_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Timeout in seconds for a single Discord REST call.",
    )

    @property
    def invite_link(self) -> str:
        return (
            "https://discord.com/oauth2/authorize"
            f"?client_id={self.client_id}&scope=bot"
        )


class GitHubConfig(BaseModel):
    """GitHub configuration."""

    webhook_secret: str | None = Field(
        default=None,
        description="Secret used to verify X-Hub-Signature-256 on webhooks.",
    )
    api_base_url: str = "https://api.github.com"
    raw_base_url: str = "https://raw.githubusercontent.com"
    user_agent: str = "blob-mirror/v0.1"
    app_url: str = Field(
        default="https://github.com/apps/blob-mirror",
        description="Installation page of the GitHub App, shown to users.",
    )
    request_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Total timeout in seconds for a single GitHub request.",
    )


class RedisConfig(BaseModel):
    """Redis connection configuration."""

    url: str = "redis://localhost:6379/0"
    socket_timeout: float = Field(default=5.0, gt=0)
    socket_connect_timeout: float = Field(default=5.0, gt=0)


class MirrorConfig(BaseModel):
    """Mirror synchronization configuration."""

    message_max_length: int = Field(
        default=2000,
        ge=16,
        description="Maximum UTF-8 length of one mirrored message.",
    )
    max_concurrent_updates: int = Field(
        default=32,
        ge=1,
        description="Maximum number of updates synchronized at the same time.",
    )
    restart_delay: float = Field(
        default=1.0,
        ge=0,
        description="Seconds to wait before restarting a failed bus consumer.",
    )


class ServerConfig(BaseModel):
    """HTTP server configuration."""

    host: str = "0.0.0.0"
    port: int = 8000


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["json", "text"] = "json"


class AppConfig(BaseModel):
    """Application configuration."""

    discord: DiscordConfig | None = None
    github: GitHubConfig = Field(default_factory=GitHubConfig)
    redis: RedisConfig = Field(default_factory=RedisConfig)
    mirror: MirrorConfig = Field(default_factory=MirrorConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
