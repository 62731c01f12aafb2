"""Configuration management using Pydantic BaseSettings.

All settings are loaded from environment variables (or a ``.env`` file)
with type validation.
"""

from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ExporterConfig(BaseSettings):
    """Discord exporter configuration with Pydantic validation."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # === Required Discord Credentials ===
    discord_token: str = Field(..., min_length=1, description="Discord bot token")
    discord_client_id: Optional[str] = Field(
        default=None, description="Discord application client ID (informational)"
    )

    # === Required Targets ===
    discord_guild_id: str = Field(
        ..., pattern=r"^\d+$", description="Guild (server) to aggregate"
    )
    discord_photo_channel_id: str = Field(
        ..., pattern=r"^\d+$", description="Channel whose attachments feed the gallery"
    )
    discord_announcement_channel_id: str = Field(
        ..., pattern=r"^\d+$", description="Channel whose posts feed the RSS document"
    )

    # === HTTP ===
    http_host: str = Field(default="0.0.0.0", description="Bind address for HTTP")
    http_port: int = Field(default=3000, ge=1, le=65535, description="HTTP port")
    gallery_limit: int = Field(
        default=50, ge=1, le=1000, description="Photos rendered on /photos"
    )

    # === Freshness long-poll ===
    freshness_poll_interval: float = Field(
        default=1.0,
        gt=0.0,
        le=60.0,
        description="Seconds between fallback re-checks of the latest photo id",
    )
    freshness_timeout: Optional[float] = Field(
        default=None,
        gt=0.0,
        description="Give up waiting after N seconds and return the current id",
    )

    # === Resync ===
    history_page_size: int = Field(
        default=100, ge=1, le=100, description="Messages per history page"
    )
    resync_event_policy: str = Field(
        default="replay",
        pattern=r"^(replay|discard)$",
        description=(
            "What happens to live events received during a resync: replay them "
            "after the snapshot commit, or let the snapshot overwrite them"
        ),
    )

    # === Retry Settings ===
    max_retry_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Maximum attempts for a history page fetch",
    )
    retry_backoff_factor: float = Field(
        default=2.0,
        ge=0.0,
        le=10.0,
        description="Exponential backoff multiplier for retries",
    )

    # === RSS ===
    feed_title: str = Field(default="Discord Announcements")
    feed_description: str = Field(default="Latest announcements from Discord")
    site_url: str = Field(default="http://localhost:3000")
    feed_url: Optional[str] = Field(
        default=None, description="Public URL of /rss.xml (defaults to site_url)"
    )

    # === Logging ===
    log_level: str = Field(
        default="INFO",
        pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Logging level",
    )
    log_format: str = Field(
        default="json",
        pattern=r"^(json|text)$",
        description="Log output format: json or text",
    )
    service_name: str = Field(
        default="discord_exporter",
        description="Service name included in log records",
    )

    # === Observability ===
    enable_metrics: bool = Field(
        default=False,
        description="Expose the exporter's own Prometheus metrics on metrics_port",
    )
    metrics_port: int = Field(
        default=9090, ge=1024, le=65535, description="Port for self-metrics server"
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        """Accept lower-case level names from the environment."""
        return v.upper() if isinstance(v, str) else v

    @field_validator("site_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    def get_feed_url(self) -> str:
        """Return the public URL of the RSS document."""
        return self.feed_url or f"{self.site_url}/rss.xml"
