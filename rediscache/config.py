"""
Cache configuration.

Settings are read from REDIS_* environment variables (or a .env file)
by pydantic-settings; callers can also pass values explicitly.
"""
from urllib.parse import urlsplit, urlunsplit

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CacheSettings(BaseSettings):
    """
    Connection settings for the Redis cache.

    The logical database index is part of ``redis_url``
    (``redis://host:6379/2``). Cluster deployments always use database 0.
    Malformed environment values raise pydantic's ValidationError.

    Example:
        >>> settings = CacheSettings(redis_url="redis://localhost:6379/0")
        >>> settings.redacted_url
        'redis://localhost:6379/0'
    """

    model_config = SettingsConfigDict(
        env_prefix="REDIS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    redis_url: str = Field(
        default="",
        validation_alias=AliasChoices("redis_url", "REDIS_URL"),
        description="Redis connection string (redis://, rediss:// or unix://)",
    )
    cluster: bool = Field(
        default=False,
        description="Connect to a Redis Cluster instead of a single server",
    )
    max_connections: int = Field(
        default=20,
        ge=1,
        description="Connection pool size shared by every caller",
    )
    socket_timeout: float = Field(
        default=5.0,
        gt=0,
        description="Per-command socket timeout in seconds",
    )
    socket_connect_timeout: float = Field(
        default=5.0,
        gt=0,
        description="Connect timeout in seconds",
    )
    retry_on_timeout: bool = Field(
        default=True,
        description="Let the client retry a command once on timeout",
    )
    scan_count: int = Field(
        default=250,
        ge=1,
        description="COUNT hint for SCAN during bulk removal",
    )

    @property
    def redacted_url(self) -> str:
        """Connection string without credentials, safe to log."""
        return redact_url(self.redis_url)


def redact_url(url: str) -> str:
    """Strip the user:password part of a connection string."""
    parts = urlsplit(url)
    netloc = parts.netloc.rsplit("@", 1)[-1]
    return urlunsplit(parts._replace(netloc=netloc))
