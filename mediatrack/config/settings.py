"""
Media Tracker Core
Centralized Configuration Management

This module provides configuration management using Pydantic settings with
environment variable support, validation, and type safety. Every media domain
has its own section so that domains can be switched on and off independently.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from mediatrack import __version__


class DatabaseSettings(BaseSettings):
    """PostgreSQL Database Configuration"""

    model_config = SettingsConfigDict(env_prefix="POSTGRES_", populate_by_name=True)

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    db: str = Field(default="mediatrack", description="Database name")
    user: str = Field(default="mediatrack", description="Database user")
    password: SecretStr = Field(default="mediatrack", description="Database password")
    echo: bool = Field(default=False, description="Echo SQL queries")
    url: Optional[str] = Field(
        default=None,
        validation_alias="DATABASE_URL",
        description="Full async database URL (overrides host/port)",
    )

    @property
    def async_url(self) -> str:
        """Async database URL, asyncpg unless DATABASE_URL says otherwise"""
        if self.url:
            return self.url
        return f"postgresql+asyncpg://{self.user}:{self.password.get_secret_value()}@{self.host}:{self.port}/{self.db}"


class RedisSettings(BaseSettings):
    """Redis Cache Configuration"""

    model_config = SettingsConfigDict(env_prefix="REDIS_", populate_by_name=True)

    host: str = Field(default="localhost", description="Redis host")
    port: int = Field(default=6379, description="Redis port")
    password: Optional[SecretStr] = Field(default=None, description="Redis password")
    db: int = Field(default=0, description="Redis database number")
    max_connections: int = Field(default=50, description="Max connections")
    socket_timeout: int = Field(default=5, description="Socket timeout in seconds")
    decode_responses: bool = Field(default=True, description="Decode responses to strings")
    url: Optional[str] = Field(default=None, validation_alias="REDIS_URL", description="Redis URL (overrides host/port)")

    def get_url(self) -> str:
        """Redis connection URL - uses REDIS_URL if set, otherwise builds from host/port"""
        if self.url:
            return self.url
        if self.password:
            return f"redis://:{self.password.get_secret_value()}@{self.host}:{self.port}/{self.db}"
        return f"redis://{self.host}:{self.port}/{self.db}"


class MonitoringSettings(BaseSettings):
    """Logging Configuration"""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: str = Field(default="INFO", description="Logging level")
    format: str = Field(default="json", description="Log format: json or text")


class UsersSettings(BaseSettings):
    """User Account Configuration"""

    model_config = SettingsConfigDict(env_prefix="USERS_")

    allow_changing_username: bool = Field(default=True, description="Whether users may rename themselves")


class FileStorageSettings(BaseSettings):
    """S3-compatible file storage used for uploaded images"""

    model_config = SettingsConfigDict(env_prefix="FILE_STORAGE_")

    s3_bucket_name: str = Field(default="", description="Bucket name")
    s3_access_key_id: str = Field(default="", description="Access key id")
    s3_secret_access_key: SecretStr = Field(default="", description="Secret access key")
    s3_url: str = Field(default="", description="Endpoint URL for non-AWS providers")

    def is_enabled(self) -> bool:
        return bool(
            self.s3_bucket_name
            and self.s3_access_key_id
            and self.s3_secret_access_key.get_secret_value()
        )


class MediaDomainSettings(BaseSettings):
    """Shared switch of a media domain"""

    enabled: bool = Field(default=True, description="Expose this media domain")
    cache_ttl_seconds: int = Field(default=3600, description="TTL of cached item details")

    def is_enabled(self) -> bool:
        return self.enabled


class BooksSettings(MediaDomainSettings):
    model_config = SettingsConfigDict(env_prefix="BOOKS_")


class MoviesSettings(MediaDomainSettings):
    model_config = SettingsConfigDict(env_prefix="MOVIES_")


class ShowsSettings(MediaDomainSettings):
    model_config = SettingsConfigDict(env_prefix="SHOWS_")


class VideoGamesSettings(MediaDomainSettings):
    """
    Video games need Twitch credentials for the IGDB source, so the domain is
    only enabled once both are configured.
    """

    model_config = SettingsConfigDict(env_prefix="VIDEO_GAMES_")

    twitch_client_id: str = Field(default="", description="Twitch client id")
    twitch_client_secret: SecretStr = Field(default="", description="Twitch client secret")

    def is_enabled(self) -> bool:
        return (
            self.enabled
            and bool(self.twitch_client_id)
            and bool(self.twitch_client_secret.get_secret_value())
        )


class AudioBooksSettings(MediaDomainSettings):
    model_config = SettingsConfigDict(env_prefix="AUDIO_BOOKS_")


class PodcastsSettings(MediaDomainSettings):
    model_config = SettingsConfigDict(env_prefix="PODCASTS_")


class SummarySettings(BaseSettings):
    """Summary recalculation job"""

    model_config = SettingsConfigDict(env_prefix="SUMMARY_")

    refresh_interval_seconds: int = Field(
        default=0,
        ge=0,
        description="Recompute every user's summary on this interval (0 disables the job)",
    )
    refresh_concurrency: int = Field(default=4, ge=1, description="Users recomputed in parallel")


class Settings(BaseSettings):
    """
    Main Application Settings

    Aggregates all configuration sections and provides a single entry point
    for accessing application configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="mediatrack", description="Application name")
    app_env: str = Field(default="development", description="Environment")
    debug: bool = Field(default=False, description="Debug mode")

    # Version
    version: str = Field(default=__version__, description="Application version")

    # Subsystem configurations
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)
    users: UsersSettings = Field(default_factory=UsersSettings)
    file_storage: FileStorageSettings = Field(default_factory=FileStorageSettings)
    summary: SummarySettings = Field(default_factory=SummarySettings)

    # Media domains
    books: BooksSettings = Field(default_factory=BooksSettings)
    movies: MoviesSettings = Field(default_factory=MoviesSettings)
    shows: ShowsSettings = Field(default_factory=ShowsSettings)
    video_games: VideoGamesSettings = Field(default_factory=VideoGamesSettings)
    audio_books: AudioBooksSettings = Field(default_factory=AudioBooksSettings)
    podcasts: PodcastsSettings = Field(default_factory=PodcastsSettings)

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development"""
        return self.app_env == "development"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are only loaded once.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
