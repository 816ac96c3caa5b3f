from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from moodwatch.core import constants


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="allow",
    )

    PORT: int = 8000
    APP_ENV: Literal["development", "production", "test"] = "production"
    REDIS_URL: str = "redis://redis:6379/0"
    # Maximum number of connections the cache client opens per process
    REDIS_MAX_CONNECTIONS: int = 20

    # Result cache
    CACHE_NAMESPACE: str = "DiscoveryCache"
    CACHE_TTL_MS: int = constants.CACHE_TTL_MS
    CACHE_SWEEP_ENABLED: bool = True
    CACHE_SWEEP_INTERVAL_SECONDS: int = constants.CACHE_SWEEP_INTERVAL_SECONDS

    # Number of items in the first page of a discovery run
    DISCOVERY_RESULT_LIMIT: int = 24


settings = Settings()
