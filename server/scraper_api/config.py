"""Configuration settings for the Shujia scraper API."""

from pathlib import Path
from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings


def _find_env_file() -> str:
    """Find .env file - check current dir, then parent (repository root)."""
    current = Path.cwd()

    for directory in (current, current.parent, current.parent.parent):
        if (directory / ".env").exists():
            return str(directory / ".env")

    # Default to current directory
    return ".env"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Server settings
    port: int = 3001
    host: str = "0.0.0.0"
    debug: bool = False
    cors_origin: str = "http://localhost:3000"
    log_level: str = "INFO"

    # Cache TTLs (in seconds)
    manga_cache_ttl: float = 3600  # 1 hour
    search_cache_ttl: float = 1800  # 30 minutes
    title_cache_ttl: float = 86400  # 24 hours
    cache_sweep_interval: float = 300  # 5 minutes

    # Outbound HTTP
    user_agent: str = "Shujia/1.0 (+https://shujia.dev; Manga Tracker)"
    request_timeout: float = 30.0
    polite_delay: float = 1.0
    retry_max_attempts: int = 3
    retry_base_delay: float = 1.0
    retry_max_delay: float = 10.0

    # Providers
    mangaupdates_enabled: bool = True
    mangaupdates_api_base: str = "https://api.mangaupdates.com/v1"
    mangaupdates_polite_delay: float = 2.0  # 0.5 req/s budget
    mangadex_enabled: bool = True
    mangadex_api_base: str = "https://api.mangadex.org"
    mangadex_polite_delay: Optional[float] = None

    # Bulk title resolution
    resolver_provider: str = "mangadex"
    resolve_max_items: int = 100
    resolve_workers: int = 4

    class Config:
        env_file = _find_env_file()
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
