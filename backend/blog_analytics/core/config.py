"""
Application settings loaded from the environment (and an optional .env file).
"""

from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration for the analytics API."""

    app_name: str = "Blog Analytics API"
    version: str = "1.0.0"
    api_v1_prefix: str = "/api/v1"

    # Persistence
    database_url: str = "sqlite:///./analytics.db"
    auto_create_tables: bool = True

    # CORS
    cors_origins: List[str] = [
        "https://maxenocmn.github.io",
        "http://192.168.1.4:5173",
    ]
    cors_max_age: int = 86400

    # Events
    page_label: str = "MEMN_blog"
    strict_event_validation: bool = True

    # Rate limiting (fixed windows, per client address)
    api_rate_limit: int = 10
    api_rate_window_seconds: int = 15 * 60
    ingest_rate_limit: int = 1
    ingest_rate_window_seconds: int = 60
    rate_limit_max_keys: int = 10_000
    trust_forwarded_for: bool = False

    # IPFS snippet loader
    ipfs_gateways: List[str] = [
        "https://cloudflare-ipfs.com/ipfs/{hash}",
        "https://ipfs.io/ipfs/{hash}",
        "https://gateway.pinata.cloud/ipfs/{hash}",
        "https://{hash}.ipfs.dweb.link/",
        "https://ipfs.infura.io/ipfs/{hash}",
    ]
    ipfs_timeout_seconds: float = 10.0

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
