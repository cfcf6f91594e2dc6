from __future__ import annotations

from functools import lru_cache
from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Server
    environment: str = "development"
    log_level: str = "info"
    log_format: str = "json"
    allow_cors_origins: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:3001",
        "http://127.0.0.1:3001",
    ]
    api_prefix: str = "/api"

    # Admin (ban management). Empty key disables the admin routes.
    admin_api_key: str = ""

    # Ban store
    ban_sweep_interval_seconds: int = 600  # 10 minutes

    # Rate-limit counters ("memory://" keeps them per process;
    # "redis://..." needs the redis extra: pip install "sema-api[redis]")
    rate_limit_storage_uri: str = "memory://"

    # Rate limiting: general API traffic
    general_window_seconds: int = 15 * 60
    general_max_requests: int = 100
    general_ban_seconds: int = 60 * 60

    # Rate limiting: AI endpoints
    ai_window_seconds: int = 60
    ai_max_requests: int = 10
    ai_ban_seconds: int = 60 * 60

    # Rate limiting: login attempts (brute-force protection)
    login_window_seconds: int = 15 * 60
    login_max_requests: int = 10
    login_ban_seconds: int = 2 * 60 * 60

    # Rate limiting: uploads
    upload_window_seconds: int = 15 * 60
    upload_max_requests: int = 20
    upload_ban_seconds: int = 60 * 60

    @field_validator("api_prefix")
    @classmethod
    def normalize_api_prefix(cls, v: str) -> str:
        """Leading slash, no trailing slash. Empty (or "/") guards the whole app."""
        v = (v or "").strip()
        if not v:
            return ""
        if not v.startswith("/"):
            v = "/" + v
        return v.rstrip("/")

    class Config:
        env_prefix = "SEMA_"


@lru_cache
def get_settings() -> Settings:
    return Settings()


# Module-level singleton for convenience
settings = get_settings()
