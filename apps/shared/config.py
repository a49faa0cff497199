"""
Service configuration

Reads all settings from environment variables once and exposes them as a
cached Settings object, so handlers receive configuration as a dependency
instead of reading globals.
"""

import os
from functools import lru_cache
from typing import Optional

from pydantic import BaseModel


# Default CORS allow-list for the blog service. Entries are regular
# expressions, not globs.
DEFAULT_BLOG_ORIGINS = "http://localhost:*,https://*.workers.dev"


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: str) -> list[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


class Settings(BaseModel):
    """Runtime settings shared by the auth and blog services."""
    environment: str = "development"
    database_url: Optional[str] = None
    kv_backend: str = "sql"  # "sql" or "memory"
    auth_store_namespace: str = "auth"
    blog_store_namespace: str = "blog"
    blog_api_key: Optional[str] = None
    blog_allowed_origins: list[str] = []
    site_base_url: str = "https://blog.example.com"
    blog_seed_on_startup: bool = False
    log_level: str = "INFO"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


def load_settings() -> Settings:
    """Build Settings from the current environment."""
    return Settings(
        environment=os.getenv("ENVIRONMENT", "development"),
        database_url=os.getenv("DATABASE_URL") or None,
        kv_backend=os.getenv("KV_BACKEND", "sql").lower(),
        auth_store_namespace=os.getenv("AUTH_STORE_NAMESPACE", "auth"),
        blog_store_namespace=os.getenv("BLOG_STORE_NAMESPACE", "blog"),
        blog_api_key=os.getenv("BLOG_API_KEY") or None,
        blog_allowed_origins=_env_list("BLOG_ALLOWED_ORIGINS", DEFAULT_BLOG_ORIGINS),
        site_base_url=os.getenv("SITE_BASE_URL", "https://blog.example.com").rstrip("/"),
        blog_seed_on_startup=_env_bool("BLOG_SEED_ON_STARTUP"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings dependency

    Usage in endpoints:
    @router.get("/endpoint")
    def endpoint(settings: Settings = Depends(get_settings)):
        pass

    Tests that change environment variables call get_settings.cache_clear().
    """
    return load_settings()
