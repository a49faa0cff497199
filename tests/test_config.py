"""
Settings tests
"""

from apps.shared.config import get_settings, load_settings


def test_defaults(monkeypatch):
    monkeypatch.delenv("BLOG_API_KEY")
    monkeypatch.delenv("SITE_BASE_URL")

    settings = load_settings()

    assert settings.environment == "development"
    assert settings.database_url is None
    assert settings.kv_backend == "sql"
    assert settings.blog_api_key is None
    assert settings.blog_allowed_origins == ["http://localhost:*", "https://*.workers.dev"]
    assert settings.site_base_url == "https://blog.example.com"
    assert settings.blog_seed_on_startup is False
    assert not settings.is_production


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "production")
    monkeypatch.setenv("KV_BACKEND", "MEMORY")
    monkeypatch.setenv("BLOG_ALLOWED_ORIGINS", " https://a.example , ,https://b.example ")
    monkeypatch.setenv("SITE_BASE_URL", "https://site.example/")
    monkeypatch.setenv("BLOG_SEED_ON_STARTUP", "yes")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = load_settings()

    assert settings.is_production
    assert settings.kv_backend == "memory"
    assert settings.blog_allowed_origins == ["https://a.example", "https://b.example"]
    assert settings.site_base_url == "https://site.example"
    assert settings.blog_seed_on_startup is True
    assert settings.log_level == "DEBUG"


def test_get_settings_is_cached(monkeypatch):
    first = get_settings()
    monkeypatch.setenv("BLOG_API_KEY", "changed")

    assert get_settings() is first
    get_settings.cache_clear()
    assert get_settings().blog_api_key == "changed"
