"""
Test Configuration Module
"""

import json

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from apps.shared.config import get_settings
from apps.shared.database import Base
from apps.shared.kv_store import InMemoryKeyValueStore


API_KEY = "test-api-key"

CONFIG_ENV_VARS = [
    "ENVIRONMENT",
    "DATABASE_URL",
    "KV_BACKEND",
    "AUTH_STORE_NAMESPACE",
    "BLOG_STORE_NAMESPACE",
    "BLOG_API_KEY",
    "BLOG_ALLOWED_ORIGINS",
    "SITE_BASE_URL",
    "BLOG_SEED_ON_STARTUP",
    "LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def settings_env(monkeypatch):
    """Start every test from a known environment."""
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("BLOG_API_KEY", API_KEY)
    monkeypatch.setenv("SITE_BASE_URL", "https://blog.test")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def sqlite_session():
    """Session on a fresh in-memory SQLite database"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    with Session(engine) as session:
        yield session
    engine.dispose()


@pytest.fixture
def auth_store():
    return InMemoryKeyValueStore()


@pytest.fixture
def blog_store():
    return InMemoryKeyValueStore()


@pytest.fixture
def auth_client(auth_store):
    from apps.auth.main import app, get_auth_store

    app.dependency_overrides[get_auth_store] = lambda: auth_store
    yield TestClient(app)
    app.dependency_overrides = {}


@pytest.fixture
def blog_client(blog_store):
    from apps.blog.main import app, get_blog_store

    app.dependency_overrides[get_blog_store] = lambda: blog_store
    yield TestClient(app)
    app.dependency_overrides = {}


@pytest.fixture
def auth_headers():
    return {"Authorization": API_KEY}


@pytest.fixture
def put_post():
    """Write a post record straight into a store."""
    def _put(store, slug, **fields):
        record = {"slug": slug, **fields}
        store.put(f"post:{slug}", json.dumps(record))
        return record
    return _put
