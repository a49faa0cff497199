"""
Key-value store tests

Both backends must behave the same; the SQL backend runs on in-memory SQLite.
"""

import pytest

from apps.shared.config import Settings
from apps.shared.kv_store import (
    InMemoryKeyValueStore,
    KeyInfo,
    KeyValueEntry,
    SQLAlchemyKeyValueStore,
    open_store,
)
from apps.shared.upsert import atomic_insert_if_absent, atomic_upsert


@pytest.fixture(params=["memory", "sql"])
def store(request, sqlite_session):
    if request.param == "memory":
        return InMemoryKeyValueStore()
    return SQLAlchemyKeyValueStore(sqlite_session, "test")


class TestKeyValueStore:
    def test_get_missing_key(self, store):
        assert store.get("missing") is None
        assert store.get("missing", as_json=True) is None

    def test_put_and_get(self, store):
        store.put("k", '{"a": 1}')

        assert store.get("k") == '{"a": 1}'
        assert store.get("k", as_json=True) == {"a": 1}

    def test_put_replaces(self, store):
        store.put("k", "one")
        store.put("k", "two")

        assert store.get("k") == "two"
        assert store.list_keys() == [KeyInfo(name="k")]

    def test_put_if_absent(self, store):
        assert store.put_if_absent("k", "first") is True
        assert store.put_if_absent("k", "second") is False
        assert store.get("k") == "first"

    def test_delete(self, store):
        store.put("k", "v")
        store.delete("k")
        store.delete("never-existed")

        assert store.get("k") is None

    def test_list_keys_by_prefix_in_order(self, store):
        for key in ["post:b", "user:x", "post:a", "post_c"]:
            store.put(key, "v")

        assert [k.name for k in store.list_keys(prefix="post:")] == ["post:a", "post:b"]
        assert len(store.list_keys()) == 4

    def test_invalid_json(self, store):
        store.put("k", "{oops")

        with pytest.raises(ValueError):
            store.get("k", as_json=True)


class TestSQLNamespaces:
    def test_namespaces_are_isolated(self, sqlite_session):
        auth = SQLAlchemyKeyValueStore(sqlite_session, "auth")
        blog = SQLAlchemyKeyValueStore(sqlite_session, "blog")

        auth.put("shared", "auth-value")
        assert blog.get("shared") is None
        assert blog.put_if_absent("shared", "blog-value") is True
        assert auth.get("shared") == "auth-value"

    def test_prefix_wildcards_are_literal(self, sqlite_session):
        store = SQLAlchemyKeyValueStore(sqlite_session, "blog")
        store.put("post%x", "v")
        store.put("post_y", "v")
        store.put("post:z", "v")

        assert [k.name for k in store.list_keys(prefix="post_")] == ["post_y"]


class TestAtomicWrites:
    def test_insert_if_absent(self, sqlite_session):
        values = {"namespace": "n", "key": "k", "value": "first"}

        assert atomic_insert_if_absent(sqlite_session, KeyValueEntry, values, ["namespace", "key"]) is True
        assert atomic_insert_if_absent(
            sqlite_session, KeyValueEntry, {**values, "value": "second"}, ["namespace", "key"]
        ) is False
        sqlite_session.commit()

        rows = sqlite_session.query(KeyValueEntry).all()
        assert [(r.key, r.value) for r in rows] == [("k", "first")]

    def test_upsert_updates_value(self, sqlite_session):
        values = {"namespace": "n", "key": "k", "value": "first"}
        atomic_upsert(sqlite_session, KeyValueEntry, values, ["namespace", "key"])
        atomic_upsert(sqlite_session, KeyValueEntry, {**values, "value": "second"}, ["namespace", "key"])
        sqlite_session.commit()

        rows = sqlite_session.query(KeyValueEntry).all()
        assert [(r.key, r.value) for r in rows] == [("k", "second")]
        assert rows[0].updated_at is not None

    def test_unknown_field_rejected(self, sqlite_session):
        with pytest.raises(ValueError):
            atomic_insert_if_absent(sqlite_session, KeyValueEntry, {"key": "k"}, ["nonexistent_field"])

    def test_unknown_timestamp_field_rejected(self, sqlite_session):
        with pytest.raises(ValueError):
            atomic_upsert(
                sqlite_session,
                KeyValueEntry,
                {"namespace": "n", "key": "k", "value": "v"},
                ["namespace", "key"],
                timestamp_field="nonexistent_timestamp",
            )


class TestOpenStore:
    def test_sql_without_database(self):
        assert open_store(Settings(), "blog", None) is None

    def test_sql_with_session(self, sqlite_session):
        store = open_store(Settings(), "blog", sqlite_session)

        assert isinstance(store, SQLAlchemyKeyValueStore)
        assert store.namespace == "blog"

    def test_memory_backend_shares_instance(self):
        settings = Settings(kv_backend="memory")

        assert open_store(settings, "ns-share", None) is open_store(settings, "ns-share", None)
        assert open_store(settings, "ns-share", None) is not open_store(settings, "ns-other", None)

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            open_store(Settings(kv_backend="redis"), "blog", None)
