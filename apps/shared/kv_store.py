"""
Key-value store

The services only ever touch their data through five primitives:
get, put, put_if_absent, delete and list-by-prefix. Two backends implement
them:

- SQLAlchemyKeyValueStore: one row per key in the kv_entries table,
  partitioned by namespace so each service owns its own keyspace.
- InMemoryKeyValueStore: a dict guarded by a lock, used for local
  development (KV_BACKEND=memory) and in tests.
"""

import json
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Optional

from sqlalchemy import Column, DateTime, Integer, String, Text, UniqueConstraint, delete, func, select
from sqlalchemy.orm import Session

from apps.shared.config import Settings
from apps.shared.database import Base
from apps.shared.upsert import atomic_insert_if_absent, atomic_upsert


class KeyValueEntry(Base):
    """
    A single stored value.

    (namespace, key) is unique; value holds the serialized record.
    """
    __tablename__ = "kv_entries"
    __table_args__ = (
        UniqueConstraint("namespace", "key", name="uq_kv_entries_namespace_key"),
    )

    id = Column(Integer, primary_key=True)
    namespace = Column(String(64), nullable=False, index=True)
    key = Column(String(512), nullable=False)
    value = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


@dataclass(frozen=True)
class KeyInfo:
    """Entry returned by list_keys()."""
    name: str


class KeyValueStore(ABC):
    """Key-value store interface"""

    @abstractmethod
    def _get_raw(self, key: str) -> Optional[str]:
        pass

    def get(self, key: str, as_json: bool = False) -> Any:
        """
        Get the value stored under key.

        Returns None if the key doesn't exist. With as_json=True the stored
        string is parsed; invalid JSON raises ValueError.
        """
        raw = self._get_raw(key)
        if raw is None or not as_json:
            return raw
        return json.loads(raw)

    @abstractmethod
    def put(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""

    @abstractmethod
    def put_if_absent(self, key: str, value: str) -> bool:
        """
        Store value under key only if the key is unused.

        Returns True if the value was written, False if the key already existed.
        """

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove key. Deleting a missing key is not an error."""

    @abstractmethod
    def list_keys(self, prefix: str = "") -> list[KeyInfo]:
        """List keys starting with prefix, in lexicographic order."""


class SQLAlchemyKeyValueStore(KeyValueStore):
    """Key-value store backed by the kv_entries table."""

    def __init__(self, session: Session, namespace: str):
        self.session = session
        self.namespace = namespace

    def _get_raw(self, key: str) -> Optional[str]:
        return self.session.execute(
            select(KeyValueEntry.value).where(
                KeyValueEntry.namespace == self.namespace,
                KeyValueEntry.key == key,
            )
        ).scalar_one_or_none()

    def put(self, key: str, value: str) -> None:
        atomic_upsert(
            self.session,
            KeyValueEntry,
            {"namespace": self.namespace, "key": key, "value": value},
            index_elements=["namespace", "key"],
        )
        self.session.commit()

    def put_if_absent(self, key: str, value: str) -> bool:
        created = atomic_insert_if_absent(
            self.session,
            KeyValueEntry,
            {"namespace": self.namespace, "key": key, "value": value},
            index_elements=["namespace", "key"],
        )
        self.session.commit()
        return created

    def delete(self, key: str) -> None:
        self.session.execute(
            delete(KeyValueEntry).where(
                KeyValueEntry.namespace == self.namespace,
                KeyValueEntry.key == key,
            )
        )
        self.session.commit()

    def list_keys(self, prefix: str = "") -> list[KeyInfo]:
        keys = self.session.execute(
            select(KeyValueEntry.key)
            .where(
                KeyValueEntry.namespace == self.namespace,
                KeyValueEntry.key.startswith(prefix, autoescape=True),
            )
            .order_by(KeyValueEntry.key.asc())
        ).scalars()
        return [KeyInfo(name=key) for key in keys]


class InMemoryKeyValueStore(KeyValueStore):
    """Process-local key-value store."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def _get_raw(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def put(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def put_if_absent(self, key: str, value: str) -> bool:
        with self._lock:
            if key in self._data:
                return False
            self._data[key] = value
            return True

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def list_keys(self, prefix: str = "") -> list[KeyInfo]:
        with self._lock:
            names = sorted(name for name in self._data if name.startswith(prefix))
        return [KeyInfo(name=name) for name in names]


@lru_cache
def get_memory_store(namespace: str) -> InMemoryKeyValueStore:
    """Shared in-memory store for a namespace (KV_BACKEND=memory)."""
    return InMemoryKeyValueStore()


def open_store(settings: Settings, namespace: str, db: Optional[Session]) -> Optional[KeyValueStore]:
    """
    Resolve the store for namespace according to KV_BACKEND.

    Returns None when the SQL backend is selected but no database is configured.
    """
    if settings.kv_backend == "memory":
        return get_memory_store(namespace)
    if settings.kv_backend != "sql":
        raise ValueError(f"Unknown KV_BACKEND '{settings.kv_backend}'")
    if db is None:
        return None
    return SQLAlchemyKeyValueStore(db, namespace)
