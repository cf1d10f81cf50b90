"""
Local key-value storage for the engine's write-ahead caches.

Callers depend on the small ``KeyValueStore`` interface only, so the
progress cache and attempt snapshots run the same against the in-memory
store (tests) and the SQLite-backed store (real sessions).
"""
import copy
import logging
from typing import Any, Protocol

from sqlalchemy import delete, select
from sqlalchemy.orm import sessionmaker

from learnsync.database import make_engine, make_session_factory
from learnsync.models.db.cache import CacheEntry
from learnsync.utils.json_utils import compact_json_dump, json_load

logger = logging.getLogger(__name__)

Document = dict[str, Any]


class KeyValueStore(Protocol):
    def get(self, key: str) -> Document | None: ...

    def put(self, key: str, value: Document) -> None: ...

    def delete(self, key: str) -> None: ...

    def list_by_prefix(self, prefix: str) -> dict[str, Document]: ...


class InMemoryStore:
    """Dict-backed store. Values are copied in and out."""

    def __init__(self) -> None:
        self._data: dict[str, Document] = {}

    def get(self, key: str) -> Document | None:
        value = self._data.get(key)
        return copy.deepcopy(value) if value is not None else None

    def put(self, key: str, value: Document) -> None:
        self._data[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def list_by_prefix(self, prefix: str) -> dict[str, Document]:
        return {
            key: copy.deepcopy(value)
            for key, value in sorted(self._data.items())
            if key.startswith(prefix)
        }


class SqlStore:
    """Durable store keeping one JSON document per row of ``cache_entries``."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    @classmethod
    def from_url(cls, url: str) -> "SqlStore":
        """Open (and create if needed) a store at the given database URL."""
        engine = make_engine(url)
        CacheEntry.__table__.create(bind=engine, checkfirst=True)
        logger.debug(f"Local cache opened at {url}")
        return cls(make_session_factory(engine))

    def get(self, key: str) -> Document | None:
        with self._session_factory() as db:
            entry = db.get(CacheEntry, key)
            if entry is None:
                return None
            return self._decode(key, entry.value_json)

    def put(self, key: str, value: Document) -> None:
        payload = compact_json_dump(value)
        with self._session_factory() as db:
            entry = db.get(CacheEntry, key)
            if entry is None:
                db.add(CacheEntry(key=key, value_json=payload))
            else:
                entry.value_json = payload
            db.commit()

    def delete(self, key: str) -> None:
        with self._session_factory() as db:
            db.execute(delete(CacheEntry).where(CacheEntry.key == key))
            db.commit()

    def list_by_prefix(self, prefix: str) -> dict[str, Document]:
        with self._session_factory() as db:
            rows = db.execute(
                select(CacheEntry)
                .where(CacheEntry.key.startswith(prefix, autoescape=True))
                .order_by(CacheEntry.key)
            ).scalars().all()
            result = {}
            for row in rows:
                decoded = self._decode(row.key, row.value_json)
                if decoded is not None:
                    result[row.key] = decoded
            return result

    @staticmethod
    def _decode(key: str, raw: str) -> Document | None:
        try:
            value = json_load(raw)
        except ValueError:
            logger.warning(f"Ignoring unreadable cache entry {key}")
            return None
        return value if isinstance(value, dict) else None
