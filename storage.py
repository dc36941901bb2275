"""Key-value persistence adapters for the cart store.

Both adapters expose the same three calls as browser local storage:
``get(key)``, ``set(key, value)`` and ``delete(key)``. Values are strings.
"""
from typing import Dict, Optional

from models import StorageEntry, make_session_factory


class MemoryStorage:
    """Dict-backed storage, lives as long as the object."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._data


class SQLStorage:
    """Durable storage on top of the ``storage_entries`` table."""

    def __init__(self, database_url: str = "sqlite:///storefront.db", session_factory=None):
        self._session_factory = session_factory or make_session_factory(database_url)

    def get(self, key: str) -> Optional[str]:
        with self._session_factory() as db:
            entry = db.get(StorageEntry, key)
            return entry.value if entry else None

    def set(self, key: str, value: str) -> None:
        with self._session_factory() as db:
            entry = db.get(StorageEntry, key)
            if entry:
                entry.value = value
            else:
                db.add(StorageEntry(key=key, value=value))
            db.commit()

    def delete(self, key: str) -> None:
        with self._session_factory() as db:
            entry = db.get(StorageEntry, key)
            if entry:
                db.delete(entry)
                db.commit()

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None
