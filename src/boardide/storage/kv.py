"""
Key-value persistence layer.

Mirrors the synchronous, origin-scoped storage a browser offers: string keys,
string values, a finite quota and index-based enumeration. Two backends share
the same protocol: an in-memory dict and a SQLModel table.
"""
from typing import Dict, Optional, Protocol

from sqlalchemy import func
from sqlmodel import Session, select

from boardide.models.kv import KeyValueEntry


class CapacityError(Exception):
    """A write would exceed the store quota."""


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...

    def count(self) -> int: ...

    def key_at(self, index: int) -> Optional[str]: ...


def _entry_size(key: str, value: str) -> int:
    return len(key.encode("utf-8")) + len(value.encode("utf-8"))


class MemoryKeyValueStore:
    """Dict-backed store, keys enumerated in insertion order."""

    def __init__(self, quota_bytes: int = 0):
        self._data: Dict[str, str] = {}
        self.quota_bytes = quota_bytes

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        if self.quota_bytes:
            used = sum(_entry_size(k, v) for k, v in self._data.items() if k != key)
            if used + _entry_size(key, value) > self.quota_bytes:
                raise CapacityError(f"quota of {self.quota_bytes} bytes exceeded")
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def count(self) -> int:
        return len(self._data)

    def key_at(self, index: int) -> Optional[str]:
        if index < 0 or index >= len(self._data):
            return None
        return list(self._data)[index]


class SqlKeyValueStore:
    """Store persisted in the ``kvstore`` table, keys enumerated in key order."""

    def __init__(self, engine, quota_bytes: int = 0):
        self.engine = engine
        self.quota_bytes = quota_bytes

    def get(self, key: str) -> Optional[str]:
        with Session(self.engine) as session:
            entry = session.get(KeyValueEntry, key)
            return entry.value if entry else None

    def set(self, key: str, value: str) -> None:
        with Session(self.engine) as session:
            if self.quota_bytes:
                used = session.exec(
                    select(func.coalesce(
                        func.sum(func.length(KeyValueEntry.key) + func.length(KeyValueEntry.value)), 0
                    )).where(KeyValueEntry.key != key)
                ).one()
                # SQLite length() counts characters; close enough for a quota guard
                if used + len(key) + len(value) > self.quota_bytes:
                    raise CapacityError(f"quota of {self.quota_bytes} bytes exceeded")
            entry = session.get(KeyValueEntry, key)
            if entry:
                entry.value = value
            else:
                entry = KeyValueEntry(key=key, value=value)
            session.add(entry)
            session.commit()

    def remove(self, key: str) -> None:
        with Session(self.engine) as session:
            entry = session.get(KeyValueEntry, key)
            if entry:
                session.delete(entry)
                session.commit()

    def count(self) -> int:
        with Session(self.engine) as session:
            return session.exec(select(func.count()).select_from(KeyValueEntry)).one()

    def key_at(self, index: int) -> Optional[str]:
        if index < 0:
            return None
        with Session(self.engine) as session:
            return session.exec(
                select(KeyValueEntry.key).order_by(KeyValueEntry.key).offset(index).limit(1)
            ).first()


class HandoffSlot:
    """
    Single well-known key passing "which document to open next" across a page
    navigation. Reading it through take() always removes it.
    """

    def __init__(self, kv: KeyValueStore, key: str):
        self.kv = kv
        self.key = key

    def offer(self, file_id: str) -> None:
        self.kv.set(self.key, file_id)

    def take(self) -> Optional[str]:
        try:
            return self.kv.get(self.key)
        finally:
            self.kv.remove(self.key)

    def clear(self) -> None:
        self.kv.remove(self.key)
