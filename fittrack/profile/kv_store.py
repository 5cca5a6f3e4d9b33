"""Local key-value boundary: string keys, string values, synchronous.

No transactions: every set() stands alone. Both stores enforce a total
capacity counted in characters of keys plus values; going over it raises
QuotaExceededError and leaves the previous value in place.
"""

from __future__ import annotations

import logging
from typing import Protocol

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from fittrack.profile.errors import PersistenceError, QuotaExceededError

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


def _check_quota(key: str, value: str, used_by_others: int, quota: int | None) -> None:
    if quota is None:
        return
    needed = used_by_others + len(key) + len(value)
    if needed > quota:
        raise QuotaExceededError(
            f"Writing '{key}' needs {needed} characters, quota is {quota}",
            key=key,
        )


class InMemoryKeyValueStore:
    """Dict-backed store for tests and embedded use."""

    def __init__(self, initial: dict[str, str] | None = None, quota: int | None = None):
        self._data: dict[str, str] = dict(initial or {})
        self._quota = quota

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        used = sum(len(k) + len(v) for k, v in self._data.items() if k != key)
        _check_quota(key, value, used, self._quota)
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def snapshot(self) -> dict[str, str]:
        return dict(self._data)


class SqlKeyValueStore:
    """Key-value table reached through SQLAlchemy.

    Table: kv_entries (key VARCHAR PRIMARY KEY, value TEXT NOT NULL), created on
    first use. Every operation runs in its own short session and commits on
    its own.
    """

    _CREATE = (
        "CREATE TABLE IF NOT EXISTS kv_entries ("
        "key VARCHAR(255) PRIMARY KEY, "
        "value TEXT NOT NULL)"
    )

    def __init__(self, sessions: sessionmaker[Session], quota: int | None = None):
        self._sessions = sessions
        self._quota = quota
        self._ready = False

    def _ensure_table(self, session: Session) -> None:
        if not self._ready:
            session.execute(text(self._CREATE))
            session.commit()
            self._ready = True

    def get(self, key: str) -> str | None:
        try:
            with self._sessions() as session:
                self._ensure_table(session)
                result = session.execute(
                    text("SELECT value FROM kv_entries WHERE key = :key"), {"key": key}
                )
                row = result.fetchone()
                session.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not read '{key}': {exc}", key=key) from exc
        return None if row is None else row[0]

    def set(self, key: str, value: str) -> None:
        try:
            with self._sessions() as session:
                self._ensure_table(session)
                if self._quota is not None:
                    used = session.execute(
                        text(
                            "SELECT COALESCE(SUM(LENGTH(key) + LENGTH(value)), 0) "
                            "FROM kv_entries WHERE key <> :key"
                        ),
                        {"key": key},
                    ).scalar_one()
                    _check_quota(key, value, int(used), self._quota)
                session.execute(
                    text(
                        "INSERT INTO kv_entries (key, value) VALUES (:key, :value) "
                        "ON CONFLICT (key) DO UPDATE SET value = excluded.value"
                    ),
                    {"key": key, "value": value},
                )
                session.commit()
        except SQLAlchemyError as exc:
            logger.error("Write of '%s' failed: %s", key, exc)
            raise PersistenceError(f"Could not write '{key}': {exc}", key=key) from exc

    def remove(self, key: str) -> None:
        try:
            with self._sessions() as session:
                self._ensure_table(session)
                session.execute(text("DELETE FROM kv_entries WHERE key = :key"), {"key": key})
                session.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not remove '{key}': {exc}", key=key) from exc
