# src/ai_taskboard/storage/kv_store.py

"""
Key-value text storage for the board (the localStorage of this app).

Backends only move strings around. PersistentStore adds JSON (de)serialization
and the failure policy:
- corrupted values are dropped on load and the default is returned,
- write failures are logged and reported, never raised.
"""

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
import threading
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

from ..errors import StorageError, StorageQuotaExceededError

logger = logging.getLogger(__name__)

T = TypeVar("T")

WriteErrorCallback = Callable[[str, Exception], None]


def _check_quota(key: str, value: str, limit: int) -> None:
    if limit <= 0:
        return
    size = len(value.encode("utf-8"))
    if size > limit:
        raise StorageQuotaExceededError(key, size, limit)


class SqliteKeyValueBackend:
    """
    SQLite key-value backend.

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "board.sqlite3", *, max_value_bytes: int = 0) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._max_value_bytes = max(0, int(max_value_bytes))
        self._ensure_schema()
        logger.info("SqliteKeyValueBackend ready db=%s", self._db_path)

    @property
    def db_path(self) -> Path:
        return self._db_path

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(Exception):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv_items (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )
            conn.commit()
        finally:
            conn.close()

    # ---- public API ----

    def get_item(self, key: str) -> str | None:
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise StorageError(f"Cannot open {self._db_path}: {e}") from e
        try:
            row = conn.execute("SELECT value FROM kv_items WHERE key = ?", (key,)).fetchone()
            return None if row is None else str(row["value"])
        except sqlite3.Error as e:
            raise StorageError(f"Read failed for key={key!r}: {e}") from e
        finally:
            conn.close()

    def set_item(self, key: str, value: str) -> None:
        _check_quota(key, value, self._max_value_bytes)
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise StorageError(f"Cannot open {self._db_path}: {e}") from e
        try:
            conn.execute(
                """
                INSERT INTO kv_items(key, value, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value,
                                               updated_at = excluded.updated_at
                """,
                (key, value, time.time()),
            )
            conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Write failed for key={key!r}: {e}") from e
        finally:
            conn.close()

    def remove_item(self, key: str) -> None:
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise StorageError(f"Cannot open {self._db_path}: {e}") from e
        try:
            conn.execute("DELETE FROM kv_items WHERE key = ?", (key,))
            conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Delete failed for key={key!r}: {e}") from e
        finally:
            conn.close()


class InMemoryKeyValueBackend:
    """Dict-backed backend for ephemeral sessions and tests."""

    def __init__(self, items: dict[str, str] | None = None, *, max_value_bytes: int = 0) -> None:
        self._items: dict[str, str] = dict(items or {})
        self._max_value_bytes = max(0, int(max_value_bytes))
        self._lock = threading.Lock()

    def get_item(self, key: str) -> str | None:
        with self._lock:
            return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        _check_quota(key, value, self._max_value_bytes)
        with self._lock:
            self._items[key] = value

    def remove_item(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)


class PersistentStore:
    """JSON values on top of a key-value backend, with self-healing loads."""

    def __init__(self, backend: Any, *, on_write_error: WriteErrorCallback | None = None) -> None:
        self._backend = backend
        self._on_write_error = on_write_error

    @property
    def backend(self) -> Any:
        return self._backend

    def load(self, key: str, default: T) -> Any | T:
        try:
            raw = self._backend.get_item(key)
        except Exception:
            logger.exception("Storage read failed key=%s; using default.", key)
            return default

        if raw is None:
            return default

        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Corrupted value for key=%s; discarding it and using default.", key)
            try:
                self._backend.remove_item(key)
            except Exception:
                logger.exception("Failed to remove corrupted key=%s", key)
            return default

    def save(self, key: str, value: Any) -> bool:
        try:
            payload = json.dumps(value, ensure_ascii=False)
            self._backend.set_item(key, payload)
        except Exception as e:
            logger.error("Storage write failed key=%s: %s", key, e)
            if self._on_write_error is not None:
                try:
                    self._on_write_error(key, e)
                except Exception:
                    logger.exception("on_write_error callback failed key=%s", key)
            return False
        logger.debug("Saved key=%s (%d bytes)", key, len(payload))
        return True

    def remove(self, key: str) -> None:
        try:
            self._backend.remove_item(key)
        except Exception:
            logger.exception("Storage delete failed key=%s", key)
