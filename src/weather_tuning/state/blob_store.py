"""Key-value blob stores holding serialized tuning snapshots."""

from __future__ import annotations

import sqlite3
from threading import Lock
from typing import Protocol


class BlobStore(Protocol):
    """Interface for string-keyed text blob persistence."""

    def get(self, key: str) -> str | None:
        """Get one blob by key, returning None when not present."""

    def put(self, key: str, value: str) -> None:
        """Insert or replace one blob."""


class InMemoryBlobStore(BlobStore):
    """Process-local blob store, used when no store path is configured."""

    def __init__(self) -> None:
        self._blobs: dict[str, str] = {}
        self._lock = Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._blobs.get(key)

    def put(self, key: str, value: str) -> None:
        with self._lock:
            self._blobs[key] = value


class SQLiteBlobStore(BlobStore):
    """Thread-safe SQLite store for text blobs."""

    def __init__(self, path: str) -> None:
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._lock = Lock()
        with self._lock:
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS blobs (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )
            self._conn.commit()

    def get(self, key: str) -> str | None:
        """Return the blob stored under key or None when missing."""
        with self._lock:
            row = self._conn.execute("SELECT value FROM blobs WHERE key = ?", (key,)).fetchone()
        if row is None:
            return None
        return str(row[0])

    def put(self, key: str, value: str) -> None:
        """Insert or replace one blob."""
        with self._lock:
            self._conn.execute("INSERT OR REPLACE INTO blobs (key, value) VALUES (?, ?)", (key, value))
            self._conn.commit()

    def close(self) -> None:
        with self._lock:
            self._conn.close()
