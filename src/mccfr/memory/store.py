"""Durable ordered key-value store backing the persistent reservoir buffer.

The buffer needs three things from its store: upsert by key, a full scan in
key order, and durable commits. SQLiteStore provides them with a single
``WITHOUT ROWID`` table whose BLOB primary key sorts bytewise (memcmp), the
same ordering as LevelDB-style stores.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Literal, Optional, Protocol

from mccfr.errors import StoreOpenError

logger = logging.getLogger(__name__)

DB_FILENAME = "store.sqlite3"


@dataclass
class StoreOptions:
    """Options used when opening a store.

    Attributes:
        error_if_missing: Fail instead of creating the store if it doesn't exist
        synchronous: SQLite durability level for commits. FULL makes every
            commit survive power loss. NORMAL is faster under WAL but may
            lose the last commits on power loss (not on a process crash)
        journal_mode: SQLite journal mode
        timeout: Seconds to wait for a lock held by another connection
    """

    error_if_missing: bool = False
    synchronous: Literal["OFF", "NORMAL", "FULL", "EXTRA"] = "FULL"
    journal_mode: Literal["WAL", "DELETE", "TRUNCATE", "PERSIST", "MEMORY"] = "WAL"
    timeout: float = 5.0


class KeyValueStore(Protocol):
    """Ordered, durable byte-string store."""

    def put(self, key: bytes, value: bytes) -> None: ...
    def get(self, key: bytes) -> Optional[bytes]: ...
    def scan(self) -> Iterator[tuple[bytes, bytes]]: ...
    def close(self) -> None: ...


class SQLiteStore:
    """KeyValueStore in a SQLite database inside directory ``path``.

    A connection-level lock serializes statements, so one store may be shared
    by threads; a scan sees a consistent snapshot.
    """

    def __init__(self, path: str | Path, options: Optional[StoreOptions] = None):
        self.path = Path(path)
        self.options = options if options is not None else StoreOptions()
        self._lock = threading.Lock()
        self._conn = self._open()

    def _open(self) -> sqlite3.Connection:
        db_path = self.path / DB_FILENAME
        if self.options.error_if_missing:
            if not db_path.is_file():
                raise StoreOpenError(f"Store does not exist: {db_path}")
            uri = f"{db_path.resolve().as_uri()}?mode=rw"
        else:
            self.path.mkdir(parents=True, exist_ok=True)
            uri = f"{db_path.resolve().as_uri()}?mode=rwc"

        try:
            conn = sqlite3.connect(
                uri,
                uri=True,
                timeout=self.options.timeout,
                check_same_thread=False,
            )
            conn.execute(f"PRAGMA journal_mode={self.options.journal_mode}")
            conn.execute(f"PRAGMA synchronous={self.options.synchronous}")
            conn.execute(
                "CREATE TABLE IF NOT EXISTS kv (key BLOB PRIMARY KEY, value BLOB NOT NULL) "
                "WITHOUT ROWID"
            )
            conn.commit()
        except sqlite3.Error as exc:
            raise StoreOpenError(f"Failed to open store at {db_path}: {exc}") from exc

        logger.info(f"Opened store at {db_path}")
        return conn

    def put(self, key: bytes, value: bytes) -> None:
        """Insert or replace ``key`` and commit."""
        with self._lock:
            self._conn.execute(
                "INSERT INTO kv (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, value),
            )
            self._conn.commit()

    def get(self, key: bytes) -> Optional[bytes]:
        with self._lock:
            row = self._conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        return None if row is None else bytes(row[0])

    def scan(self) -> Iterator[tuple[bytes, bytes]]:
        """All (key, value) pairs in bytewise key order."""
        with self._lock:
            rows = self._conn.execute("SELECT key, value FROM kv ORDER BY key").fetchall()
        for key, value in rows:
            yield bytes(key), bytes(value)

    def __len__(self) -> int:
        with self._lock:
            return self._conn.execute("SELECT COUNT(*) FROM kv").fetchone()[0]

    def close(self) -> None:
        with self._lock:
            self._conn.close()
