"""SQLite connection management for the news history database."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from threading import Lock

from ..exceptions import StorageError

SCHEMA_VERSION = 1

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS news (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        title TEXT NOT NULL,
        description TEXT,
        published_date TEXT,
        url TEXT NOT NULL UNIQUE,
        url_fingerprint TEXT NOT NULL,
        source TEXT,
        created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_news_url_fingerprint ON news(url_fingerprint)",
    "CREATE INDEX IF NOT EXISTS idx_news_created_at ON news(created_at)",
)


class SQLiteManager:
    """One shared connection per database file, schema created on first use.

    Connections are opened with ``check_same_thread=False`` because the
    scheduler runs the pipeline on a worker thread; callers serialise access.
    """

    def __init__(self, busy_timeout: float = 5.0) -> None:
        self.busy_timeout = busy_timeout
        self._connections: dict[Path, sqlite3.Connection] = {}
        self._lock = Lock()

    def connect(self, path: Path) -> sqlite3.Connection:
        with self._lock:
            conn = self._connections.get(path)
            if conn is None:
                path.parent.mkdir(parents=True, exist_ok=True)
                conn = sqlite3.connect(path, timeout=self.busy_timeout, check_same_thread=False)
                conn.row_factory = sqlite3.Row
                try:
                    self._migrate(conn, path)
                except StorageError:
                    conn.close()
                    raise
                self._connections[path] = conn
            return conn

    @staticmethod
    def _migrate(conn: sqlite3.Connection, path: Path) -> None:
        version = conn.execute("PRAGMA user_version").fetchone()[0]
        if version > SCHEMA_VERSION:
            raise StorageError(
                "Database was written by a newer release",
                {"path": str(path), "version": version},
            )
        with conn:
            for statement in SCHEMA:
                conn.execute(statement)
            conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")

    def reset(self, path: Path) -> None:
        """Close and delete the database file; the next ``connect`` recreates it."""

        self.close(path)
        path.unlink(missing_ok=True)

    def close(self, path: Path) -> None:
        with self._lock:
            conn = self._connections.pop(path, None)
        if conn is not None:
            conn.close()

    def close_all(self) -> None:
        with self._lock:
            connections = list(self._connections.values())
            self._connections.clear()
        for conn in connections:
            conn.close()


__all__ = ["SCHEMA", "SCHEMA_VERSION", "SQLiteManager"]
