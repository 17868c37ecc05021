"""Deduplication layer utilising a SQLite fingerprint store.

Every news record is keyed by a fingerprint of its normalised URL
(stripped, lower-cased, SHA-256). The table carries UNIQUE constraints on
both ``url`` and ``url_fingerprint`` so an insert either succeeds
atomically or fails on the constraint; there is no separate
check-then-insert window.
"""

from __future__ import annotations

import hashlib
import json
import sqlite3
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from threading import Lock
from typing import Any, Iterable, Mapping, Sequence

import structlog

from ..exceptions import DuplicateRecordError, StorageError
from ..infra.storage import SQLiteManager

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def fingerprint(url: str) -> str:
    """Return the stable dedup key for ``url``."""

    normalised = url.strip().lower()
    return hashlib.sha256(normalised.encode("utf-8")).hexdigest()


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.strptime(value, TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)


@dataclass(slots=True)
class NewsRecord:
    """A persisted news entry."""

    title: str
    url: str
    description: str | None = None
    published_date: str | None = None
    source: str | None = None
    created_at: datetime | None = None
    id: int | None = None
    url_fingerprint: str | None = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "NewsRecord":
        return cls(
            id=row["id"],
            title=row["title"],
            description=row["description"],
            published_date=row["published_date"],
            url=row["url"],
            url_fingerprint=row["url_fingerprint"],
            source=row["source"],
            created_at=parse_timestamp(row["created_at"]),
        )

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["created_at"] = format_timestamp(self.created_at) if self.created_at else None
        return payload


@dataclass(slots=True)
class FilterResult:
    new_items: list[Any] = field(default_factory=list)
    duplicate_count: int = 0
    total_count: int = 0


@dataclass(slots=True)
class BatchAddResult:
    added: int = 0
    duplicates: int = 0
    errors: int = 0


@dataclass(slots=True)
class StoreStats:
    total: int
    distinct_sources: list[str]
    oldest_created_at: datetime | None
    newest_created_at: datetime | None


def item_url(item: Any) -> str | None:
    """Pull a URL out of a mapping or an object exposing ``url``/``source_url``."""

    if isinstance(item, Mapping):
        value = item.get("url") or item.get("source_url")
    else:
        value = getattr(item, "url", None) or getattr(item, "source_url", None)
    if isinstance(value, str) and value.strip():
        return value
    return None


class DeduplicationStore:
    """Persistent record of every article URL already processed."""

    def __init__(
        self,
        manager: SQLiteManager,
        db_path: Path,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.manager = manager
        self.db_path = db_path
        self.logger = logger or structlog.get_logger("headline_harvester.dedup")
        self._lock = Lock()
        self._conn = self.manager.connect(db_path)

    def _fetch(self, sql: str, params: tuple = (), **context: Any) -> list[sqlite3.Row]:
        """Run a read query; driver failures surface as ``StorageError``."""

        try:
            with self._lock:
                return self._conn.execute(sql, params).fetchall()
        except sqlite3.Error as exc:
            raise StorageError(str(exc), context) from exc

    def exists(self, url: str) -> bool:
        rows = self._fetch(
            "SELECT 1 FROM news WHERE url_fingerprint = ? LIMIT 1", (fingerprint(url),), url=url
        )
        return bool(rows)

    def add(self, record: NewsRecord) -> int:
        """Insert ``record`` and return its id.

        Raises:
            DuplicateRecordError: the URL is already recorded.
            StorageError: any other persistence failure.
        """

        url = record.url.strip() if record.url else ""
        if not url:
            raise StorageError("Record has no URL", {"title": record.title})
        created_at = format_timestamp(record.created_at or datetime.now(timezone.utc))
        try:
            with self._lock, self._conn:
                cur = self._conn.execute(
                    "INSERT INTO news (title, description, published_date, url, url_fingerprint, source, created_at)"
                    " VALUES (?, ?, ?, ?, ?, ?, ?)",
                    (
                        record.title,
                        record.description,
                        record.published_date,
                        url,
                        fingerprint(url),
                        record.source,
                        created_at,
                    ),
                )
                inserted_id = cur.lastrowid
        except sqlite3.IntegrityError as exc:
            if "UNIQUE" in str(exc).upper():
                raise DuplicateRecordError("Duplicate URL", {"url": url}) from exc
            raise StorageError(str(exc), {"url": url}) from exc
        except sqlite3.Error as exc:
            raise StorageError(str(exc), {"url": url}) from exc
        self.logger.debug("news_recorded", url=url, id=inserted_id)
        return int(inserted_id)

    def batch_add(self, records: Iterable[NewsRecord]) -> BatchAddResult:
        result = BatchAddResult()
        for record in records:
            try:
                self.add(record)
            except DuplicateRecordError:
                result.duplicates += 1
            except StorageError as exc:
                self.logger.warning("news_record_failed", url=record.url, error=str(exc))
                result.errors += 1
            else:
                result.added += 1
        return result

    def filter_new(self, items: Sequence[Any]) -> FilterResult:
        """Split ``items`` into unseen ones and a duplicate count.

        Items without a URL are dropped: they are neither new nor duplicates.
        """

        result = FilterResult(total_count=len(items))
        for item in items:
            url = item_url(item)
            if url is None:
                continue
            if self.exists(url):
                result.duplicate_count += 1
            else:
                result.new_items.append(item)
        return result

    def prune_older_than(self, days: int) -> int:
        cutoff = format_timestamp(datetime.now(timezone.utc) - timedelta(days=days))
        try:
            with self._lock, self._conn:
                cur = self._conn.execute("DELETE FROM news WHERE created_at < ?", (cutoff,))
                deleted = cur.rowcount
        except sqlite3.Error as exc:
            raise StorageError(str(exc), {"days": days}) from exc
        self.logger.info("news_pruned", days=days, deleted=deleted)
        return deleted

    def stats(self) -> StoreStats:
        total, oldest, newest = self._fetch(
            "SELECT COUNT(*), MIN(created_at), MAX(created_at) FROM news"
        )[0]
        sources = self._fetch(
            "SELECT DISTINCT source FROM news WHERE source IS NOT NULL ORDER BY source"
        )
        return StoreStats(
            total=int(total),
            distinct_sources=[row[0] for row in sources],
            oldest_created_at=parse_timestamp(oldest),
            newest_created_at=parse_timestamp(newest),
        )

    def list_recent(self, limit: int = 20) -> list[NewsRecord]:
        rows = self._fetch(
            "SELECT * FROM news ORDER BY created_at DESC, id DESC LIMIT ?", (limit,), limit=limit
        )
        return [NewsRecord.from_row(row) for row in rows]

    def search(self, keyword: str, limit: int = 50) -> list[NewsRecord]:
        pattern = f"%{keyword}%"
        rows = self._fetch(
            "SELECT * FROM news WHERE title LIKE ? OR description LIKE ?"
            " ORDER BY created_at DESC, id DESC LIMIT ?",
            (pattern, pattern, limit),
            keyword=keyword,
        )
        return [NewsRecord.from_row(row) for row in rows]

    def export_json(self, path: Path) -> int:
        rows = self._fetch("SELECT * FROM news ORDER BY created_at DESC, id DESC", path=str(path))
        payload = [NewsRecord.from_row(row).to_dict() for row in rows]
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
        return len(payload)

    def reset(self) -> int:
        try:
            with self._lock, self._conn:
                deleted = self._conn.execute("DELETE FROM news").rowcount
        except sqlite3.Error as exc:
            raise StorageError(str(exc), {"db_path": str(self.db_path)}) from exc
        self.logger.info("news_reset", deleted=deleted)
        return deleted

    def close(self) -> None:
        self.manager.close(self.db_path)


__all__ = [
    "BatchAddResult",
    "DeduplicationStore",
    "FilterResult",
    "NewsRecord",
    "StoreStats",
    "fingerprint",
    "item_url",
]
