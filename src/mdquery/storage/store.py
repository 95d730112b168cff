"""SQLite-backed storage for the mdquery index."""

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterator, Optional

from mdquery.models import CleanupResult
from mdquery.storage.cache import SqliteResponseCache
from mdquery.storage.collections import CollectionRepository
from mdquery.storage.contexts import PathContextRepository
from mdquery.storage.documents import DocumentRepository
from mdquery.storage.schema import SCHEMA, SCHEMA_VERSION
from mdquery.storage.vectors import VectorRepository

logger = logging.getLogger(__name__)

BUSY_TIMEOUT_SECONDS = 30.0


class IndexStore:
    """SQLite-backed storage for collections, documents, vectors and caches.

    Every public operation opens its own short-lived connection. Several
    processes may share one index file; WAL mode plus a busy timeout is the
    only coordination between them.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)
        self.collections = CollectionRepository(self)
        self.documents = DocumentRepository(self)
        self.vectors = VectorRepository(self)
        self.contexts = PathContextRepository(self)
        self.cache = SqliteResponseCache(self)

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database connections.

        Commits when the block succeeds and rolls back when it raises, so a
        block is one unit of work.
        """
        conn = sqlite3.connect(self.path, timeout=BUSY_TIMEOUT_SECONDS)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def initialize(self) -> None:
        """Create the index file and schema if they do not exist."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.connection() as conn:
            conn.execute("PRAGMA journal_mode = WAL")
            conn.executescript(SCHEMA)
            conn.execute(
                "INSERT OR IGNORE INTO metadata (key, value) VALUES ('schema_version', ?)",
                (str(SCHEMA_VERSION),),
            )

    def set_metadata(self, key: str, value: str) -> None:
        """Store a metadata key-value pair."""
        with self.connection() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO metadata (key, value) VALUES (?, ?)",
                (key, value),
            )

    def get_metadata(self, key: str) -> Optional[str]:
        """Retrieve a metadata value by key."""
        with self.connection() as conn:
            row = conn.execute("SELECT value FROM metadata WHERE key = ?", (key,)).fetchone()
            return row["value"] if row else None

    def size_mb(self) -> float:
        """Size of the index file in megabytes."""
        if not self.path.exists():
            return 0.0
        return self.path.stat().st_size / (1024 * 1024)

    def cleanup(
        self,
        older_than_days: int = 30,
        all_inactive: bool = False,
        vacuum: bool = False,
        dry_run: bool = False,
    ) -> CleanupResult:
        """Permanently delete soft-deleted documents.

        Args:
            older_than_days: Only purge inactive documents last modified before this age
            all_inactive: Purge every inactive document regardless of age
            vacuum: Also drop orphaned vectors and cached model responses, then VACUUM
            dry_run: Count what would be removed without changing anything

        Returns:
            Counts of removed (or removable) rows
        """
        if all_inactive:
            purge_sql, purge_params = "active = 0", ()
        else:
            cutoff = (datetime.now(timezone.utc) - timedelta(days=older_than_days)).isoformat()
            purge_sql, purge_params = "active = 0 AND modified_at < ?", (cutoff,)

        result = CleanupResult()
        size_before = self.size_mb()

        with self.connection() as conn:
            result.documents_deleted = conn.execute(
                f"SELECT COUNT(*) FROM documents WHERE {purge_sql}", purge_params
            ).fetchone()[0]

            orphan_sql = (
                "hash NOT IN (SELECT hash FROM documents WHERE NOT "
                f"({purge_sql}))"
            )
            if vacuum:
                result.vectors_deleted = conn.execute(
                    f"SELECT COUNT(*) FROM content_vectors WHERE {orphan_sql}", purge_params
                ).fetchone()[0]
                result.cache_entries_deleted = conn.execute(
                    "SELECT COUNT(*) FROM model_cache"
                ).fetchone()[0]

            if dry_run:
                return result

            conn.execute(f"DELETE FROM documents WHERE {purge_sql}", purge_params)
            if vacuum:
                conn.execute("DELETE FROM content_vectors WHERE hash NOT IN (SELECT hash FROM documents)")
                conn.execute("DELETE FROM model_cache")

        if vacuum:
            conn = sqlite3.connect(self.path, timeout=BUSY_TIMEOUT_SECONDS, isolation_level=None)
            try:
                conn.execute("VACUUM")
            finally:
                conn.close()
            result.space_reclaimed_mb = max(0.0, size_before - self.size_mb())

        logger.info(
            f"Cleanup removed {result.documents_deleted} documents, "
            f"{result.vectors_deleted} vector chunks, {result.cache_entries_deleted} cache entries"
        )
        return result
