"""Collection repository."""

import logging
import sqlite3
from typing import Optional

from mdquery.models import Collection, CollectionSummary
from mdquery.storage.base import Repository, utcnow

logger = logging.getLogger(__name__)


def _to_collection(row: sqlite3.Row) -> Collection:
    return Collection(
        id=row["id"],
        pwd=row["pwd"],
        glob_pattern=row["glob_pattern"],
        created_at=row["created_at"],
    )


class CollectionRepository(Repository):
    """Data access for the collections table."""

    def find_by_id(self, collection_id: int) -> Optional[Collection]:
        """Fetch a collection by id."""
        with self.connection() as conn:
            row = conn.execute(
                "SELECT id, pwd, glob_pattern, created_at FROM collections WHERE id = ?",
                (collection_id,),
            ).fetchone()
            return _to_collection(row) if row else None

    def find_by_pwd_and_pattern(self, pwd: str, glob_pattern: str) -> Optional[Collection]:
        """Fetch the collection for a root and glob pair."""
        with self.connection() as conn:
            row = conn.execute(
                """SELECT id, pwd, glob_pattern, created_at
                   FROM collections WHERE pwd = ? AND glob_pattern = ?""",
                (pwd, glob_pattern),
            ).fetchone()
            return _to_collection(row) if row else None

    def find_all(self) -> list[Collection]:
        """List every collection, newest first."""
        with self.connection() as conn:
            cursor = conn.execute(
                "SELECT id, pwd, glob_pattern, created_at FROM collections ORDER BY created_at DESC, id DESC"
            )
            return [_to_collection(row) for row in cursor]

    def find_all_with_counts(self) -> list[CollectionSummary]:
        """List collections with their active document count and last update."""
        with self.connection() as conn:
            cursor = conn.execute(
                """SELECT c.id, c.pwd, c.glob_pattern, c.created_at,
                          COUNT(d.id) AS active_count,
                          MAX(d.modified_at) AS last_doc_update
                   FROM collections c
                   LEFT JOIN documents d ON d.collection_id = c.id AND d.active = 1
                   GROUP BY c.id
                   ORDER BY last_doc_update DESC, c.id"""
            )
            return [
                CollectionSummary(
                    collection=_to_collection(row),
                    active_count=row["active_count"],
                    last_doc_update=row["last_doc_update"],
                )
                for row in cursor
            ]

    def insert(self, pwd: str, glob_pattern: str) -> int:
        """Insert a collection and return its id."""
        with self.connection() as conn:
            cursor = conn.execute(
                "INSERT INTO collections (pwd, glob_pattern, created_at) VALUES (?, ?, ?)",
                (pwd, glob_pattern, utcnow()),
            )
            return cursor.lastrowid

    def get_or_create(self, pwd: str, glob_pattern: str) -> Collection:
        """Return the collection for (pwd, glob_pattern), creating it on first use.

        A concurrent indexer may insert the same pair between our lookup and
        insert; the unique constraint then fails and the other row is used.
        """
        existing = self.find_by_pwd_and_pattern(pwd, glob_pattern)
        if existing is not None:
            return existing
        try:
            self.insert(pwd, glob_pattern)
        except sqlite3.IntegrityError:
            logger.warning(f"Collection {pwd} ({glob_pattern}) was created concurrently, reusing it")
        collection = self.find_by_pwd_and_pattern(pwd, glob_pattern)
        if collection is None:
            raise RuntimeError(f"Collection {pwd} ({glob_pattern}) vanished after insert")
        return collection

    def delete(self, collection_id: int) -> None:
        """Delete a collection after deactivating its documents."""
        with self.connection() as conn:
            conn.execute("UPDATE documents SET active = 0 WHERE collection_id = ?", (collection_id,))
            conn.execute("DELETE FROM collections WHERE id = ?", (collection_id,))

    def count(self) -> int:
        """Count collections."""
        with self.connection() as conn:
            return conn.execute("SELECT COUNT(*) FROM collections").fetchone()[0]
