"""Document repository."""

import sqlite3
from pathlib import PurePath
from typing import Optional

from mdquery.models import Document
from mdquery.storage.base import Repository, utcnow

_COLUMNS = "id, collection_id, filepath, hash, title, body, active, modified_at, display_path"


def _to_document(row: sqlite3.Row) -> Document:
    return Document(
        id=row["id"],
        collection_id=row["collection_id"],
        filepath=row["filepath"],
        hash=row["hash"],
        title=row["title"],
        body=row["body"],
        active=bool(row["active"]),
        modified_at=row["modified_at"],
        display_path=row["display_path"],
    )


class DocumentRepository(Repository):
    """Data access for documents and their full-text index.

    Lookups only ever return active documents.
    """

    def find_by_id(self, document_id: int) -> Optional[Document]:
        """Fetch an active document by id."""
        with self.connection() as conn:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM documents WHERE id = ? AND active = 1", (document_id,)
            ).fetchone()
            return _to_document(row) if row else None

    def find_by_filepath(self, filepath: str) -> Optional[Document]:
        """Fetch the active document at an absolute path."""
        with self.connection() as conn:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM documents WHERE filepath = ? AND active = 1", (filepath,)
            ).fetchone()
            return _to_document(row) if row else None

    def find_by_display_path(self, display_path: str) -> Optional[Document]:
        """Fetch the active document with a display path."""
        with self.connection() as conn:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM documents WHERE display_path = ? AND active = 1",
                (display_path,),
            ).fetchone()
            return _to_document(row) if row else None

    def find_by_hash(self, content_hash: str) -> Optional[Document]:
        """Fetch one active document with the given fingerprint."""
        with self.connection() as conn:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM documents WHERE hash = ? AND active = 1 LIMIT 1",
                (content_hash,),
            ).fetchone()
            return _to_document(row) if row else None

    def find_by_collection(self, collection_id: int) -> list[Document]:
        """List the active documents of a collection by path."""
        with self.connection() as conn:
            cursor = conn.execute(
                f"""SELECT {_COLUMNS} FROM documents
                    WHERE collection_id = ? AND active = 1
                    ORDER BY filepath""",
                (collection_id,),
            )
            return [_to_document(row) for row in cursor]

    def find_many_by_hash(self, hashes: list[str]) -> dict[str, list[Document]]:
        """Active documents grouped by content hash."""
        if not hashes:
            return {}
        placeholders = ",".join("?" for _ in hashes)
        grouped: dict[str, list[Document]] = {}
        with self.connection() as conn:
            cursor = conn.execute(
                f"""SELECT {_COLUMNS} FROM documents
                    WHERE active = 1 AND hash IN ({placeholders})
                    ORDER BY filepath""",
                hashes,
            )
            for row in cursor:
                doc = _to_document(row)
                grouped.setdefault(doc.hash, []).append(doc)
        return grouped

    def insert(
        self,
        collection_id: int,
        filepath: str,
        title: str,
        content_hash: str,
        body: str,
        modified_at: str | None = None,
    ) -> int:
        """Insert an active document.

        Raises:
            sqlite3.IntegrityError: If another active document already has this path.
        """
        now = utcnow()
        with self.connection() as conn:
            cursor = conn.execute(
                """INSERT INTO documents
                   (collection_id, name, title, hash, filepath, body, created_at, modified_at, active)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, 1)""",
                (
                    collection_id,
                    PurePath(filepath).name,
                    title,
                    content_hash,
                    filepath,
                    body,
                    now,
                    modified_at or now,
                ),
            )
            return cursor.lastrowid

    def update_content(
        self, document_id: int, title: str, content_hash: str, body: str, modified_at: str | None = None
    ) -> None:
        """Replace the body, fingerprint and title of a changed document."""
        with self.connection() as conn:
            conn.execute(
                """UPDATE documents SET title = ?, hash = ?, body = ?, modified_at = ?
                   WHERE id = ?""",
                (title, content_hash, body, modified_at or utcnow(), document_id),
            )

    def deactivate(self, document_id: int) -> None:
        """Mark document as inactive (soft delete)."""
        with self.connection() as conn:
            conn.execute(
                "UPDATE documents SET active = 0, modified_at = ? WHERE id = ?",
                (utcnow(), document_id),
            )

    def update_display_path(self, document_id: int, display_path: str) -> None:
        """Set a document's display path."""
        with self.connection() as conn:
            conn.execute("UPDATE documents SET display_path = ? WHERE id = ?", (display_path, document_id))

    def find_without_display_path(self) -> list[Document]:
        """List active documents still lacking a display path."""
        with self.connection() as conn:
            cursor = conn.execute(
                f"""SELECT {_COLUMNS} FROM documents
                    WHERE active = 1 AND display_path = ''
                    ORDER BY collection_id, filepath"""
            )
            return [_to_document(row) for row in cursor]

    def existing_display_paths(self) -> set[str]:
        """Display paths already taken by active documents."""
        with self.connection() as conn:
            cursor = conn.execute(
                "SELECT display_path FROM documents WHERE active = 1 AND display_path != ''"
            )
            return {row["display_path"] for row in cursor}

    def search_fts(self, fts_query: str, limit: int = 20) -> list[tuple[Document, float]]:
        """Run an FTS5 query, best match first.

        Returns raw bm25 scores: negative, more negative is better. Titles
        are weighted 10x over bodies.

        Raises:
            sqlite3.OperationalError: If ``fts_query`` is not valid FTS5 syntax.
        """
        with self.connection() as conn:
            cursor = conn.execute(
                """SELECT d.id, d.collection_id, d.filepath, d.hash, d.title, d.body,
                          d.active, d.modified_at, d.display_path,
                          bm25(documents_fts, 10.0, 1.0) AS score
                   FROM documents_fts
                   JOIN documents d ON d.id = documents_fts.rowid
                   WHERE documents_fts MATCH ? AND d.active = 1
                   ORDER BY score, d.filepath
                   LIMIT ?""",
                (fts_query, limit),
            )
            return [(_to_document(row), float(row["score"])) for row in cursor]

    def count(self) -> int:
        """Count active documents."""
        with self.connection() as conn:
            return conn.execute("SELECT COUNT(*) FROM documents WHERE active = 1").fetchone()[0]
