"""Path context repository."""

from typing import Optional

from mdquery.models import PathContext
from mdquery.storage.base import Repository, utcnow


class PathContextRepository(Repository):
    """Annotations attached to path prefixes, resolved by longest match."""

    def find_for_path(self, filepath: str) -> Optional[PathContext]:
        """Return the context whose prefix is the longest prefix of ``filepath``."""
        with self.connection() as conn:
            row = conn.execute(
                """SELECT path_prefix, context FROM path_contexts
                   WHERE substr(?, 1, length(path_prefix)) = path_prefix
                   ORDER BY length(path_prefix) DESC
                   LIMIT 1""",
                (filepath,),
            ).fetchone()
            return PathContext(row["path_prefix"], row["context"]) if row else None

    def find_all(self) -> list[PathContext]:
        """List every path context ordered by prefix."""
        with self.connection() as conn:
            cursor = conn.execute("SELECT path_prefix, context FROM path_contexts ORDER BY path_prefix")
            return [PathContext(row["path_prefix"], row["context"]) for row in cursor]

    def upsert(self, path_prefix: str, context: str) -> None:
        """Attach a context to a prefix, replacing any existing one."""
        with self.connection() as conn:
            conn.execute(
                """INSERT INTO path_contexts (path_prefix, context, created_at)
                   VALUES (?, ?, ?)
                   ON CONFLICT(path_prefix) DO UPDATE SET context = excluded.context""",
                (path_prefix, context, utcnow()),
            )

    def delete(self, path_prefix: str) -> bool:
        """Remove the context for a prefix. Returns False if there was none."""
        with self.connection() as conn:
            cursor = conn.execute("DELETE FROM path_contexts WHERE path_prefix = ?", (path_prefix,))
            return cursor.rowcount > 0

    def count(self) -> int:
        """Count path contexts."""
        with self.connection() as conn:
            return conn.execute("SELECT COUNT(*) FROM path_contexts").fetchone()[0]
