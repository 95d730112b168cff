"""Persistent model response cache."""

from typing import Optional

from mdquery.storage.base import Repository, utcnow


class SqliteResponseCache(Repository):
    """ResponseCache backed by the model_cache table."""

    def get(self, key: str) -> Optional[str]:
        """Return the cached response for a key, if any."""
        with self.connection() as conn:
            row = conn.execute("SELECT result FROM model_cache WHERE hash = ?", (key,)).fetchone()
            return row["result"] if row else None

    def put(self, key: str, value: str) -> None:
        """Store a response under a key."""
        with self.connection() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO model_cache (hash, result, created_at) VALUES (?, ?, ?)",
                (key, value, utcnow()),
            )

    def clear(self) -> int:
        """Delete every cached response."""
        with self.connection() as conn:
            return conn.execute("DELETE FROM model_cache").rowcount

    def count(self) -> int:
        """Count cached responses."""
        with self.connection() as conn:
            return conn.execute("SELECT COUNT(*) FROM model_cache").fetchone()[0]
