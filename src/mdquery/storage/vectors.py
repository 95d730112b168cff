"""Chunk vector repository and nearest-neighbor search."""

import logging
import sqlite3
from typing import Iterable, Optional, Sequence

import numpy as np

from mdquery.models import ContentVector, PendingContent, VectorMatch
from mdquery.storage.base import Repository, utcnow
from mdquery.storage.schema import VECTORS_TABLE

logger = logging.getLogger(__name__)

DIMENSION_KEY = "vector_dimension"
VECTOR_DTYPE = np.dtype("<f4")


def encode_vector(embedding: Sequence[float] | np.ndarray) -> bytes:
    """Serialize a vector as a little-endian float32 blob."""
    return np.asarray(embedding, dtype=VECTOR_DTYPE).tobytes()


def decode_vector(blob: bytes) -> np.ndarray:
    """Deserialize a float32 blob into a read-only array."""
    return np.frombuffer(blob, dtype=VECTOR_DTYPE)


class VectorRepository(Repository):
    """Data access for ``content_vectors``.

    One row per (fingerprint, chunk sequence). Documents with identical
    content share their vectors.
    """

    def dimension(self) -> Optional[int]:
        """Configured embedding dimension, or None before the first embedding."""
        value = self.store.get_metadata(DIMENSION_KEY)
        return int(value) if value else None

    def ensure_dimension(self, dimension: int) -> bool:
        """Record ``dimension``, rebuilding the vector table if it changed.

        Returns:
            True if existing vectors were dropped
        """
        current = self.dimension()
        if current == dimension:
            return False

        rebuilt = current is not None
        with self.connection() as conn:
            if rebuilt:
                logger.warning(
                    f"Embedding dimension changed from {current} to {dimension}, "
                    "dropping all stored vectors"
                )
                conn.execute("DROP TABLE IF EXISTS content_vectors")
                conn.executescript(VECTORS_TABLE)
            conn.execute(
                "INSERT OR REPLACE INTO metadata (key, value) VALUES (?, ?)",
                (DIMENSION_KEY, str(dimension)),
            )
        return rebuilt

    def insert(
        self, content_hash: str, seq: int, pos: int, embedding: Sequence[float], model: str
    ) -> None:
        """Store one chunk vector."""
        with self.connection() as conn:
            self._insert(conn, content_hash, seq, pos, embedding, model, utcnow())

    def replace(
        self,
        content_hash: str,
        items: Iterable[tuple[int, int, Sequence[float]]],
        model: str,
    ) -> int:
        """Swap every vector of ``content_hash`` for ``items`` in one transaction.

        Args:
            content_hash: Fingerprint whose vectors are replaced
            items: (seq, pos, embedding) triples
            model: Embedding model name

        Returns:
            Number of vectors written
        """
        now = utcnow()
        written = 0
        with self.connection() as conn:
            conn.execute("DELETE FROM content_vectors WHERE hash = ?", (content_hash,))
            for seq, pos, embedding in items:
                self._insert(conn, content_hash, seq, pos, embedding, model, now)
                written += 1
        return written

    @staticmethod
    def _insert(
        conn: sqlite3.Connection,
        content_hash: str,
        seq: int,
        pos: int,
        embedding: Sequence[float],
        model: str,
        embedded_at: str,
    ) -> None:
        conn.execute(
            """INSERT OR REPLACE INTO content_vectors
               (hash, seq, pos, model, embedded_at, embedding)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (content_hash, seq, pos, model, embedded_at, encode_vector(embedding)),
        )

    def find_by_hash(self, content_hash: str) -> list[ContentVector]:
        """List the vectors of a fingerprint in chunk order."""
        with self.connection() as conn:
            cursor = conn.execute(
                """SELECT hash, seq, pos, model, embedding FROM content_vectors
                   WHERE hash = ? ORDER BY seq""",
                (content_hash,),
            )
            return [
                ContentVector(
                    hash=row["hash"],
                    seq=row["seq"],
                    pos=row["pos"],
                    model=row["model"],
                    embedding=decode_vector(row["embedding"]),
                )
                for row in cursor
            ]

    def delete_by_hash(self, content_hash: str) -> int:
        """Delete the vectors of a fingerprint."""
        with self.connection() as conn:
            cursor = conn.execute("DELETE FROM content_vectors WHERE hash = ?", (content_hash,))
            return cursor.rowcount

    def has_embedding(self, content_hash: str) -> bool:
        """Check whether a fingerprint has any stored vector."""
        with self.connection() as conn:
            row = conn.execute(
                "SELECT 1 FROM content_vectors WHERE hash = ? LIMIT 1", (content_hash,)
            ).fetchone()
            return row is not None

    def clear(self) -> int:
        """Delete every stored vector."""
        with self.connection() as conn:
            return conn.execute("DELETE FROM content_vectors").rowcount

    def nearest(self, query: Sequence[float], limit: int = 10) -> list[VectorMatch]:
        """Find the ``limit`` chunk vectors closest to ``query`` by cosine distance.

        Only vectors belonging to an active document are considered. A
        fingerprint shared by several documents yields one match per document.
        """
        if limit <= 0:
            return []

        with self.connection() as conn:
            rows = conn.execute(
                """SELECT hash, seq, pos, embedding FROM content_vectors
                   WHERE hash IN (SELECT hash FROM documents WHERE active = 1)
                   ORDER BY hash, seq"""
            ).fetchall()
        if not rows:
            return []

        query_vec = np.asarray(query, dtype=np.float32)
        matrix = np.vstack([decode_vector(row["embedding"]) for row in rows])
        if matrix.shape[1] != query_vec.shape[0]:
            logger.warning(
                f"Query vector has dimension {query_vec.shape[0]}, index has {matrix.shape[1]}; "
                "run embed to rebuild"
            )
            return []

        distances = self._cosine_distances(matrix, query_vec)
        order = np.argsort(distances, kind="stable")[:limit]

        documents = self.store.documents.find_many_by_hash(
            sorted({rows[i]["hash"] for i in order})
        )
        matches = []
        for i in order:
            row = rows[i]
            for doc in documents.get(row["hash"], []):
                matches.append(
                    VectorMatch(
                        hash=row["hash"],
                        seq=row["seq"],
                        pos=row["pos"],
                        distance=float(distances[i]),
                        filepath=doc.filepath,
                        display_path=doc.display_path,
                        title=doc.title,
                        body=doc.body,
                    )
                )
        return matches

    @staticmethod
    def _cosine_distances(matrix: np.ndarray, query: np.ndarray) -> np.ndarray:
        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        dots = matrix @ query
        similarity = np.divide(dots, norms, out=np.zeros_like(dots), where=norms != 0)
        return 1.0 - similarity

    def pending(self) -> list[PendingContent]:
        """Distinct active fingerprints with no first-chunk vector."""
        with self.connection() as conn:
            cursor = conn.execute(
                """SELECT d.hash, MIN(d.title) AS title, MIN(d.body) AS body
                   FROM documents d
                   LEFT JOIN content_vectors v ON v.hash = d.hash AND v.seq = 0
                   WHERE d.active = 1 AND v.hash IS NULL
                   GROUP BY d.hash
                   ORDER BY d.hash"""
            )
            return [
                PendingContent(hash=row["hash"], title=row["title"], body=row["body"])
                for row in cursor
            ]

    def count_needing_embedding(self) -> int:
        """Count distinct active fingerprints without vectors."""
        with self.connection() as conn:
            return conn.execute(
                """SELECT COUNT(DISTINCT d.hash)
                   FROM documents d
                   LEFT JOIN content_vectors v ON v.hash = d.hash AND v.seq = 0
                   WHERE d.active = 1 AND v.hash IS NULL"""
            ).fetchone()[0]

    def count_embedded_hashes(self) -> int:
        """Count fingerprints with at least one vector."""
        with self.connection() as conn:
            return conn.execute("SELECT COUNT(DISTINCT hash) FROM content_vectors").fetchone()[0]

    def count_chunks(self) -> int:
        """Count stored chunk vectors."""
        with self.connection() as conn:
            return conn.execute("SELECT COUNT(*) FROM content_vectors").fetchone()[0]
