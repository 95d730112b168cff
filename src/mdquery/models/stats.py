"""Counters reported by indexing, embedding and cleanup."""

from dataclasses import dataclass


@dataclass
class IndexStats:
    """Outcome of diffing one collection against the file system."""

    indexed: int = 0
    updated: int = 0
    unchanged: int = 0
    removed: int = 0
    failed: int = 0
    failed_collections: int = 0
    needs_embedding: int = 0

    @property
    def changed(self) -> int:
        return self.indexed + self.updated + self.removed

    def merge(self, other: "IndexStats") -> None:
        self.indexed += other.indexed
        self.updated += other.updated
        self.unchanged += other.unchanged
        self.removed += other.removed
        self.failed += other.failed
        self.failed_collections += other.failed_collections
        self.needs_embedding = other.needs_embedding


@dataclass
class EmbedStats:
    """Outcome of an embedding run."""

    documents: int = 0
    chunks: int = 0
    rebuilt: bool = False


@dataclass
class CleanupResult:
    """Rows removed (or that would be removed, in a dry run) by cleanup."""

    documents_deleted: int = 0
    vectors_deleted: int = 0
    cache_entries_deleted: int = 0
    space_reclaimed_mb: float = 0.0
