"""Data models for mdquery."""

from mdquery.models.document import (
    Chunk,
    Collection,
    CollectionSummary,
    ContentVector,
    Document,
    PathContext,
    PendingContent,
)
from mdquery.models.search import (
    FusedResult,
    RankedResult,
    RerankCandidate,
    RerankScore,
    SearchResult,
    VectorMatch,
)
from mdquery.models.stats import CleanupResult, EmbedStats, IndexStats

__all__ = [
    "Chunk",
    "Collection",
    "CollectionSummary",
    "Document",
    "PathContext",
    "ContentVector",
    "PendingContent",
    "SearchResult",
    "VectorMatch",
    "FusedResult",
    "RerankCandidate",
    "RerankScore",
    "RankedResult",
    "IndexStats",
    "EmbedStats",
    "CleanupResult",
]
