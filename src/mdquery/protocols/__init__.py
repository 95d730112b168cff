"""Protocol definitions for extensible components."""

from mdquery.protocols.cache import ResponseCache
from mdquery.protocols.chunker import ChunkingStrategy
from mdquery.protocols.ingester import Ingester
from mdquery.protocols.model import CompletionProvider, EmbeddingProvider

__all__ = [
    "Ingester",
    "ChunkingStrategy",
    "EmbeddingProvider",
    "CompletionProvider",
    "ResponseCache",
]
