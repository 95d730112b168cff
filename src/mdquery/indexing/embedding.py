"""Chunk and embed documents that have no stored vectors."""

import logging

from mdquery.models import EmbedStats, PendingContent
from mdquery.protocols import ChunkingStrategy, EmbeddingProvider
from mdquery.storage import IndexStore

logger = logging.getLogger(__name__)


class EmbeddingPipeline:
    """Embed every pending fingerprint, one chunk at a time.

    The first pending chunk is embedded before anything is written so a
    change of embedding dimension is detected up front and the vector table
    rebuilt before any new vector is stored.
    """

    def __init__(
        self,
        store: IndexStore,
        embedder: EmbeddingProvider,
        chunker: ChunkingStrategy,
        model: str,
    ):
        self.store = store
        self.embedder = embedder
        self.chunker = chunker
        self.model = model

    def embed_pending(self, force: bool = False) -> EmbedStats:
        """Embed all active content lacking a first-chunk vector.

        Args:
            force: Drop every stored vector first and re-embed everything

        Raises:
            ModelUnavailableError: If the embedding model cannot be reached.
                Vectors already written for other fingerprints are kept.
        """
        stats = EmbedStats()
        if force:
            cleared = self.store.vectors.clear()
            logger.info(f"Cleared {cleared} stored vectors")

        pending = self.store.vectors.pending()
        if not pending:
            logger.info("All documents are embedded")
            return stats

        stats.rebuilt = self._check_dimension(pending[0])
        if stats.rebuilt:
            pending = self.store.vectors.pending()

        logger.info(f"Embedding {len(pending)} documents with {self.model}")
        for item in pending:
            stats.chunks += self.embed_content(item)
            stats.documents += 1
            logger.debug(f"  embedded {item.title}")

        logger.info(f"Embedded {stats.documents} documents ({stats.chunks} chunks)")
        return stats

    def embed_content(self, item: PendingContent) -> int:
        """Replace the vectors of one fingerprint, returning the chunk count."""
        vectors = [
            (chunk.seq, chunk.pos, self.embedder.embed(chunk.text, self.model, title=item.title))
            for chunk in self.chunker.chunk(item.body)
        ]
        return self.store.vectors.replace(item.hash, vectors, self.model)

    def _check_dimension(self, sample: PendingContent) -> bool:
        first = self.chunker.chunk(sample.body)[0]
        probe = self.embedder.embed(first.text, self.model, title=sample.title)
        return self.store.vectors.ensure_dimension(len(probe))
