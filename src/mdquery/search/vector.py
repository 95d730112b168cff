"""Semantic search over stored chunk embeddings."""

import logging

from mdquery.models import SearchResult, VectorMatch
from mdquery.protocols import EmbeddingProvider
from mdquery.storage import IndexStore

logger = logging.getLogger(__name__)


class VectorSearch:
    """Embed the query and return the documents owning the closest chunks.

    Each document appears once, represented by its best chunk.
    """

    # Chunks fetched per requested document on the first pass; the window
    # doubles while long documents crowd out distinct ones.
    OVERFETCH = 3

    def __init__(self, store: IndexStore, embedder: EmbeddingProvider, model: str):
        self.store = store
        self.embedder = embedder
        self.model = model

    def search(self, query: str, limit: int = 20) -> list[SearchResult]:
        if not query.strip() or limit <= 0:
            return []
        total = self.store.vectors.count_chunks()
        if total == 0:
            logger.warning("No embeddings stored yet, run 'mdquery embed' first")
            return []

        query_vec = self.embedder.embed(query, self.model, is_query=True)
        fetch = limit * self.OVERFETCH
        while True:
            matches = self.store.vectors.nearest(query_vec, fetch)
            best = self._best_per_document(matches, limit)
            if len(best) >= limit or fetch >= total:
                break
            fetch *= 2

        results = []
        for match in best:
            context = self.store.contexts.find_for_path(match.filepath)
            results.append(
                SearchResult(
                    file=match.filepath,
                    display_path=match.display_path,
                    title=match.title,
                    body=match.body,
                    score=round(1.0 - match.distance, 3),
                    source="vec",
                    chunk_pos=match.pos,
                    context=context.context if context else None,
                )
            )
        return results

    @staticmethod
    def _best_per_document(matches: list[VectorMatch], limit: int) -> list[VectorMatch]:
        best: list[VectorMatch] = []
        seen: set[str] = set()
        for match in matches:
            if match.filepath in seen:
                continue
            seen.add(match.filepath)
            best.append(match)
            if len(best) >= limit:
                break
        return best
