"""Hybrid query pipeline: lexical + vector, fused, then reranked."""

import logging

from mdquery.clients import OllamaClient
from mdquery.config import Settings
from mdquery.models import RankedResult, RerankCandidate, SearchResult
from mdquery.search.fusion import DEFAULT_RRF_K, reciprocal_rank_fusion
from mdquery.search.lexical import LexicalSearch
from mdquery.search.reranker import Reranker
from mdquery.search.vector import VectorSearch
from mdquery.storage import IndexStore

logger = logging.getLogger(__name__)


class HybridSearch:
    """Run both retrieval modes, fuse them with RRF and rerank the head."""

    def __init__(
        self,
        lexical: LexicalSearch,
        vector: VectorSearch,
        reranker: Reranker,
        rrf_k: float = DEFAULT_RRF_K,
        rerank_candidates: int = 30,
    ):
        self.lexical = lexical
        self.vector = vector
        self.reranker = reranker
        self.rrf_k = rrf_k
        self.rerank_candidates = rerank_candidates

    @classmethod
    def from_settings(
        cls, settings: Settings, store: IndexStore, client: OllamaClient
    ) -> "HybridSearch":
        return cls(
            lexical=LexicalSearch(store, settings.bm25_normalization),
            vector=VectorSearch(store, client, settings.embed_model),
            reranker=Reranker(
                client,
                settings.rerank_model,
                cache=store.cache,
                negative_scale=settings.rerank_negative_scale,
                context_chars=settings.rerank_context_chars,
            ),
            rrf_k=settings.rrf_k,
            rerank_candidates=settings.rerank_candidates,
        )

    def fused(self, query: str) -> list[tuple[SearchResult, float]]:
        """Fused candidates with their RRF scores, before reranking."""
        runs = {
            "fts": self.lexical.search(query, self.rerank_candidates),
            "vec": self.vector.search(query, self.rerank_candidates),
        }
        logger.debug(f"Lexical returned {len(runs['fts'])}, vector returned {len(runs['vec'])}")
        return [(item.result, item.score) for item in reciprocal_rank_fusion(runs, self.rrf_k)]

    def query(self, query: str, limit: int = 10, min_score: float = 0.0) -> list[RankedResult]:
        """Answer ``query`` with reranked results, best first.

        Args:
            query: Natural language query
            limit: Maximum number of results
            min_score: Drop results whose rerank score is below this

        Returns:
            Results ordered by rerank score, ties kept in fused order
        """
        fused = self.fused(query)[: self.rerank_candidates]
        if not fused:
            return []

        by_file = {result.file: (result, score) for result, score in fused}
        candidates = [
            RerankCandidate(id=result.file, text=f"{result.title}\n\n{result.body}")
            for result, _ in fused
        ]
        verdicts = self.reranker.rerank(query, candidates)

        ranked = []
        for verdict in verdicts:
            result, fused_score = by_file[verdict.id]
            if verdict.score < min_score:
                continue
            ranked.append(
                RankedResult(
                    file=result.file,
                    display_path=result.display_path,
                    title=result.title,
                    body=result.body,
                    score=round(verdict.score, 3),
                    fused_score=fused_score,
                    relevant=verdict.relevant,
                    context=result.context,
                )
            )
        return ranked[:limit]
