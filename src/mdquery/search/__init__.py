"""Retrieval: lexical, vector, fusion and reranking."""

from mdquery.search.fusion import reciprocal_rank_fusion
from mdquery.search.hybrid import HybridSearch
from mdquery.search.lexical import LexicalSearch, build_fts_query, normalize_bm25
from mdquery.search.reranker import Reranker, score_judgment
from mdquery.search.vector import VectorSearch

__all__ = [
    "LexicalSearch",
    "VectorSearch",
    "HybridSearch",
    "Reranker",
    "reciprocal_rank_fusion",
    "normalize_bm25",
    "build_fts_query",
    "score_judgment",
]
