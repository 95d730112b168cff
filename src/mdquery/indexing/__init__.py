"""Indexing: file diffing and embedding."""

from mdquery.indexing.embedding import EmbeddingPipeline
from mdquery.indexing.indexer import Indexer

__all__ = ["Indexer", "EmbeddingPipeline"]
