"""Chunking strategies for embedding."""

from mdquery.chunkers.window_chunker import WindowChunker, chunk_document

__all__ = ["WindowChunker", "chunk_document"]
