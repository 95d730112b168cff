"""Full-text search over the FTS5 index with bounded scores."""

import logging
import re
import sqlite3

from mdquery.errors import QueryError
from mdquery.models import SearchResult
from mdquery.storage import IndexStore

logger = logging.getLogger(__name__)

DEFAULT_NORMALIZATION = 10.0

_FTS_SYNTAX = re.compile(r'[*"{}]|\b(AND|OR|NOT)\b')


def normalize_bm25(raw: float, k: float = DEFAULT_NORMALIZATION) -> float:
    """Map a raw bm25 score into (0, 1].

    FTS5 reports bm25 as a negative number where more negative is a better
    match; ``1 / (1 + |raw| / k)`` rounded to three places.
    """
    return round(1.0 / (1.0 + abs(raw) / k), 3)


def build_fts_query(query: str) -> str:
    """Quote a plain query as an FTS5 phrase.

    Queries that already use FTS5 operators are passed through untouched.
    """
    query = query.strip()
    if _FTS_SYNTAX.search(query):
        return query
    return '"' + query.replace('"', '""') + '"'


class LexicalSearch:
    """Term-ranked search against the document text index."""

    def __init__(self, store: IndexStore, normalization: float = DEFAULT_NORMALIZATION):
        self.store = store
        self.normalization = normalization

    def search(self, query: str, limit: int = 20) -> list[SearchResult]:
        """Run ``query`` and return results best-first.

        Raises:
            QueryError: If the query is not valid FTS5 syntax.
        """
        if not query.strip():
            return []

        fts_query = build_fts_query(query)
        try:
            hits = self.store.documents.search_fts(fts_query, limit)
        except sqlite3.OperationalError as exc:
            raise QueryError(f"Invalid search query {query!r}: {exc}") from exc

        logger.debug(f"FTS query {fts_query!r} matched {len(hits)} documents")
        results = []
        for doc, raw in hits:
            context = self.store.contexts.find_for_path(doc.filepath)
            results.append(
                SearchResult(
                    file=doc.filepath,
                    display_path=doc.display_path,
                    title=doc.title,
                    body=doc.body,
                    score=normalize_bm25(raw, self.normalization),
                    source="fts",
                    context=context.context if context else None,
                )
            )
        return results
