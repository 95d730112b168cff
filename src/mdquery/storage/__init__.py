"""SQLite storage for the mdquery index."""

from mdquery.storage.cache import SqliteResponseCache
from mdquery.storage.collections import CollectionRepository
from mdquery.storage.contexts import PathContextRepository
from mdquery.storage.documents import DocumentRepository
from mdquery.storage.store import IndexStore
from mdquery.storage.vectors import VectorRepository

__all__ = [
    "IndexStore",
    "CollectionRepository",
    "DocumentRepository",
    "VectorRepository",
    "PathContextRepository",
    "SqliteResponseCache",
]
