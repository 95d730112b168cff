"""Core data models for collections, documents and chunks."""

from dataclasses import dataclass
from typing import Optional

import numpy as np


@dataclass(frozen=True)
class Collection:
    """A (root directory, glob pattern) scope of indexed files."""

    id: int
    pwd: str
    glob_pattern: str
    created_at: str


@dataclass(frozen=True)
class CollectionSummary:
    """A collection with its active document count."""

    collection: Collection
    active_count: int
    last_doc_update: Optional[str]


@dataclass
class Document:
    """An indexed file. Never hard-deleted by indexing, only deactivated."""

    id: int
    collection_id: int
    filepath: str
    hash: str
    title: str
    body: str
    active: bool
    modified_at: str
    display_path: str = ""


@dataclass(frozen=True)
class Chunk:
    """A window of a document body, addressed by sequence number and offset."""

    seq: int
    pos: int
    text: str

    @property
    def end(self) -> int:
        return self.pos + len(self.text)


@dataclass(frozen=True)
class PathContext:
    """Human-readable annotation for every path under ``path_prefix``."""

    path_prefix: str
    context: str


@dataclass(frozen=True)
class ContentVector:
    """A stored chunk embedding."""

    hash: str
    seq: int
    pos: int
    model: str
    embedding: np.ndarray


@dataclass(frozen=True)
class PendingContent:
    """A fingerprint with no stored embedding, plus the text to embed."""

    hash: str
    title: str
    body: str
