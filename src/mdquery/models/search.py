"""Result models shared by the search adapters, fusion and reranking."""

from dataclasses import dataclass, field
from typing import Literal, Optional

Source = Literal["fts", "vec", "hybrid"]


@dataclass(frozen=True)
class SearchResult:
    """One ranked hit from a single retrieval mode."""

    file: str
    display_path: str
    title: str
    body: str
    score: float
    source: Source
    chunk_pos: Optional[int] = None
    context: Optional[str] = None


@dataclass(frozen=True)
class VectorMatch:
    """A stored chunk vector close to the query, with its owning document."""

    hash: str
    seq: int
    pos: int
    distance: float
    filepath: str
    display_path: str
    title: str
    body: str


@dataclass(frozen=True)
class FusedResult:
    """A candidate after Reciprocal Rank Fusion."""

    result: SearchResult
    score: float
    ranks: dict[str, int] = field(default_factory=dict)

    @property
    def best_rank(self) -> int:
        return min(self.ranks.values())


@dataclass(frozen=True)
class RerankCandidate:
    """Text shown to the reranker, keyed by a stable identifier."""

    id: str
    text: str


@dataclass(frozen=True)
class RerankScore:
    """The reranker's verdict for one candidate."""

    id: str
    score: float
    relevant: bool


@dataclass(frozen=True)
class RankedResult:
    """Final hybrid result ordered by rerank score."""

    file: str
    display_path: str
    title: str
    body: str
    score: float
    fused_score: float
    relevant: bool
    context: Optional[str] = None
