"""Protocol for text chunking strategies."""

from typing import Protocol, runtime_checkable

from mdquery.models import Chunk


@runtime_checkable
class ChunkingStrategy(Protocol):
    """Protocol for text chunking strategies.

    The output must be a deterministic function of the text and the
    strategy's parameters, since stored vectors are keyed by chunk sequence.
    """

    def chunk(self, text: str) -> list[Chunk]:
        """Split text into ordered chunks."""
        ...
