"""Fixed-size sliding-window chunking strategy."""

from mdquery.errors import ChunkingConfigError
from mdquery.models import Chunk


class WindowChunker:
    """Split text into overlapping windows of ``size`` characters.

    Window ``i`` starts at ``i * (size - overlap)``. The last window may be
    shorter than ``size``; text no longer than ``size`` yields one chunk.
    """

    DEFAULT_SIZE = 1000
    DEFAULT_OVERLAP = 200

    def __init__(self, size: int = DEFAULT_SIZE, overlap: int = DEFAULT_OVERLAP):
        """Validate the window parameters.

        Raises:
            ChunkingConfigError: If size is not positive, overlap is negative,
                or overlap is not smaller than size.
        """
        if size <= 0:
            raise ChunkingConfigError(f"Chunk size must be positive, got {size}")
        if overlap < 0:
            raise ChunkingConfigError(f"Chunk overlap must not be negative, got {overlap}")
        if overlap >= size:
            raise ChunkingConfigError(
                f"Chunk overlap ({overlap}) must be smaller than chunk size ({size})"
            )
        self.size = size
        self.overlap = overlap

    @property
    def step(self) -> int:
        return self.size - self.overlap

    def chunk(self, text: str) -> list[Chunk]:
        """Split text into chunks with offsets.

        Args:
            text: The full document body

        Returns:
            List of Chunk objects covering the whole text, in order
        """
        if len(text) <= self.size:
            return [Chunk(seq=0, pos=0, text=text)]

        chunks = []
        pos = 0
        while True:
            chunks.append(Chunk(seq=len(chunks), pos=pos, text=text[pos : pos + self.size]))
            if pos + self.size >= len(text):
                break
            pos += self.step
        return chunks


def chunk_document(
    text: str,
    size: int = WindowChunker.DEFAULT_SIZE,
    overlap: int = WindowChunker.DEFAULT_OVERLAP,
) -> list[Chunk]:
    """Chunk ``text`` with a one-off WindowChunker."""
    return WindowChunker(size, overlap).chunk(text)
