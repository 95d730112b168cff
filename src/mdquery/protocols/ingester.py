"""Protocol for file enumeration."""

from pathlib import Path
from typing import Iterator, Protocol, runtime_checkable


@runtime_checkable
class Ingester(Protocol):
    """Expands a glob pattern under a root directory into files to index.

    Uses structural subtyping - no inheritance required.
    """

    def enumerate(self, root: Path, pattern: str) -> Iterator[Path]:
        """Yield absolute paths of matching files in a stable order.

        Raises CollectionUnavailableError when root cannot be listed.
        """
        ...
