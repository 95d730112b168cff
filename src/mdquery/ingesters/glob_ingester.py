"""Ingester that expands a glob pattern under a collection root."""

from pathlib import Path
from typing import Iterable, Iterator

from mdquery.errors import CollectionUnavailableError


class GlobIngester:
    """Enumerate files matching a glob, skipping hidden and excluded directories."""

    DEFAULT_EXCLUDES = ("node_modules", ".git", "dist", "build", ".cache")

    def __init__(self, exclude_dirs: Iterable[str] | None = None):
        self.exclude_dirs = set(self.DEFAULT_EXCLUDES if exclude_dirs is None else exclude_dirs)

    def enumerate(self, root: Path, pattern: str) -> Iterator[Path]:
        """Yield matching files under root, sorted by path.

        Args:
            root: Collection root directory
            pattern: Glob relative to root (e.g. "**/*.md")

        Yields:
            Absolute file paths

        Raises:
            CollectionUnavailableError: If root is missing or not a directory
        """
        root = root.resolve()
        if not root.is_dir():
            raise CollectionUnavailableError(f"Collection root is not a directory: {root}", str(root))

        for path in sorted(root.glob(pattern)):
            if not path.is_file():
                continue
            if self._should_skip(path.relative_to(root)):
                continue
            yield path

    def _should_skip(self, rel_path: Path) -> bool:
        """Check if a file lives in a hidden or excluded directory, or is hidden itself."""
        parts = rel_path.parts
        if any(part.startswith(".") for part in parts):
            return True
        return any(part in self.exclude_dirs for part in parts[:-1])
