"""Helpers for document titles and display paths."""

from pathlib import PurePath

_HEADING_PREFIX = "# "


def extract_title(body: str, filepath: str) -> str:
    """Return the first level-one Markdown heading, or the file stem."""
    for line in body.splitlines():
        stripped = line.strip()
        if stripped.startswith(_HEADING_PREFIX):
            title = stripped[len(_HEADING_PREFIX):].strip()
            if title:
                return title
    return PurePath(filepath).stem


def compute_display_path(filepath: str, taken: set[str]) -> str:
    """Pick the shortest trailing path suffix of ``filepath`` not in ``taken``.

    ``/home/me/notes/docker/intro.md`` becomes ``intro.md`` when that label
    is free, then ``docker/intro.md``, and so on. Falls back to the full path.
    """
    parts = PurePath(filepath).parts
    for length in range(1, len(parts) + 1):
        candidate = "/".join(parts[-length:]).lstrip("/")
        if candidate and candidate not in taken:
            return candidate
    return filepath
