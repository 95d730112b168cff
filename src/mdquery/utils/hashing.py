"""Content fingerprints and cache keys."""

import hashlib
import json
from typing import Any


def hash_content(content: str) -> str:
    """Return the SHA-256 hex digest of a document body.

    The digest identifies unchanged files during indexing and namespaces
    stored vectors, so it must depend on nothing but the text itself.
    """
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def cache_key(url: str, payload: Any) -> str:
    """Return a deterministic key for a request to ``url`` with ``payload``."""
    digest = hashlib.sha256()
    digest.update(url.encode("utf-8"))
    digest.update(json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8"))
    return digest.hexdigest()
