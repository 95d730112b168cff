"""Utility functions for mdquery."""

from mdquery.utils.hashing import cache_key, hash_content
from mdquery.utils.paths import compute_display_path, extract_title

__all__ = ["hash_content", "cache_key", "extract_title", "compute_display_path"]
