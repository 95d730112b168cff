"""Shared pieces for the storage repositories."""

import sqlite3
from contextlib import AbstractContextManager
from datetime import datetime, timezone
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mdquery.storage.store import IndexStore


def utcnow() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


class Repository:
    """Data access for one table family, using the store's connections."""

    def __init__(self, store: "IndexStore"):
        self.store = store

    def connection(self) -> AbstractContextManager[sqlite3.Connection]:
        return self.store.connection()
