"""Incremental indexing of collections."""

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from mdquery.errors import CollectionUnavailableError
from mdquery.models import Collection, IndexStats
from mdquery.protocols import Ingester
from mdquery.storage import IndexStore
from mdquery.utils import compute_display_path, extract_title, hash_content

logger = logging.getLogger(__name__)


class Indexer:
    """Diff a collection's files against the index.

    Each file is classified as indexed (new path), updated (new fingerprint),
    or unchanged. Active documents whose path disappeared are deactivated.
    Running twice over an unchanged tree changes nothing.
    """

    def __init__(self, store: IndexStore, ingester: Ingester):
        self.store = store
        self.ingester = ingester

    def index_collection(self, root: Path, pattern: str) -> IndexStats:
        """Index (or re-index) the files matching ``pattern`` under ``root``.

        Args:
            root: Collection root directory
            pattern: Glob relative to root

        Returns:
            Per-outcome counts plus the fingerprints still lacking embeddings
        """
        root = root.resolve()
        collection = self.store.collections.get_or_create(str(root), pattern)
        logger.info(f"Indexing {root} ({pattern})")
        stats = self._sync(collection, root)
        self.assign_display_paths()
        stats.needs_embedding = self.store.vectors.count_needing_embedding()
        logger.info(
            f"  {stats.indexed} new, {stats.updated} updated, {stats.unchanged} unchanged, "
            f"{stats.removed} removed"
            + (f", {stats.failed} failed" if stats.failed else "")
        )
        return stats

    def update_all(self) -> IndexStats:
        """Re-scan every known collection.

        A collection whose root cannot be listed is logged and counted in
        ``failed_collections``; its documents stay as they are.
        """
        total = IndexStats()
        for collection in self.store.collections.find_all():
            try:
                stats = self.index_collection(Path(collection.pwd), collection.glob_pattern)
            except CollectionUnavailableError as exc:
                logger.error(f"Skipping collection {collection.id}: {exc}")
                total.failed_collections += 1
                continue
            total.merge(stats)
        total.needs_embedding = self.store.vectors.count_needing_embedding()
        return total

    def _sync(self, collection: Collection, root: Path) -> IndexStats:
        stats = IndexStats()
        existing = {
            doc.filepath: doc for doc in self.store.documents.find_by_collection(collection.id)
        }
        seen: set[str] = set()

        for path in self.ingester.enumerate(root, collection.glob_pattern):
            filepath = str(path)
            # Unreadable files count as seen so a transient error does not deactivate them
            seen.add(filepath)
            try:
                body = path.read_text(encoding="utf-8")
                modified_at = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc).isoformat()
            except (OSError, UnicodeDecodeError) as exc:
                logger.warning(f"Skipping {filepath}: {exc}")
                stats.failed += 1
                continue

            content_hash = hash_content(body)
            title = extract_title(body, filepath)
            doc = existing.get(filepath)

            if doc is None:
                try:
                    self.store.documents.insert(
                        collection.id, filepath, title, content_hash, body, modified_at
                    )
                except sqlite3.IntegrityError:
                    logger.warning(f"{filepath} is already indexed by another run or collection")
                    stats.unchanged += 1
                    continue
                stats.indexed += 1
            elif doc.hash != content_hash:
                self.store.documents.update_content(doc.id, title, content_hash, body, modified_at)
                stats.updated += 1
            else:
                stats.unchanged += 1

        for filepath, doc in existing.items():
            if filepath not in seen:
                self.store.documents.deactivate(doc.id)
                stats.removed += 1

        return stats

    def assign_display_paths(self) -> int:
        """Give every active document without a display path a unique one."""
        pending = self.store.documents.find_without_display_path()
        if not pending:
            return 0
        taken = self.store.documents.existing_display_paths()
        for doc in pending:
            display_path = compute_display_path(doc.filepath, taken)
            taken.add(display_path)
            self.store.documents.update_display_path(doc.id, display_path)
        return len(pending)
