"""Tests for the SQLite repositories."""

import sqlite3

import numpy as np
import pytest

from mdquery.storage import IndexStore
from mdquery.utils import hash_content


def add_document(store: IndexStore, filepath: str, body: str, collection_id: int | None = None) -> int:
    if collection_id is None:
        collection_id = store.collections.get_or_create("/notes", "**/*.md").id
    return store.documents.insert(collection_id, filepath, filepath.rsplit("/", 1)[-1], hash_content(body), body)


def row_count(store: IndexStore, table: str) -> int:
    with store.connection() as conn:
        return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]


class TestIndexStore:
    def test_initialize_is_repeatable(self, store) -> None:
        store.initialize()
        assert store.get_metadata("schema_version") == "1"

    def test_wal_mode(self, store) -> None:
        with store.connection() as conn:
            assert conn.execute("PRAGMA journal_mode").fetchone()[0] == "wal"

    def test_failed_unit_of_work_rolls_back(self, store) -> None:
        with pytest.raises(RuntimeError):
            with store.connection() as conn:
                conn.execute("INSERT INTO metadata (key, value) VALUES ('k', 'v')")
                raise RuntimeError("boom")
        assert store.get_metadata("k") is None


class TestCollectionRepository:
    def test_get_or_create_is_idempotent(self, store) -> None:
        first = store.collections.get_or_create("/notes", "**/*.md")
        second = store.collections.get_or_create("/notes", "**/*.md")
        assert first.id == second.id
        assert store.collections.count() == 1

    def test_same_root_different_glob(self, store) -> None:
        a = store.collections.get_or_create("/notes", "**/*.md")
        b = store.collections.get_or_create("/notes", "*.txt")
        assert a.id != b.id

    def test_concurrent_insert_is_recovered(self, store, monkeypatch) -> None:
        """Another process inserting the same pair between lookup and insert is not fatal."""
        repo = store.collections
        existing_id = repo.insert("/notes", "**/*.md")
        real_find = repo.find_by_pwd_and_pattern
        calls = []

        def stale_then_real(pwd: str, pattern: str):
            calls.append(pwd)
            return None if len(calls) == 1 else real_find(pwd, pattern)

        monkeypatch.setattr(repo, "find_by_pwd_and_pattern", stale_then_real)
        assert repo.get_or_create("/notes", "**/*.md").id == existing_id

    def test_delete_deactivates_documents(self, store) -> None:
        collection = store.collections.get_or_create("/notes", "**/*.md")
        add_document(store, "/notes/a.md", "alpha", collection.id)

        store.collections.delete(collection.id)

        assert store.collections.find_by_id(collection.id) is None
        assert store.documents.find_by_filepath("/notes/a.md") is None
        assert row_count(store, "documents") == 1

    def test_counts(self, store) -> None:
        collection = store.collections.get_or_create("/notes", "**/*.md")
        add_document(store, "/notes/a.md", "alpha", collection.id)
        doc_id = add_document(store, "/notes/b.md", "beta", collection.id)
        store.documents.deactivate(doc_id)

        [summary] = store.collections.find_all_with_counts()
        assert summary.collection.id == collection.id
        assert summary.active_count == 1
        assert summary.last_doc_update is not None


class TestDocumentRepository:
    def test_insert_and_find(self, store) -> None:
        doc_id = add_document(store, "/notes/a.md", "# A\n\nalpha body")
        doc = store.documents.find_by_filepath("/notes/a.md")
        assert doc.id == doc_id
        assert doc.hash == hash_content("# A\n\nalpha body")
        assert doc.active is True
        assert store.documents.find_by_hash(doc.hash).id == doc_id

    def test_one_active_document_per_path(self, store) -> None:
        doc_id = add_document(store, "/notes/a.md", "alpha")
        with pytest.raises(sqlite3.IntegrityError):
            add_document(store, "/notes/a.md", "alpha again")

        store.documents.deactivate(doc_id)
        add_document(store, "/notes/a.md", "alpha again")
        assert store.documents.find_by_filepath("/notes/a.md").body == "alpha again"

    def test_deactivated_documents_are_hidden(self, store) -> None:
        doc_id = add_document(store, "/notes/a.md", "unique marmalade text")
        store.documents.deactivate(doc_id)

        assert store.documents.find_by_id(doc_id) is None
        assert store.documents.search_fts('"marmalade"', 10) == []
        assert store.documents.count() == 0

    def test_update_content_refreshes_text_index(self, store) -> None:
        doc_id = add_document(store, "/notes/a.md", "old walrus")
        store.documents.update_content(doc_id, "a.md", hash_content("new narwhal"), "new narwhal")

        assert store.documents.search_fts('"walrus"', 10) == []
        [(doc, raw)] = store.documents.search_fts('"narwhal"', 10)
        assert doc.id == doc_id
        assert raw < 0

    def test_title_outweighs_body(self, store) -> None:
        collection = store.collections.get_or_create("/notes", "**/*.md")
        store.documents.insert(collection.id, "/notes/body.md", "Misc", hash_content("b"), "tea tea tea here")
        store.documents.insert(collection.id, "/notes/title.md", "Tea", hash_content("t"), "a drink")
        results = store.documents.search_fts('"tea"', 10)
        assert results[0][0].filepath == "/notes/title.md"

    def test_find_many_by_hash(self, store) -> None:
        add_document(store, "/notes/a.md", "same")
        add_document(store, "/notes/b.md", "same")
        grouped = store.documents.find_many_by_hash([hash_content("same"), "missing"])
        assert [d.filepath for d in grouped[hash_content("same")]] == ["/notes/a.md", "/notes/b.md"]
        assert "missing" not in grouped


class TestVectorRepository:
    def test_replace_removes_stale_chunks(self, store) -> None:
        h = hash_content("text")
        store.vectors.replace(h, [(0, 0, [1.0, 0.0]), (1, 800, [0.0, 1.0]), (2, 1600, [1.0, 1.0])], "m")
        assert len(store.vectors.find_by_hash(h)) == 3

        written = store.vectors.replace(h, [(0, 0, [0.5, 0.5])], "m")

        assert written == 1
        [vector] = store.vectors.find_by_hash(h)
        assert vector.seq == 0
        np.testing.assert_allclose(vector.embedding, [0.5, 0.5])

    def test_failed_replace_keeps_old_vectors(self, store) -> None:
        h = hash_content("text")
        store.vectors.replace(h, [(0, 0, [1.0, 0.0])], "m")

        def broken():
            yield (0, 0, [0.0, 1.0])
            raise RuntimeError("model went away")

        with pytest.raises(RuntimeError):
            store.vectors.replace(h, broken(), "m")
        [vector] = store.vectors.find_by_hash(h)
        np.testing.assert_allclose(vector.embedding, [1.0, 0.0])

    def test_has_and_delete(self, store) -> None:
        h = hash_content("text")
        assert not store.vectors.has_embedding(h)
        store.vectors.insert(h, 0, 0, [1.0, 2.0], "m")
        assert store.vectors.has_embedding(h)
        assert store.vectors.delete_by_hash(h) == 1
        assert not store.vectors.has_embedding(h)

    def test_nearest_orders_by_cosine_distance(self, store) -> None:
        add_document(store, "/notes/east.md", "east")
        add_document(store, "/notes/north.md", "north")
        store.vectors.insert(hash_content("east"), 0, 0, [1.0, 0.0], "m")
        store.vectors.insert(hash_content("north"), 0, 0, [0.0, 1.0], "m")

        matches = store.vectors.nearest([1.0, 0.1], limit=2)

        assert [m.filepath for m in matches] == ["/notes/east.md", "/notes/north.md"]
        assert matches[0].distance < matches[1].distance
        assert matches[0].distance == pytest.approx(1 - 1 / np.sqrt(1.01), abs=1e-6)

    def test_nearest_skips_inactive_documents(self, store) -> None:
        doc_id = add_document(store, "/notes/gone.md", "gone")
        store.vectors.insert(hash_content("gone"), 0, 0, [1.0, 0.0], "m")
        store.documents.deactivate(doc_id)
        assert store.vectors.nearest([1.0, 0.0], limit=5) == []

    def test_nearest_limit(self, store) -> None:
        for i in range(5):
            add_document(store, f"/notes/{i}.md", f"doc {i}")
            store.vectors.insert(hash_content(f"doc {i}"), 0, 0, [1.0, float(i)], "m")
        assert len(store.vectors.nearest([1.0, 0.0], limit=3)) == 3

    def test_dimension_change_rebuilds_table(self, store) -> None:
        assert store.vectors.ensure_dimension(2) is False
        assert store.vectors.dimension() == 2
        store.vectors.insert(hash_content("x"), 0, 0, [1.0, 0.0], "m")

        assert store.vectors.ensure_dimension(2) is False
        assert store.vectors.count_chunks() == 1

        assert store.vectors.ensure_dimension(3) is True
        assert store.vectors.dimension() == 3
        assert store.vectors.count_chunks() == 0

    def test_pending_counts_distinct_fingerprints(self, store) -> None:
        add_document(store, "/notes/a.md", "shared body")
        add_document(store, "/notes/b.md", "shared body")
        add_document(store, "/notes/c.md", "other body")
        assert store.vectors.count_needing_embedding() == 2

        store.vectors.insert(hash_content("shared body"), 0, 0, [1.0], "m")

        assert store.vectors.count_needing_embedding() == 1
        [pending] = store.vectors.pending()
        assert pending.hash == hash_content("other body")
        assert pending.body == "other body"


class TestPathContextRepository:
    def test_longest_prefix_wins(self, store) -> None:
        store.contexts.upsert("/notes", "Personal notes")
        store.contexts.upsert("/notes/work", "Work notes")

        assert store.contexts.find_for_path("/notes/work/plan.md").context == "Work notes"
        assert store.contexts.find_for_path("/notes/home.md").context == "Personal notes"
        assert store.contexts.find_for_path("/elsewhere/x.md") is None

    def test_upsert_replaces(self, store) -> None:
        store.contexts.upsert("/notes", "old")
        store.contexts.upsert("/notes", "new")
        assert store.contexts.count() == 1
        assert store.contexts.find_all()[0].context == "new"

    def test_delete(self, store) -> None:
        store.contexts.upsert("/notes", "x")
        assert store.contexts.delete("/notes") is True
        assert store.contexts.delete("/notes") is False


class TestResponseCache:
    def test_get_put_clear(self, store) -> None:
        assert store.cache.get("k") is None
        store.cache.put("k", '{"a": 1}')
        store.cache.put("k", '{"a": 2}')
        assert store.cache.get("k") == '{"a": 2}'
        assert store.cache.count() == 1
        assert store.cache.clear() == 1
        assert store.cache.get("k") is None


class TestCleanup:
    def test_dry_run_changes_nothing(self, store) -> None:
        doc_id = add_document(store, "/notes/a.md", "alpha")
        store.documents.deactivate(doc_id)

        result = store.cleanup(all_inactive=True, dry_run=True)

        assert result.documents_deleted == 1
        assert row_count(store, "documents") == 1

    def test_recent_inactive_documents_are_kept(self, store) -> None:
        doc_id = add_document(store, "/notes/a.md", "alpha")
        store.documents.deactivate(doc_id)
        assert store.cleanup(older_than_days=30).documents_deleted == 0
        assert row_count(store, "documents") == 1

    def test_purge_all_inactive(self, store) -> None:
        add_document(store, "/notes/keep.md", "keep")
        doc_id = add_document(store, "/notes/a.md", "alpha")
        store.documents.deactivate(doc_id)

        assert store.cleanup(all_inactive=True).documents_deleted == 1
        assert row_count(store, "documents") == 1
        assert store.documents.find_by_filepath("/notes/keep.md") is not None

    def test_vacuum_removes_orphans_and_cache(self, store) -> None:
        add_document(store, "/notes/keep.md", "keep")
        doc_id = add_document(store, "/notes/a.md", "alpha")
        store.vectors.insert(hash_content("keep"), 0, 0, [1.0], "m")
        store.vectors.insert(hash_content("alpha"), 0, 0, [1.0], "m")
        store.cache.put("k", "v")
        store.documents.deactivate(doc_id)

        result = store.cleanup(all_inactive=True, vacuum=True)

        assert result.vectors_deleted == 1
        assert result.cache_entries_deleted == 1
        assert store.vectors.has_embedding(hash_content("keep"))
        assert not store.vectors.has_embedding(hash_content("alpha"))
        assert store.cache.count() == 0
