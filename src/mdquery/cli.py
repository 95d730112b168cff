"""CLI entry point for mdquery."""

import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Optional, Sequence

from mdquery.chunkers import WindowChunker
from mdquery.clients import OllamaClient
from mdquery.config import Settings, get_settings
from mdquery.errors import MdQueryError
from mdquery.indexing import EmbeddingPipeline, Indexer
from mdquery.ingesters import GlobIngester
from mdquery.models import IndexStats, RankedResult, SearchResult
from mdquery.search import HybridSearch
from mdquery.storage import IndexStore

logger = logging.getLogger(__name__)


def open_store(settings: Settings) -> IndexStore:
    store = IndexStore(settings.index_path)
    store.initialize()
    return store


def report_index(stats: IndexStats) -> None:
    logger.info("")
    logger.info(
        f"Indexed: {stats.indexed}  Updated: {stats.updated}  "
        f"Unchanged: {stats.unchanged}  Removed: {stats.removed}"
    )
    if stats.failed:
        logger.warning(f"{stats.failed} files could not be read")
    if stats.failed_collections:
        logger.warning(f"{stats.failed_collections} collections could not be scanned")
    if stats.needs_embedding:
        logger.info(f"{stats.needs_embedding} documents need embeddings. Run 'mdquery embed'.")


def add(settings: Settings, root: str, pattern: Optional[str]) -> None:
    """Index a directory as a collection.

    Args:
        settings: Resolved configuration
        root: Collection root directory
        pattern: Glob relative to root (default from settings)
    """
    root_path = Path(root)
    if not root_path.is_dir():
        logger.error(f"Not a directory: {root}")
        sys.exit(1)

    store = open_store(settings)
    indexer = Indexer(store, GlobIngester(settings.exclude_dirs))
    report_index(indexer.index_collection(root_path, pattern or settings.default_glob))


def update(settings: Settings, collection_id: Optional[int]) -> None:
    """Re-scan one collection, or all of them."""
    store = open_store(settings)
    indexer = Indexer(store, GlobIngester(settings.exclude_dirs))

    if collection_id is None:
        if store.collections.count() == 0:
            logger.info("No collections yet. Add one with 'mdquery add <dir>'.")
            return
        report_index(indexer.update_all())
        return

    collection = store.collections.find_by_id(collection_id)
    if collection is None:
        logger.error(f"Collection not found: {collection_id}")
        sys.exit(1)
    report_index(indexer.index_collection(Path(collection.pwd), collection.glob_pattern))


def remove(settings: Settings, collection_id: int) -> None:
    """Delete a collection, deactivating its documents."""
    store = open_store(settings)
    collection = store.collections.find_by_id(collection_id)
    if collection is None:
        logger.error(f"Collection not found: {collection_id}")
        sys.exit(1)
    store.collections.delete(collection_id)
    logger.info(f"Removed collection {collection.pwd} ({collection.glob_pattern})")


def embed(settings: Settings, force: bool = False) -> None:
    """Generate embeddings for documents that lack them."""
    chunker = WindowChunker(settings.chunk_size, settings.chunk_overlap)
    store = open_store(settings)
    with OllamaClient.from_settings(settings, cache=store.cache) as client:
        pipeline = EmbeddingPipeline(store, client, chunker, settings.embed_model)
        stats = pipeline.embed_pending(force=force)
    if stats.rebuilt:
        logger.warning("Embedding dimension changed; all documents were re-embedded")


def print_results(
    results: Sequence[SearchResult] | Sequence[RankedResult],
    output: str,
    full: bool = False,
) -> None:
    if output == "json":
        rows = []
        for r in results:
            row = asdict(r)
            if not full:
                row.pop("body")
            rows.append(row)
        print(json.dumps(rows, indent=2))
        return

    if output == "files":
        for r in results:
            print(r.file)
        return

    if not results:
        print("No results found.")
        return

    for r in results:
        print(f"{r.score:.3f}  {r.display_path or r.file}")
        print(f"       {r.title}")
        if r.context:
            print(f"       Context: {r.context}")
        if full:
            print("")
            print(r.body)
        else:
            start = getattr(r, "chunk_pos", None) or 0
            snippet = r.body[start : start + 200].replace("\n", " ").strip()
            print(f"       {snippet}")
        print("")


def search(
    settings: Settings,
    mode: str,
    query: str,
    limit: int,
    min_score: float,
    output: str,
    full: bool,
) -> None:
    """Run a lexical, vector or hybrid query and print the results."""
    store = open_store(settings)
    with OllamaClient.from_settings(settings, cache=store.cache) as client:
        hybrid = HybridSearch.from_settings(settings, store, client)
        if mode == "search":
            results = hybrid.lexical.search(query, limit)
        elif mode == "vsearch":
            results = hybrid.vector.search(query, limit)
        else:
            results = hybrid.query(query, limit, min_score)
    results = [r for r in results if r.score >= min_score]
    print_results(results, output, full)


def status(settings: Settings) -> None:
    """Show collections and index statistics."""
    if not settings.index_path.exists():
        print(f"No index at {settings.index_path}")
        return

    store = open_store(settings)
    summaries = store.collections.find_all_with_counts()

    print(f"Index: {settings.index_path}")
    print(f"  Size: {store.size_mb():.1f} MB")
    print("")
    print("Documents:")
    print(f"  Total: {store.documents.count()}")
    print(f"  Vectors: {store.vectors.count_embedded_hashes()} embedded ({store.vectors.count_chunks()} chunks)")
    print(f"  Needs embedding: {store.vectors.count_needing_embedding()}")
    print(f"  Path contexts: {store.contexts.count()}")
    print("")
    print("Collections:")
    if not summaries:
        print("  (none)")
    for summary in summaries:
        c = summary.collection
        updated = summary.last_doc_update or "never"
        print(f"  [{c.id}] {c.pwd}  {c.glob_pattern}")
        print(f"       {summary.active_count} documents, last updated {updated}")


def cleanup(
    settings: Settings,
    older_than: int,
    all_inactive: bool,
    vacuum: bool,
    dry_run: bool,
) -> None:
    """Purge inactive documents and, optionally, orphaned vectors and caches."""
    store = open_store(settings)
    result = store.cleanup(
        older_than_days=older_than, all_inactive=all_inactive, vacuum=vacuum, dry_run=dry_run
    )
    verb = "Would remove" if dry_run else "Removed"
    print(f"{verb} {result.documents_deleted} inactive documents")
    if vacuum:
        print(f"{verb} {result.vectors_deleted} orphaned vectors")
        print(f"{verb} {result.cache_entries_deleted} cached responses")
        if not dry_run:
            print(f"Reclaimed {result.space_reclaimed_mb:.2f} MB")


def context(settings: Settings, action: str, prefix: Optional[str], text: Optional[str]) -> None:
    """Manage path context annotations."""
    store = open_store(settings)
    if action == "add":
        store.contexts.upsert(prefix, text)
        logger.info(f"Context set for {prefix}")
    elif action == "list":
        contexts = store.contexts.find_all()
        if not contexts:
            print("No path contexts.")
        for ctx in contexts:
            print(f"{ctx.path_prefix}\n  {ctx.context}")
    elif action == "rm":
        if not store.contexts.delete(prefix):
            logger.error(f"No context for {prefix}")
            sys.exit(1)
        logger.info(f"Removed context for {prefix}")


def serve(settings: Settings) -> None:
    """Start the MCP server over stdio."""
    # Import here to avoid loading MCP unless needed
    from mdquery.server import create_mcp_server

    logger.info(f"Serving {settings.index_path} via stdio")
    create_mcp_server(settings).run(transport="stdio")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mdquery",
        description="mdquery - hybrid search over local Markdown collections",
    )
    parser.add_argument("--index", help="Index file path (default: from settings)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # add command
    add_parser = subparsers.add_parser("add", help="Index a directory as a collection")
    add_parser.add_argument("root", nargs="?", default=".", help="Directory to index (default: .)")
    add_parser.add_argument("--glob", help="Glob pattern (default: **/*.md)")

    # update command
    update_parser = subparsers.add_parser("update", help="Re-index collections")
    update_parser.add_argument("collection_id", nargs="?", type=int, help="Only this collection")

    # remove command
    remove_parser = subparsers.add_parser("remove", help="Delete a collection")
    remove_parser.add_argument("collection_id", type=int)

    # embed command
    embed_parser = subparsers.add_parser("embed", help="Generate missing embeddings")
    embed_parser.add_argument("-f", "--force", action="store_true", help="Re-embed everything")

    # search, vsearch, query commands
    for name, help_text in (
        ("search", "Keyword search (BM25)"),
        ("vsearch", "Semantic search"),
        ("query", "Hybrid search with reranking"),
    ):
        search_parser = subparsers.add_parser(name, help=help_text)
        search_parser.add_argument("query", help="Search query")
        search_parser.add_argument("-n", type=int, default=5, dest="limit", help="Number of results (default: 5)")
        search_parser.add_argument("--min-score", type=float, default=0.0, help="Minimum score")
        search_parser.add_argument("--full", action="store_true", help="Print full documents")
        fmt = search_parser.add_mutually_exclusive_group()
        fmt.add_argument("--json", action="store_const", const="json", dest="output")
        fmt.add_argument("--files", action="store_const", const="files", dest="output")
        search_parser.set_defaults(output="cli")

    # status command
    subparsers.add_parser("status", help="Show index status")

    # cleanup command
    cleanup_parser = subparsers.add_parser("cleanup", help="Purge inactive documents")
    cleanup_parser.add_argument("--older-than", type=int, default=30, help="Age in days (default: 30)")
    cleanup_parser.add_argument("--all", action="store_true", dest="all_inactive", help="Ignore age")
    cleanup_parser.add_argument("--vacuum", action="store_true", help="Drop orphans and caches, then VACUUM")
    cleanup_parser.add_argument("--dry-run", action="store_true", help="Only report counts")

    # context command
    context_parser = subparsers.add_parser("context", help="Manage path context annotations")
    context_sub = context_parser.add_subparsers(dest="action", required=True)
    ctx_add = context_sub.add_parser("add", help="Annotate a path prefix")
    ctx_add.add_argument("prefix")
    ctx_add.add_argument("text")
    context_sub.add_parser("list", help="List annotations")
    ctx_rm = context_sub.add_parser("rm", help="Remove an annotation")
    ctx_rm.add_argument("prefix")

    # mcp command
    subparsers.add_parser("mcp", help="Start the MCP server (stdio)")

    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    settings = Settings(index_path=Path(args.index)) if args.index else get_settings()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.log_level.upper(),
        format="%(message)s",
    )

    try:
        if args.command == "add":
            add(settings, args.root, args.glob)
        elif args.command == "update":
            update(settings, args.collection_id)
        elif args.command == "remove":
            remove(settings, args.collection_id)
        elif args.command == "embed":
            embed(settings, args.force)
        elif args.command in ("search", "vsearch", "query"):
            search(
                settings, args.command, args.query, args.limit, args.min_score, args.output, args.full
            )
        elif args.command == "status":
            status(settings)
        elif args.command == "cleanup":
            cleanup(settings, args.older_than, args.all_inactive, args.vacuum, args.dry_run)
        elif args.command == "context":
            context(settings, args.action, getattr(args, "prefix", None), getattr(args, "text", None))
        elif args.command == "mcp":
            serve(settings)
    except MdQueryError as exc:
        logger.error(f"Error: {exc}")
        sys.exit(1)


if __name__ == "__main__":
    main()
