"""FastMCP server exposing mdquery search over an index."""

from mcp.server.fastmcp import FastMCP

from mdquery.clients import OllamaClient
from mdquery.config import Settings
from mdquery.models import RankedResult, SearchResult
from mdquery.search import HybridSearch
from mdquery.storage import IndexStore

SNIPPET_CHARS = 200


def _snippet(body: str, start: int = 0) -> str:
    text = body[start : start + SNIPPET_CHARS].replace("\n", " ")
    if len(body) > start + SNIPPET_CHARS:
        text += "..."
    return text


def _format_results(results: list[SearchResult] | list[RankedResult], query: str) -> str:
    if not results:
        return f"No results found for: {query}"

    lines = []
    for i, r in enumerate(results, 1):
        start = getattr(r, "chunk_pos", None) or 0
        lines.append(f"{i}. [{r.score:.3f}] {r.display_path or r.file}  {r.title}")
        if r.context:
            lines.append(f"   Context: {r.context}")
        lines.append(f"   {_snippet(r.body, start)}")
        lines.append("")
    return "\n".join(lines)


def create_mcp_server(settings: Settings) -> FastMCP:
    """Create an MCP server over the index named by ``settings``.

    Args:
        settings: Resolved configuration (index path, models, service URL)

    Returns:
        Configured FastMCP server instance
    """
    mcp = FastMCP(name="mdquery")

    # Store and model client live as long as the server process
    store = IndexStore(settings.index_path)
    store.initialize()
    client = OllamaClient.from_settings(settings, cache=store.cache)
    hybrid = HybridSearch.from_settings(settings, store, client)

    @mcp.tool()
    def search(query: str, limit: int = 10) -> str:
        """Keyword search using the full-text index (BM25).

        Best for exact terms, names and phrases.

        Args:
            query: Search terms
            limit: Maximum number of results to return (default: 10)

        Returns:
            Ranked list of matching documents with normalized scores
        """
        return _format_results(hybrid.lexical.search(query, limit), query)

    @mcp.tool()
    def vsearch(query: str, limit: int = 10) -> str:
        """Semantic search by embedding similarity.

        Finds documents about a concept even when they use different words.

        Args:
            query: Natural language description of what you're looking for
            limit: Maximum number of results to return (default: 10)

        Returns:
            Ranked list of documents with their best matching chunk
        """
        return _format_results(hybrid.vector.search(query, limit), query)

    @mcp.tool()
    def query(query: str, limit: int = 10, min_score: float = 0.0) -> str:
        """Hybrid search: keyword and semantic results fused, then reranked.

        Slowest but most accurate; use it for questions.

        Args:
            query: Natural language question or search terms
            limit: Maximum number of results to return (default: 10)
            min_score: Drop results scoring below this rerank score

        Returns:
            Reranked list of relevant documents
        """
        return _format_results(hybrid.query(query, limit, min_score), query)

    @mcp.tool()
    def get(path: str) -> str:
        """Read a document's full content from the index.

        Args:
            path: Absolute file path or display path (as shown in results)

        Returns:
            Document title and body
        """
        doc = store.documents.find_by_filepath(path) or store.documents.find_by_display_path(path)
        if doc is None:
            return f"Error: Document not found: {path}"

        context = store.contexts.find_for_path(doc.filepath)
        header = f"# {doc.display_path or doc.filepath}\n"
        if context:
            header += f"Context: {context.context}\n"
        return f"{header}\n{doc.body}"

    return mcp
