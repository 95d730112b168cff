"""Settings for mdquery.

Values come from (highest priority first): explicit overrides passed to
``Settings(...)`` by the CLI, ``MDQUERY_*`` environment variables, a ``.env``
file in the working directory, then the defaults below.
"""

import os
from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def default_index_path() -> Path:
    """Return the default index location under the XDG cache directory."""
    cache_home = os.environ.get("XDG_CACHE_HOME") or str(Path.home() / ".cache")
    return Path(cache_home) / "mdquery" / "index.sqlite"


class Settings(BaseSettings):
    """Runtime configuration for indexing and retrieval."""

    model_config = SettingsConfigDict(
        env_prefix="MDQUERY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Models and service
    embed_model: str = Field(default="nomic-embed-text", description="Embedding model name")
    rerank_model: str = Field(
        default="qwen3-reranker:0.6b-q8_0",
        description="Model used for yes/no relevance judgments",
    )
    ollama_url: str = Field(
        default="http://localhost:11434",
        validation_alias=AliasChoices("MDQUERY_OLLAMA_URL", "OLLAMA_URL", "ollama_url"),
        description="Base URL of the Ollama service",
    )
    request_timeout: float | None = Field(
        default=120.0,
        description="HTTP timeout in seconds for model calls (None disables it)",
    )

    # Indexing
    index_path: Path = Field(default_factory=default_index_path, description="SQLite index file")
    default_glob: str = Field(default="**/*.md", description="Glob used when adding a collection")
    exclude_dirs: list[str] = Field(
        default=["node_modules", ".git", "dist", "build", ".cache"],
        description="Directory names skipped during enumeration",
    )
    chunk_size: int = Field(default=1000, description="Chunk window size in characters")
    chunk_overlap: int = Field(default=200, description="Overlap between chunks in characters")

    # Retrieval
    rrf_k: float = Field(default=60.0, gt=0, description="Reciprocal Rank Fusion damping constant")
    bm25_normalization: float = Field(
        default=10.0, gt=0, description="K in 1 / (1 + |raw| / K) for lexical scores"
    )
    rerank_negative_scale: float = Field(
        default=0.3, ge=0, le=1, description="Multiplier applied to negative relevance judgments"
    )
    rerank_candidates: int = Field(default=30, gt=0, description="Fused candidates sent to the reranker")
    rerank_context_chars: int = Field(
        default=4000, gt=0, description="Characters of document text shown to the reranker"
    )

    log_level: str = Field(default="INFO", description="Logging level")


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
