"""Protocols for the model endpoint."""

from typing import Protocol, runtime_checkable

from mdquery.clients.types import Completion


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Turns text into a fixed-dimension vector.

    Allows swapping the Ollama client for a fake in tests or another
    HTTP backend.
    """

    def embed(
        self,
        text: str,
        model: str,
        *,
        is_query: bool = False,
        title: str | None = None,
    ) -> list[float]:
        """Return the embedding for ``text``.

        Queries and documents are prefixed differently so asymmetric
        embedding models can tell them apart.
        """
        ...


@runtime_checkable
class CompletionProvider(Protocol):
    """Generates text, optionally with per-token log-probabilities."""

    def generate(
        self,
        model: str,
        prompt: str,
        *,
        raw: bool = False,
        logprobs: bool = False,
        max_tokens: int | None = None,
    ) -> Completion:
        ...
