"""Clients for the external model endpoint."""

from mdquery.clients.cache import MemoryCache
from mdquery.clients.ollama import OllamaClient
from mdquery.clients.types import Completion, TokenLogprob

__all__ = ["OllamaClient", "MemoryCache", "Completion", "TokenLogprob"]
