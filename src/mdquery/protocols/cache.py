"""Protocol for the model response cache."""

from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class ResponseCache(Protocol):
    """Key-value store for serialized model responses.

    Entries never expire on their own; only explicit cleanup removes them.
    """

    def get(self, key: str) -> Optional[str]:
        """Return the cached value for ``key``, or None."""
        ...

    def put(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        ...
