"""Exception types raised by mdquery."""


class MdQueryError(Exception):
    """Base class for all mdquery errors."""


class ModelError(MdQueryError):
    """A call to the model endpoint failed."""

    def __init__(self, message: str, model: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.model = model
        self.status_code = status_code


class ModelNotFoundError(ModelError):
    """The backend reported that the requested model is not installed."""


class ModelUnavailableError(ModelError):
    """The endpoint is unreachable, returned an error, or the model could not be provisioned."""


class ChunkingConfigError(MdQueryError, ValueError):
    """Chunk size and overlap do not describe a valid sliding window."""


class QueryError(MdQueryError):
    """A search query could not be executed against the text index."""


class CollectionUnavailableError(MdQueryError):
    """A collection's root directory is missing or is not a directory."""

    def __init__(self, message: str, root: str | None = None):
        super().__init__(message)
        self.root = root
