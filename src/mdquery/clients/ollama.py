"""HTTP client for the Ollama embedding and generation API."""

import json
import logging
from typing import Any

import httpx

from mdquery.clients.types import Completion, TokenLogprob
from mdquery.config import Settings
from mdquery.errors import ModelError, ModelNotFoundError, ModelUnavailableError
from mdquery.protocols.cache import ResponseCache
from mdquery.utils.hashing import cache_key

logger = logging.getLogger(__name__)


class OllamaClient:
    """Embedding, completion and model provisioning against an Ollama server.

    Embedding and generation responses are cached by a key derived from the
    endpoint URL and the exact request payload; a hit never touches the
    network. When the backend reports a missing model, the client pulls it
    once and retries the original request once.
    """

    ENDPOINT_EMBED = "/api/embed"
    ENDPOINT_GENERATE = "/api/generate"
    ENDPOINT_SHOW = "/api/show"
    ENDPOINT_PULL = "/api/pull"

    QUERY_PREFIX = "search_query: "
    DOCUMENT_PREFIX = "search_document: "

    def __init__(
        self,
        base_url: str,
        cache: ResponseCache | None = None,
        timeout: float | None = 120.0,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            base_url: Ollama server URL (e.g. "http://localhost:11434")
            cache: Optional response cache shared across calls
            timeout: HTTP timeout in seconds, None to wait indefinitely
            transport: Custom httpx transport (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self.cache = cache
        self._client = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

    @classmethod
    def from_settings(cls, settings: Settings, cache: ResponseCache | None = None) -> "OllamaClient":
        return cls(settings.ollama_url, cache=cache, timeout=settings.request_timeout)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "OllamaClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    ##########################################
    ############ PAYLOAD BUILDERS ############
    ##########################################

    @classmethod
    def format_embed_input(cls, text: str, is_query: bool = False, title: str | None = None) -> str:
        """Prefix text so the embedding model can tell queries from documents."""
        if is_query:
            return f"{cls.QUERY_PREFIX}{text}"
        if title:
            return f"{cls.DOCUMENT_PREFIX}{title}\n\n{text}"
        return f"{cls.DOCUMENT_PREFIX}{text}"

    def get_embed_payload(
        self, text: str, model: str, is_query: bool = False, title: str | None = None
    ) -> dict:
        return {"model": model, "input": self.format_embed_input(text, is_query, title)}

    def get_generate_payload(
        self,
        model: str,
        prompt: str,
        raw: bool = False,
        logprobs: bool = False,
        max_tokens: int | None = None,
    ) -> dict:
        payload: dict[str, Any] = {
            "model": model,
            "prompt": prompt,
            "stream": False,
            "raw": raw,
            "logprobs": logprobs,
        }
        if max_tokens is not None:
            payload["options"] = {"num_predict": max_tokens}
        return payload

    ##########################################
    ############### OPERATIONS ###############
    ##########################################

    def embed(
        self,
        text: str,
        model: str,
        *,
        is_query: bool = False,
        title: str | None = None,
    ) -> list[float]:
        """Return the embedding vector for a query or a document chunk.

        Raises:
            ModelUnavailableError: If the request fails or the model cannot be provisioned.
        """
        payload = self.get_embed_payload(text, model, is_query=is_query, title=title)
        data = self._cached_call(self.ENDPOINT_EMBED, payload)
        return self.extract_embedding(data, model)

    def generate(
        self,
        model: str,
        prompt: str,
        *,
        raw: bool = False,
        logprobs: bool = False,
        max_tokens: int | None = None,
    ) -> Completion:
        """Generate a completion, optionally with per-token log-probabilities.

        Raises:
            ModelUnavailableError: If the request fails or the model cannot be provisioned.
        """
        payload = self.get_generate_payload(model, prompt, raw, logprobs, max_tokens)
        data = self._cached_call(self.ENDPOINT_GENERATE, payload)
        return self.extract_completion(data)

    def has_model(self, model: str) -> bool:
        """Check whether the backend has ``model`` installed."""
        response = self.do_request(self.ENDPOINT_SHOW, {"model": model}, model)
        if response.status_code == 404:
            return False
        self._raise_for_status(response, model)
        return True

    def pull_model(self, model: str) -> None:
        """Download ``model`` and block until the pull finishes.

        Raises:
            ModelUnavailableError: If the pull fails.
        """
        logger.warning(f"Pulling model '{model}'...")
        response = self.do_request(
            self.ENDPOINT_PULL, {"model": model, "stream": False}, model, timeout=None
        )
        if not response.is_success:
            raise ModelUnavailableError(
                f"Failed to pull model '{model}': {self._error_detail(response)}",
                model=model,
                status_code=response.status_code,
            )
        status = self._parse_json(response, model).get("status")
        if status != "success":
            raise ModelUnavailableError(
                f"Failed to pull model '{model}': unexpected status {status!r}", model=model
            )
        logger.info(f"Pulled model '{model}'")

    def ensure_model_available(self, model: str) -> None:
        """Pull ``model`` if the backend does not have it."""
        if not self.has_model(model):
            self.pull_model(model)

    ##########################################
    ############### REQUESTS #################
    ##########################################

    def do_request(
        self,
        endpoint: str,
        payload: dict,
        model: str,
        timeout: Any = httpx.USE_CLIENT_DEFAULT,
    ) -> httpx.Response:
        """POST ``payload`` as JSON to ``endpoint``.

        Raises:
            ModelUnavailableError: If the server cannot be reached.
        """
        try:
            return self._client.post(endpoint, json=payload, timeout=timeout)
        except httpx.HTTPError as exc:
            raise ModelUnavailableError(
                f"Cannot reach Ollama at {self.base_url}: {exc}", model=model
            ) from exc

    def _cached_call(self, endpoint: str, payload: dict) -> dict:
        key = cache_key(f"{self.base_url}{endpoint}", payload)
        if self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                logger.debug(f"Cache hit for {endpoint} ({payload['model']})")
                return json.loads(cached)

        data = self._call_with_provisioning(endpoint, payload)

        if self.cache is not None:
            self.cache.put(key, json.dumps(data))
        return data

    def _call_with_provisioning(self, endpoint: str, payload: dict) -> dict:
        """Attempt, provision on a missing model, retry once, then fail."""
        model = payload["model"]
        try:
            return self._post_json(endpoint, payload)
        except ModelNotFoundError:
            logger.warning(f"Model '{model}' not found, provisioning before retry")

        self.ensure_model_available(model)
        try:
            return self._post_json(endpoint, payload)
        except ModelError as exc:
            raise ModelUnavailableError(
                f"Model '{model}' unavailable after provisioning: {exc}",
                model=model,
                status_code=exc.status_code,
            ) from exc

    def _post_json(self, endpoint: str, payload: dict) -> dict:
        model = payload["model"]
        response = self.do_request(endpoint, payload, model)
        self._raise_for_status(response, model)
        return self._parse_json(response, model)

    def _raise_for_status(self, response: httpx.Response, model: str) -> None:
        if response.is_success:
            return
        detail = self._error_detail(response)
        if response.status_code == 404:
            raise ModelNotFoundError(
                f"Model '{model}' not found: {detail}", model=model, status_code=404
            )
        logger.error(
            f"Ollama request to {response.request.url} failed with status "
            f"{response.status_code}: {detail[:200]}"
        )
        raise ModelUnavailableError(
            f"Ollama API error ({response.status_code}) for model '{model}': {detail}",
            model=model,
            status_code=response.status_code,
        )

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text
        if isinstance(body, dict) and "error" in body:
            return str(body["error"])
        return response.text

    @staticmethod
    def _parse_json(response: httpx.Response, model: str) -> dict:
        try:
            data = response.json()
        except ValueError as exc:
            raise ModelUnavailableError(
                f"Ollama returned a non-JSON body for model '{model}'", model=model
            ) from exc
        if not isinstance(data, dict):
            raise ModelUnavailableError(f"Unexpected Ollama response for model '{model}'", model=model)
        return data

    ##########################################
    ############### EXTRACTORS ###############
    ##########################################

    @staticmethod
    def extract_embedding(response_data: dict, model: str) -> list[float]:
        """Extract the first vector from an /api/embed response.

        Raises:
            ModelUnavailableError: If the response does not contain an embedding.
        """
        embeddings = response_data.get("embeddings")
        if not embeddings or not embeddings[0]:
            raise ModelUnavailableError(
                f"Ollama response for model '{model}' does not contain embeddings. "
                f"Response keys: {list(response_data.keys())}",
                model=model,
            )
        return [float(value) for value in embeddings[0]]

    @staticmethod
    def extract_completion(response_data: dict) -> Completion:
        logprobs = [
            TokenLogprob(token=str(entry.get("token", "")), logprob=float(entry.get("logprob", 0.0)))
            for entry in response_data.get("logprobs") or []
        ]
        return Completion(text=response_data.get("response", ""), logprobs=logprobs)
