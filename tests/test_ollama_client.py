"""Tests for the Ollama client: payloads, caching and model provisioning."""

import httpx
import pytest

from mdquery.clients import MemoryCache, OllamaClient
from mdquery.errors import ModelUnavailableError

MODEL = "nomic-embed-text"


class TestEmbedInput:
    def test_query_prefix(self, client, fake_ollama) -> None:
        client.embed("how do I deploy", MODEL, is_query=True)
        path, payload = fake_ollama.requests[-1]
        assert path == "/api/embed"
        assert payload == {"model": MODEL, "input": "search_query: how do I deploy"}

    def test_document_with_title(self, client, fake_ollama) -> None:
        client.embed("chunk text", MODEL, title="Docker")
        assert fake_ollama.requests[-1][1]["input"] == "search_document: Docker\n\nchunk text"

    def test_document_without_title(self, client, fake_ollama) -> None:
        client.embed("chunk text", MODEL)
        assert fake_ollama.requests[-1][1]["input"] == "search_document: chunk text"

    def test_returns_vector(self, client, fake_ollama) -> None:
        vector = client.embed("docker docker", MODEL)
        assert len(vector) == fake_ollama.dimension
        assert vector[0] == 2.0


class TestResponseCache:
    def test_identical_request_hits_cache(self, cached_client, fake_ollama) -> None:
        first = cached_client.embed("same text", MODEL)
        second = cached_client.embed("same text", MODEL)
        assert first == second
        assert fake_ollama.count("/api/embed") == 1

    def test_different_payload_misses(self, cached_client, fake_ollama) -> None:
        cached_client.embed("one", MODEL)
        cached_client.embed("one", MODEL, is_query=True)
        assert fake_ollama.count("/api/embed") == 2

    def test_generate_is_cached(self, cached_client, fake_ollama) -> None:
        cached_client.generate("judge", "prompt", logprobs=True)
        cached_client.generate("judge", "prompt", logprobs=True)
        assert fake_ollama.count("/api/generate") == 1

    def test_cache_shared_between_clients(self, fake_ollama) -> None:
        cache = MemoryCache()
        transport = httpx.MockTransport(fake_ollama.handler)
        with OllamaClient("http://ollama.test", cache=cache, transport=transport) as a:
            a.embed("shared", MODEL)
        with OllamaClient("http://ollama.test", cache=cache, transport=transport) as b:
            b.embed("shared", MODEL)
        assert fake_ollama.count("/api/embed") == 1
        assert len(cache) == 1


class TestGenerate:
    def test_payload(self, client, fake_ollama) -> None:
        client.generate("judge", "Is it relevant?", raw=True, logprobs=True, max_tokens=1)
        path, payload = fake_ollama.requests[-1]
        assert path == "/api/generate"
        assert payload == {
            "model": "judge",
            "prompt": "Is it relevant?",
            "stream": False,
            "raw": True,
            "logprobs": True,
            "options": {"num_predict": 1},
        }

    def test_completion_with_logprobs(self, client, fake_ollama) -> None:
        fake_ollama.judge = lambda prompt: ("no", -0.7)
        completion = client.generate("judge", "p", logprobs=True)
        assert completion.text == "no"
        assert completion.logprobs[0].token == "no"
        assert completion.logprobs[0].logprob == pytest.approx(-0.7)

    def test_completion_without_logprobs(self, client, fake_ollama) -> None:
        fake_ollama.judge = lambda prompt: ("yes", None)
        assert client.generate("judge", "p").logprobs == []


class TestProvisioning:
    def test_missing_model_is_pulled_then_retried(self, client, fake_ollama) -> None:
        fake_ollama.installed = set()
        vector = client.embed("text", MODEL)

        assert vector
        assert fake_ollama.paths == ["/api/embed", "/api/show", "/api/pull", "/api/embed"]
        assert fake_ollama.requests[2][1] == {"model": MODEL, "stream": False}

    def test_installed_model_after_404_is_not_pulled(self, fake_ollama) -> None:
        """A 404 for a model the server reports as present skips the pull."""
        fake_ollama.installed = set()
        original = fake_ollama.handler

        def show_says_present(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/api/show":
                fake_ollama.requests.append(("/api/show", {}))
                fake_ollama.installed.add(MODEL)
                return httpx.Response(200, json={})
            return original(request)

        with OllamaClient("http://ollama.test", transport=httpx.MockTransport(show_says_present)) as c:
            c.embed("text", MODEL)
        assert fake_ollama.paths == ["/api/embed", "/api/show", "/api/embed"]

    def test_failed_pull(self, client, fake_ollama) -> None:
        fake_ollama.installed = set()
        fake_ollama.pull_fails = True
        with pytest.raises(ModelUnavailableError, match="Failed to pull model"):
            client.embed("text", MODEL)
        assert fake_ollama.count("/api/embed") == 1

    def test_second_failure_is_fatal(self, client, fake_ollama) -> None:
        fake_ollama.installed = set()
        fake_ollama.pull_installs = False
        with pytest.raises(ModelUnavailableError) as exc_info:
            client.embed("text", MODEL)
        assert exc_info.value.model == MODEL
        assert fake_ollama.count("/api/embed") == 2
        assert fake_ollama.count("/api/pull") == 1

    def test_has_model(self, client, fake_ollama) -> None:
        fake_ollama.installed = {"present"}
        assert client.has_model("present") is True
        assert client.has_model("absent") is False


class TestErrors:
    def test_server_error_not_retried(self, client, fake_ollama) -> None:
        fake_ollama.fail_status = 500
        with pytest.raises(ModelUnavailableError, match="Ollama API error") as exc_info:
            client.embed("text", MODEL)
        assert exc_info.value.status_code == 500
        assert fake_ollama.paths == ["/api/embed"]

    def test_unreachable_server(self) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with OllamaClient("http://ollama.test", transport=httpx.MockTransport(refuse)) as c:
            with pytest.raises(ModelUnavailableError, match="Cannot reach Ollama"):
                c.embed("text", MODEL)

    def test_failures_are_not_cached(self, cached_client, fake_ollama) -> None:
        fake_ollama.fail_status = 503
        with pytest.raises(ModelUnavailableError):
            cached_client.embed("text", MODEL)
        fake_ollama.fail_status = None
        assert cached_client.embed("text", MODEL)
        assert fake_ollama.count("/api/embed") == 2

    def test_missing_embeddings_in_response(self) -> None:
        with pytest.raises(ModelUnavailableError, match="does not contain embeddings"):
            OllamaClient.extract_embedding({"model": MODEL}, MODEL)
