"""Shared fixtures: a temporary index and an in-process fake Ollama server."""

import json
from pathlib import Path
from typing import Callable

import httpx
import pytest

from mdquery.clients import MemoryCache, OllamaClient
from mdquery.storage import IndexStore

OLLAMA_URL = "http://ollama.test"

# Each vocabulary word is one embedding axis; the last axis is a constant bias.
VOCAB = ["docker", "container", "python", "package", "kubernetes", "cluster", "recipe", "bread"]


class FakeOllama:
    """Minimal Ollama API: /api/embed, /api/generate, /api/show and /api/pull.

    Every request is recorded as (path, payload).
    """

    def __init__(self, installed: set[str] | None = None):
        self.installed = installed
        self.requests: list[tuple[str, dict]] = []
        self.dimension = len(VOCAB) + 1
        self.judge: Callable[[str], tuple[str, float | None]] = lambda prompt: ("yes", -0.1)
        self.fail_status: int | None = None
        self.pull_fails = False
        self.pull_installs = True

    @property
    def paths(self) -> list[str]:
        return [path for path, _ in self.requests]

    def count(self, path: str) -> int:
        return self.paths.count(path)

    def has(self, model: str) -> bool:
        return self.installed is None or model in self.installed

    def embed_vector(self, text: str) -> list[float]:
        lowered = text.lower()
        vector = [float(lowered.count(word)) for word in VOCAB] + [0.1]
        return vector + [0.0] * (self.dimension - len(vector))

    def handler(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content) if request.content else {}
        path = request.url.path
        self.requests.append((path, payload))
        model = payload.get("model", "")

        if path == "/api/show":
            if self.has(model):
                return httpx.Response(200, json={"modelfile": "", "details": {}})
            return httpx.Response(404, json={"error": f"model '{model}' not found"})

        if path == "/api/pull":
            if self.pull_fails:
                return httpx.Response(500, json={"error": "pull failed: no space left"})
            if self.pull_installs and self.installed is not None:
                self.installed.add(model)
            return httpx.Response(200, json={"status": "success"})

        if self.fail_status is not None:
            return httpx.Response(self.fail_status, json={"error": "internal failure"})
        if not self.has(model):
            return httpx.Response(404, json={"error": f"model '{model}' not found, try pulling it first"})

        if path == "/api/embed":
            return httpx.Response(
                200, json={"model": model, "embeddings": [self.embed_vector(payload["input"])]}
            )
        if path == "/api/generate":
            text, logprob = self.judge(payload["prompt"])
            body = {"model": model, "response": text, "done": True}
            if logprob is not None:
                body["logprobs"] = [{"token": text, "logprob": logprob}]
            return httpx.Response(200, json=body)

        return httpx.Response(404, json={"error": f"unknown endpoint {path}"})


@pytest.fixture
def fake_ollama() -> FakeOllama:
    return FakeOllama()


@pytest.fixture
def client(fake_ollama: FakeOllama):
    """Client without a response cache, so every call reaches the fake server."""
    with OllamaClient(OLLAMA_URL, transport=httpx.MockTransport(fake_ollama.handler)) as c:
        yield c


@pytest.fixture
def cached_client(fake_ollama: FakeOllama):
    with OllamaClient(
        OLLAMA_URL, cache=MemoryCache(), transport=httpx.MockTransport(fake_ollama.handler)
    ) as c:
        yield c


@pytest.fixture
def store(tmp_path: Path) -> IndexStore:
    """Fresh, initialized index in a temporary directory."""
    index = IndexStore(tmp_path / "index" / "index.sqlite")
    index.initialize()
    return index


@pytest.fixture
def write_docs(tmp_path: Path) -> Callable[[dict[str, str]], Path]:
    """Write {relative path: content} under tmp_path/docs and return that root."""
    root = tmp_path / "docs"

    def _write(files: dict[str, str]) -> Path:
        for rel, content in files.items():
            path = root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        root.mkdir(parents=True, exist_ok=True)
        return root.resolve()

    return _write


DOCKER_DOC = (
    "# Docker Containers\n\n"
    "Running docker containers in production needs health checks, resource limits "
    "and a restart policy for every container.\n"
)
PYTHON_DOC = (
    "# Python Packaging\n\n"
    "Build a python package with a pyproject file and publish the package to an index.\n"
)
KUBERNETES_DOC = (
    "# Kubernetes Basics\n\n"
    "A kubernetes cluster schedules pods. Each pod wraps one container image built "
    "with docker or another builder.\n"
)
BREAD_DOC = "# Sourdough\n\nA bread recipe: flour, water, salt and a lively starter.\n"

CORPUS = {
    "ops/docker.md": DOCKER_DOC,
    "dev/python.md": PYTHON_DOC,
    "ops/kubernetes.md": KUBERNETES_DOC,
    "home/bread.md": BREAD_DOC,
}


@pytest.fixture
def corpus_root(write_docs) -> Path:
    """A small Markdown corpus about containers, packaging and baking."""
    return write_docs(CORPUS)
