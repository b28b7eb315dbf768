"""Shared fixtures: environment isolation, in-memory backends and an API test client.

The in-memory clients implement the same methods DocumentService calls on the
real embedding and index clients, so service and HTTP tests run without any
network access.
"""

from __future__ import annotations

import math
import os
import tempfile
from typing import Any

import pytest

# logs/ is created below ROOT_DIR when server.api_server is imported
os.environ.setdefault("ROOT_DIR", tempfile.mkdtemp(prefix="semantic-search-tests-"))

from fastapi.testclient import TestClient  # noqa: E402

from server.core.DocumentService import DocumentService  # noqa: E402
from shared.auth.KeyRegistry import KeyRegistry  # noqa: E402
from shared.clients.index.models.IndexMatch import IndexMatch  # noqa: E402
from shared.helper.HelperConfig import HelperConfig  # noqa: E402
from shared.logging.logging_setup import setup_logging  # noqa: E402

WRITER_KEY = "writer-secret"
READER_KEY = "reader-secret"
DIMENSION = 256

_MANAGED_ENV = [
    "API_KEY",
    "API_KEY_WRITER",
    "API_KEY_READER",
    "EMBED_ENGINE",
    "EMBED_MODEL",
    "EMBED_DIMENSION",
    "INDEX_ENGINE",
    "SEARCH_DEFAULT_LIMIT",
    "SEARCH_MAX_LIMIT",
    "REINDEX_API_BASE_URL",
    "REINDEX_API_KEY",
    "REINDEX_ALLOWED_HOSTS",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Start every test without service settings from the developer's shell."""
    for key in _MANAGED_ENV:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture(scope="session")
def logger():
    return setup_logging()


@pytest.fixture
def helper_config(logger) -> HelperConfig:
    return HelperConfig(logger=logger)


class InMemoryEmbedClient:
    """Deterministic bag-of-characters embedding with a fixed dimension."""

    def __init__(self, dimension: int = DIMENSION) -> None:
        self.embed_dimension = dimension
        self.calls: list[str] = []
        self.fail_with: Exception | None = None

    async def embed_text(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.fail_with is not None:
            raise self.fail_with
        vector = [0.0] * self.embed_dimension
        for char in text.lower():
            vector[ord(char) % self.embed_dimension] += 1.0
        norm = math.sqrt(sum(value * value for value in vector)) or 1.0
        return [value / norm for value in vector]


class InMemoryIndexClient:
    """Dict-backed vector index ranking by dot product of unit vectors."""

    def __init__(self) -> None:
        self.entries: dict[str, tuple[list[float], dict[str, Any] | None]] = {}
        self.upserts: list[str] = []
        self.fail_with: Exception | None = None

    def _check(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    async def do_upsert(self, doc_id: str, vector: list[float], metadata: dict[str, Any] | None = None) -> None:
        self._check()
        self.upserts.append(doc_id)
        self.entries[doc_id] = (vector, metadata)

    async def do_delete_by_ids(self, doc_ids: list[str]) -> None:
        self._check()
        for doc_id in doc_ids:
            self.entries.pop(doc_id, None)

    async def do_get_by_id(self, doc_id: str) -> IndexMatch | None:
        self._check()
        if doc_id not in self.entries:
            return None
        return IndexMatch(id=doc_id, score=1.0, metadata=self.entries[doc_id][1])

    async def do_query(self, vector: list[float], limit: int = 10) -> list[IndexMatch]:
        self._check()
        scored = [
            IndexMatch(id=doc_id, score=sum(a * b for a, b in zip(vector, stored)), metadata=metadata)
            for doc_id, (stored, metadata) in self.entries.items()
        ]
        scored.sort(key=lambda match: match.score, reverse=True)
        return scored[:limit]


@pytest.fixture
def embed_client() -> InMemoryEmbedClient:
    return InMemoryEmbedClient()


@pytest.fixture
def index_client() -> InMemoryIndexClient:
    return InMemoryIndexClient()


@pytest.fixture
def document_service(helper_config, index_client, embed_client) -> DocumentService:
    return DocumentService(helper_config=helper_config, index_client=index_client, embed_client=embed_client)


@pytest.fixture
def api_client(logger, helper_config, document_service):
    """TestClient with app.state wired to the in-memory backends.

    The lifespan is not entered, so no real backend is contacted.
    """
    from server.api_server import app

    app.state.logging = logger
    app.state.helper_config = helper_config
    app.state.key_registry = KeyRegistry.from_raw(writer=WRITER_KEY, reader=READER_KEY)
    app.state.document_service = document_service
    return TestClient(app, raise_server_exceptions=False)


def writer_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {WRITER_KEY}"}


def reader_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {READER_KEY}"}


