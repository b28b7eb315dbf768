"""Tests for DocumentService against in-memory backends."""

from __future__ import annotations

import httpx
import pytest
import respx

from server.core.DocumentService import DocumentService
from shared.clients.embed.cloudflare.EmbedClientCloudflare import EmbedClientCloudflare
from shared.exceptions.service_errors import DocumentValidationError, EmbeddingError, VectorIndexError


class TestCreateAndGet:
    """Create/update followed by exact-id lookup."""

    @pytest.mark.asyncio
    async def test_round_trip_without_metadata(self, document_service: DocumentService) -> None:
        stored_id = await document_service.do_create_or_update("doc1", "hello world")
        document = await document_service.do_get_by_id("doc1")

        assert stored_id == "doc1"
        assert document is not None
        assert document.id == "doc1"
        assert document.text == "hello world"
        assert document.metadata is None
        assert "metadata" not in document.to_response()

    @pytest.mark.asyncio
    async def test_metadata_is_returned_verbatim(self, document_service: DocumentService) -> None:
        metadata = {"source": "wiki", "tags": ["a", "b"], "nested": {"n": 1}}
        await document_service.do_create_or_update("doc1", "hello world", metadata)

        document = await document_service.do_get_by_id("doc1")

        assert document is not None
        assert document.metadata == metadata

    @pytest.mark.asyncio
    async def test_second_write_replaces_the_first(self, document_service: DocumentService, index_client) -> None:
        await document_service.do_create_or_update("doc1", "first version", {"v": 1})
        await document_service.do_create_or_update("doc1", "second version")

        document = await document_service.do_get_by_id("doc1")

        assert document is not None
        assert document.text == "second version"
        assert document.metadata is None
        assert list(index_client.entries) == ["doc1"]

    @pytest.mark.asyncio
    async def test_unknown_id_returns_none(self, document_service: DocumentService) -> None:
        assert await document_service.do_get_by_id("missing") is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("doc_id", "text", "field"),
        [("", "text", "id"), ("   ", "text", "id"), ("doc1", "", "text"), ("doc1", "\n\t", "text"), (None, "text", "id")],
    )
    async def test_validation_runs_before_embedding(
        self, document_service: DocumentService, embed_client, index_client, doc_id, text, field
    ) -> None:
        with pytest.raises(DocumentValidationError, match=f"^{field} is required"):
            await document_service.do_create_or_update(doc_id, text)

        assert embed_client.calls == []
        assert index_client.upserts == []

    @pytest.mark.asyncio
    async def test_embedding_failure_writes_nothing(self, document_service: DocumentService, embed_client, index_client) -> None:
        embed_client.fail_with = EmbeddingError(
            "Failed to generate embedding: Embedding length 100 is smaller than required dimension 256"
        )

        with pytest.raises(EmbeddingError, match="smaller than required dimension 256"):
            await document_service.do_create_or_update("doc1", "hello world")

        assert index_client.upserts == []
        assert await document_service.do_get_by_id("doc1") is None

    @pytest.mark.asyncio
    async def test_index_failure_propagates(self, document_service: DocumentService, index_client) -> None:
        index_client.fail_with = VectorIndexError("Failed to upsert vector: boom")

        with pytest.raises(VectorIndexError, match="^Failed to upsert vector"):
            await document_service.do_create_or_update("doc1", "hello world")


class TestDelete:
    """Idempotent deletes."""

    @pytest.mark.asyncio
    async def test_delete_removes_the_document(self, document_service: DocumentService) -> None:
        await document_service.do_create_or_update("doc1", "hello world")

        assert await document_service.do_delete_by_id("doc1") is True
        assert await document_service.do_get_by_id("doc1") is None

    @pytest.mark.asyncio
    async def test_deleting_twice_succeeds(self, document_service: DocumentService) -> None:
        await document_service.do_create_or_update("doc1", "hello world")

        assert await document_service.do_delete_by_id("doc1") is True
        assert await document_service.do_delete_by_id("doc1") is True
        assert await document_service.do_delete_by_id("never-stored") is True


class TestSearch:
    """Similarity search."""

    @pytest.fixture
    async def seeded(self, document_service: DocumentService) -> DocumentService:
        await document_service.do_create_or_update("cats", "cats purr and nap in the sun", {"topic": "pets"})
        await document_service.do_create_or_update("dogs", "dogs bark and fetch sticks")
        await document_service.do_create_or_update("rust", "iron oxide forms on wet metal")
        return document_service

    @pytest.mark.asyncio
    async def test_results_are_limited_and_ordered(self, seeded: DocumentService) -> None:
        results = await seeded.do_search("cats nap in the sun", limit=2)

        assert len(results) == 2
        assert results[0].id == "cats"
        assert results[0].metadata == {"topic": "pets"}
        assert results[0].score >= results[1].score

    @pytest.mark.asyncio
    async def test_default_limit_applies(self, seeded: DocumentService) -> None:
        results = await seeded.do_search("anything")

        assert len(results) == 3
        scores = [result.score for result in results]
        assert scores == sorted(scores, reverse=True)

    @pytest.mark.asyncio
    async def test_empty_index_returns_no_results(self, document_service: DocumentService) -> None:
        assert await document_service.do_search("hello") == []

    @pytest.mark.asyncio
    async def test_limit_is_clamped_to_maximum(self, helper_config, index_client, embed_client, monkeypatch) -> None:
        monkeypatch.setenv("SEARCH_MAX_LIMIT", "2")
        service = DocumentService(helper_config=helper_config, index_client=index_client, embed_client=embed_client)
        for number in range(4):
            await service.do_create_or_update(f"doc{number}", f"document number {number}")

        assert len(await service.do_search("document", limit=50)) == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit", [0, -1, True, "5", 2.5])
    async def test_invalid_limit_is_rejected(self, document_service: DocumentService, embed_client, limit) -> None:
        with pytest.raises(DocumentValidationError, match="limit must be a positive integer"):
            await document_service.do_search("hello", limit=limit)

        assert embed_client.calls == []

    @pytest.mark.asyncio
    async def test_blank_query_is_rejected(self, document_service: DocumentService, embed_client) -> None:
        with pytest.raises(DocumentValidationError, match="^query is required"):
            await document_service.do_search("   ")

        assert embed_client.calls == []


class TestEmbeddingPipeline:
    """Workers AI output flowing through the service into the index."""

    @pytest.fixture
    async def workers_ai_service(self, helper_config, index_client, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("EMBED_CLOUDFLARE_ACCOUNT_ID", "acc-123")
        monkeypatch.setenv("EMBED_CLOUDFLARE_API_TOKEN", "cf-token")
        embed = EmbedClientCloudflare(helper_config=helper_config)
        await embed.boot()
        yield DocumentService(helper_config=helper_config, index_client=index_client, embed_client=embed)
        await embed.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_stored_vector_is_the_leading_prefix(self, workers_ai_service: DocumentService, index_client) -> None:
        native = [float(i) / 768 for i in range(768)]
        respx.post(url__regex=r".*/ai/run/.*").mock(
            return_value=httpx.Response(200, json={"success": True, "result": {"shape": [1, 768], "data": [native]}})
        )

        await workers_ai_service.do_create_or_update("doc1", "hello world")

        stored_vector, payload = index_client.entries["doc1"]
        assert stored_vector == native[:256]
        assert payload == {"text": "hello world"}

    @pytest.mark.asyncio
    @respx.mock
    async def test_short_model_output_stores_nothing(self, workers_ai_service: DocumentService, index_client) -> None:
        respx.post(url__regex=r".*/ai/run/.*").mock(
            return_value=httpx.Response(200, json={"success": True, "result": {"shape": [1, 100], "data": [[0.1] * 100]}})
        )

        with pytest.raises(EmbeddingError, match="Embedding length 100 is smaller than required dimension 256"):
            await workers_ai_service.do_create_or_update("doc1", "hello world")

        assert index_client.upserts == []
        assert await workers_ai_service.do_get_by_id("doc1") is None
