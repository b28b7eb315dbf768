"""Tests for the embedding clients, with the model APIs mocked by respx."""

from __future__ import annotations

import httpx
import pytest
import respx

from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.embed.cloudflare.EmbedClientCloudflare import EmbedClientCloudflare
from shared.clients.embed.openai.EmbedClientOpenai import EmbedClientOpenai
from shared.exceptions.service_errors import EmbeddingError


@pytest.fixture
def cloudflare_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EMBED_CLOUDFLARE_ACCOUNT_ID", "acc-123")
    monkeypatch.setenv("EMBED_CLOUDFLARE_API_TOKEN", "cf-token")


@pytest.fixture
async def cloudflare_client(cloudflare_env, helper_config):
    client = EmbedClientCloudflare(helper_config=helper_config)
    await client.boot()
    yield client
    await client.close()


def _workers_ai_response(vector: list) -> httpx.Response:
    return httpx.Response(200, json={"success": True, "result": {"shape": [1, len(vector)], "data": [vector]}})


class TestCloudflareEmbedding:
    """Workers AI embeddings fitted to the index dimension."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_vector_is_truncated_to_leading_prefix(self, cloudflare_client: EmbedClientCloudflare) -> None:
        native = [float(i) / 1000 for i in range(768)]
        route = respx.post(url__regex=r".*/ai/run/.*").mock(return_value=_workers_ai_response(native))

        vector = await cloudflare_client.embed_text("hello world")

        assert len(vector) == 256
        assert vector == native[:256]
        assert route.called
        request = route.calls.last.request
        assert request.url.path.endswith("/accounts/acc-123/ai/run/@cf/google/embeddinggemma-300m")
        assert request.headers["Authorization"] == "Bearer cf-token"

    @pytest.mark.asyncio
    @respx.mock
    async def test_exact_dimension_is_kept(self, cloudflare_client: EmbedClientCloudflare) -> None:
        native = [0.5] * 256
        respx.post(url__regex=r".*/ai/run/.*").mock(return_value=_workers_ai_response(native))

        assert await cloudflare_client.embed_text("hello") == native

    @pytest.mark.asyncio
    @respx.mock
    async def test_integer_values_become_floats(self, cloudflare_client: EmbedClientCloudflare) -> None:
        respx.post(url__regex=r".*/ai/run/.*").mock(return_value=_workers_ai_response([1] * 300))

        vector = await cloudflare_client.embed_text("hello")

        assert all(isinstance(value, float) for value in vector)

    @pytest.mark.asyncio
    @respx.mock
    async def test_short_vector_is_rejected(self, cloudflare_client: EmbedClientCloudflare) -> None:
        respx.post(url__regex=r".*/ai/run/.*").mock(return_value=_workers_ai_response([0.1] * 100))

        with pytest.raises(EmbeddingError, match="Embedding length 100 is smaller than required dimension 256"):
            await cloudflare_client.embed_text("hello")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            {"success": True, "result": {}},
            {"success": True, "result": {"data": []}},
            {"success": True, "result": {"data": ["not a vector"]}},
            {"success": True, "result": {"data": [[0.1] * 255 + ["x"]]}},
            {"success": True, "result": {"data": [[True] * 256]}},
        ],
    )
    @respx.mock
    async def test_malformed_payload_is_rejected(self, cloudflare_client: EmbedClientCloudflare, payload: dict) -> None:
        respx.post(url__regex=r".*/ai/run/.*").mock(return_value=httpx.Response(200, json=payload))

        with pytest.raises(EmbeddingError, match="^Failed to generate embedding"):
            await cloudflare_client.embed_text("hello")

    @pytest.mark.asyncio
    @respx.mock
    async def test_bare_data_form_is_accepted(self, cloudflare_client: EmbedClientCloudflare) -> None:
        respx.post(url__regex=r".*/ai/run/.*").mock(return_value=httpx.Response(200, json={"data": [[0.2] * 768]}))

        assert len(await cloudflare_client.embed_text("hello")) == 256

    @pytest.mark.asyncio
    @respx.mock
    async def test_error_status_is_wrapped(self, cloudflare_client: EmbedClientCloudflare) -> None:
        respx.post(url__regex=r".*/ai/run/.*").mock(return_value=httpx.Response(503, text="overloaded"))

        with pytest.raises(EmbeddingError, match="status 503"):
            await cloudflare_client.embed_text("hello")

    @pytest.mark.asyncio
    @respx.mock
    async def test_transport_error_is_wrapped(self, cloudflare_client: EmbedClientCloudflare) -> None:
        respx.post(url__regex=r".*/ai/run/.*").mock(side_effect=httpx.ConnectError("connection refused"))

        with pytest.raises(EmbeddingError, match="connection refused"):
            await cloudflare_client.embed_text("hello")

    def test_missing_account_id_fails_construction(self, helper_config, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("EMBED_CLOUDFLARE_ACCOUNT_ID", raising=False)
        monkeypatch.setenv("EMBED_CLOUDFLARE_API_TOKEN", "cf-token")

        with pytest.raises(ValueError, match="EMBED_CLOUDFLARE_ACCOUNT_ID"):
            EmbedClientCloudflare(helper_config=helper_config)

    def test_dimension_and_model_are_configurable(self, cloudflare_env, helper_config, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("EMBED_DIMENSION", "512")
        monkeypatch.setenv("EMBED_MODEL", "@cf/baai/bge-m3")

        client = EmbedClientCloudflare(helper_config=helper_config)

        assert client.embed_dimension == 512
        assert client.get_endpoint_embedding() == "/accounts/acc-123/ai/run/@cf/baai/bge-m3"


class TestOpenaiEmbedding:
    """OpenAI-compatible /embeddings."""

    @pytest.fixture
    async def openai_client(self, helper_config, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("EMBED_MODEL", "text-embedding-3-small")
        monkeypatch.setenv("EMBED_OPENAI_BASE_URL", "http://embeddings.local/v1")
        monkeypatch.setenv("EMBED_OPENAI_API_KEY", "sk-test")
        client = EmbedClientOpenai(helper_config=helper_config)
        await client.boot()
        yield client
        await client.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_items_are_ordered_by_index(self, openai_client: EmbedClientOpenai) -> None:
        respx.post("http://embeddings.local/v1/embeddings").mock(
            return_value=httpx.Response(
                200,
                json={"data": [{"index": 1, "embedding": [2.0] * 300}, {"index": 0, "embedding": [1.0] * 300}]},
            )
        )

        vectors = await openai_client.do_embed(["first", "second"])

        assert vectors[0][0] == 1.0
        assert vectors[1][0] == 2.0

    @pytest.mark.asyncio
    @respx.mock
    async def test_payload_names_the_model(self, openai_client: EmbedClientOpenai) -> None:
        route = respx.post("http://embeddings.local/v1/embeddings").mock(
            return_value=httpx.Response(200, json={"data": [{"index": 0, "embedding": [0.3] * 1536}]})
        )

        vector = await openai_client.embed_text("hello")

        assert len(vector) == 256
        request = route.calls.last.request
        assert request.headers["Authorization"] == "Bearer sk-test"
        assert b'"model":"text-embedding-3-small"' in request.content.replace(b" ", b"")

    def test_model_is_required(self, helper_config, monkeypatch: pytest.MonkeyPatch) -> None:
        with pytest.raises(ValueError, match="EMBED_MODEL"):
            EmbedClientOpenai(helper_config=helper_config)


class TestEmbedClientManager:
    """Engine selection by EMBED_ENGINE."""

    def test_selects_engine_from_setting(self, cloudflare_env, helper_config, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("EMBED_ENGINE", "cloudflare")

        client = EmbedClientManager(helper_config=helper_config).get_client()

        assert isinstance(client, EmbedClientCloudflare)
        assert client.get_engine_name() == "cloudflare"

    def test_unknown_engine_is_rejected(self, helper_config, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("EMBED_ENGINE", "nonexistent")

        with pytest.raises(ValueError, match="Unsupported Embed engine"):
            EmbedClientManager(helper_config=helper_config)
