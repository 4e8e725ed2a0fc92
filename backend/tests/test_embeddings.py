"""Tests for embedding clients."""

from __future__ import annotations

import asyncio
import math
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from pricing_docs.core.config import Settings
from pricing_docs.core.errors import (
    ConfigurationError,
    EmbeddingConfigError,
    EmbeddingResponseError,
    EmbeddingServiceError,
)
from pricing_docs.ingest.embeddings import (
    HashedEmbeddingClient,
    OpenAIEmbeddingClient,
    build_embedding_client,
    decode_vector,
    encode_vector,
)

_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/embeddings")


def _response(vector: list[float]) -> SimpleNamespace:
    return SimpleNamespace(data=[SimpleNamespace(embedding=vector)])


def _client_with(create: AsyncMock, model: str = "text-embedding-3-small") -> OpenAIEmbeddingClient:
    client = OpenAIEmbeddingClient(api_key="sk-test", model=model, timeout_s=5)
    client.ensure_ready()
    client._client = MagicMock()
    client._client.embeddings.create = create
    return client


def test_hashed_vectors_are_normalised_and_deterministic() -> None:
    client = HashedEmbeddingClient(dim=64)
    first = asyncio.run(client.embed("Enterprise pricing tiers"))
    second = asyncio.run(client.embed("enterprise PRICING tiers"))
    assert len(first) == client.dim == 64
    assert abs(math.sqrt(sum(value * value for value in first)) - 1.0) < 1e-6
    assert first == second


def test_vector_bytes_round_trip() -> None:
    vector = [0.5, -0.25, 1.0]
    assert decode_vector(encode_vector(vector)) == vector


def test_missing_api_key_is_a_configuration_error() -> None:
    client = OpenAIEmbeddingClient(api_key=None)
    with pytest.raises(EmbeddingConfigError) as excinfo:
        client.ensure_ready()
    assert isinstance(excinfo.value, ConfigurationError)
    assert str(excinfo.value).startswith("[openai]")


def test_openai_embedding_is_returned_as_floats() -> None:
    create = AsyncMock(return_value=_response([1] * 1536))
    client = _client_with(create)

    vector = asyncio.run(client.embed("volume discounts"))

    assert len(vector) == 1536
    assert all(isinstance(value, float) for value in vector)
    create.assert_awaited_once_with(input="volume discounts", model="text-embedding-3-small")


def test_unknown_model_locks_dimension_on_first_response() -> None:
    create = AsyncMock(side_effect=[_response([0.1, 0.2, 0.3]), _response([0.1, 0.2])])
    client = _client_with(create, model="custom-embedder")
    assert client.dim is None

    asyncio.run(client.embed("first"))
    assert client.dim == 3
    with pytest.raises(EmbeddingResponseError):
        asyncio.run(client.embed("second"))


@pytest.mark.parametrize(
    "response",
    [
        SimpleNamespace(data=[]),
        _response([]),
        _response(["0.1"] * 1536),
        _response([0.1] * 10),
    ],
)
def test_malformed_responses_are_rejected(response: SimpleNamespace) -> None:
    client = _client_with(AsyncMock(return_value=response))
    with pytest.raises(EmbeddingResponseError):
        asyncio.run(client.embed("text"))


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (openai.APIConnectionError(request=_REQUEST), EmbeddingServiceError),
        (
            openai.RateLimitError("slow down", response=httpx.Response(429, request=_REQUEST), body=None),
            EmbeddingServiceError,
        ),
        (
            openai.AuthenticationError("bad key", response=httpx.Response(401, request=_REQUEST), body=None),
            EmbeddingConfigError,
        ),
        (asyncio.TimeoutError(), EmbeddingServiceError),
    ],
)
def test_service_errors_are_mapped(error: Exception, expected: type[Exception]) -> None:
    client = _client_with(AsyncMock(side_effect=error))
    with pytest.raises(expected):
        asyncio.run(client.embed("text"))


def test_build_embedding_client_selects_backend(tmp_path) -> None:
    hashed = build_embedding_client(Settings(db_path=tmp_path / "a.db", embedding_backend="hashed", embedding_dim=32))
    assert isinstance(hashed, HashedEmbeddingClient)
    assert hashed.model == "hashed-32"

    remote = build_embedding_client(Settings(db_path=tmp_path / "a.db", openai_api_key="sk-test"))
    assert isinstance(remote, OpenAIEmbeddingClient)
    assert remote.model == "text-embedding-3-large"
    assert remote.dim == 3072


def test_ensure_ready_builds_client_once() -> None:
    client = OpenAIEmbeddingClient(api_key="sk-test", base_url="http://localhost:8080/v1")
    first = client.ensure_ready()
    assert isinstance(first, openai.AsyncOpenAI)
    assert client.ensure_ready() is first
    assert client.provider_name == "openai-compatible"
