"""Embedding clients.

A client turns one text into one vector with exactly one request and no
internal retry, so the caller sees every failure and decides what to skip.
Clients are constructed explicitly and injected; there is no module-level
instance.
"""

from __future__ import annotations

import asyncio
import hashlib
import math
import re
from abc import ABC, abstractmethod
from array import array
from numbers import Real
from typing import Any, Sequence

import openai

from pricing_docs.core.config import Settings
from pricing_docs.core.errors import (
    ConfigurationError,
    EmbeddingConfigError,
    EmbeddingResponseError,
    EmbeddingServiceError,
)
from pricing_docs.core.logging import get_logger

logger = get_logger(__name__)

_TOKEN_RE = re.compile(r"\w+")

# Known output sizes; other models are accepted at whatever size they return.
_MODEL_DIMENSIONS: dict[str, int] = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
}


class EmbeddingClient(ABC):
    """One text in, one fixed-length vector out."""

    provider_name: str = "embedding"

    @property
    @abstractmethod
    def model(self) -> str: ...

    @property
    @abstractmethod
    def dim(self) -> int | None:
        """Vector length, or ``None`` until the service reports it."""

    def ensure_ready(self) -> None:
        """Raise :class:`EmbeddingConfigError` if no request can be made."""

    @abstractmethod
    async def embed(self, text: str) -> list[float]: ...


class OpenAIEmbeddingClient(EmbeddingClient):
    """Client for the OpenAI (or a compatible) embeddings endpoint."""

    provider_name = "openai"

    def __init__(
        self,
        api_key: str | None,
        model: str = "text-embedding-3-large",
        base_url: str | None = None,
        timeout_s: float = 30.0,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._base_url = base_url
        self._timeout_s = timeout_s
        self._dim = _MODEL_DIMENSIONS.get(model)
        self._client: openai.AsyncOpenAI | None = None
        if base_url:
            self.provider_name = "openai-compatible"

    @property
    def model(self) -> str:
        return self._model

    @property
    def dim(self) -> int | None:
        return self._dim

    def ensure_ready(self) -> openai.AsyncOpenAI:
        if not self._api_key:
            raise EmbeddingConfigError(
                "No API key configured for the embedding service",
                provider_name=self.provider_name,
            )
        if self._client is None:
            client_kwargs: dict[str, Any] = {
                "api_key": self._api_key,
                "max_retries": 0,
                "timeout": self._timeout_s,
            }
            if self._base_url:
                client_kwargs["base_url"] = self._base_url
            self._client = openai.AsyncOpenAI(**client_kwargs)
        return self._client

    async def embed(self, text: str) -> list[float]:
        client = self.ensure_ready()
        try:
            response = await asyncio.wait_for(
                client.embeddings.create(input=text, model=self._model),
                timeout=self._timeout_s,
            )
        except asyncio.TimeoutError as exc:
            raise EmbeddingServiceError(
                f"Embedding request timed out after {self._timeout_s}s",
                provider_name=self.provider_name,
            ) from exc
        except (openai.AuthenticationError, openai.PermissionDeniedError) as exc:
            raise EmbeddingConfigError(
                f"Embedding service rejected credentials: {exc}",
                provider_name=self.provider_name,
            ) from exc
        except openai.APIError as exc:
            raise EmbeddingServiceError(
                f"Embedding service error: {exc}",
                provider_name=self.provider_name,
            ) from exc
        return self._vector_from_response(response)

    def _vector_from_response(self, response: Any) -> list[float]:
        data = getattr(response, "data", None)
        if not data:
            raise EmbeddingResponseError("Response contained no embeddings", provider_name=self.provider_name)
        raw = getattr(data[0], "embedding", None)
        if not isinstance(raw, Sequence) or isinstance(raw, (str, bytes)) or not raw:
            raise EmbeddingResponseError("Embedding is not a numeric list", provider_name=self.provider_name)
        if not all(isinstance(value, Real) and not isinstance(value, bool) for value in raw):
            raise EmbeddingResponseError("Embedding contains non-numeric values", provider_name=self.provider_name)
        if self._dim is not None and len(raw) != self._dim:
            raise EmbeddingResponseError(
                f"Expected {self._dim} dimensions, got {len(raw)}",
                provider_name=self.provider_name,
            )
        if self._dim is None:
            self._dim = len(raw)
        return [float(value) for value in raw]


class HashedEmbeddingClient(EmbeddingClient):
    """Deterministic hashed bag-of-words vectors; offline, no credentials.

    Tokens are hashed into ``dim`` buckets and the result is L2-normalised, so
    texts sharing words have positive cosine similarity. Useful for local
    development and tests, not for production relevance.
    """

    provider_name = "hashed"

    def __init__(self, dim: int = 384, model: str = "hashed") -> None:
        self._dim = dim
        self._model = model

    @property
    def model(self) -> str:
        return self._model

    @property
    def dim(self) -> int:
        return self._dim

    async def embed(self, text: str) -> list[float]:
        vector = [0.0] * self._dim
        for token in _tokenize(text):
            vector[_hash_token(token, self._dim)] += 1.0
        _normalize(vector)
        return vector


def build_embedding_client(settings: Settings) -> EmbeddingClient:
    """Construct the client selected by ``settings.embedding_backend``."""
    if settings.embedding_backend == "hashed":
        return HashedEmbeddingClient(dim=settings.embedding_dim, model=f"hashed-{settings.embedding_dim}")
    if settings.embedding_backend == "openai":
        return OpenAIEmbeddingClient(
            api_key=settings.openai_api_key,
            model=settings.embedding_model,
            base_url=settings.openai_base_url,
            timeout_s=settings.embedding_timeout_s,
        )
    raise ConfigurationError(f"Unknown embedding backend: {settings.embedding_backend}")


def encode_vector(vector: Sequence[float]) -> bytes:
    """Serialise a vector as packed float32."""
    return array("f", vector).tobytes()


def decode_vector(payload: bytes) -> list[float]:
    floats = array("f")
    floats.frombytes(payload)
    return list(floats)


def _tokenize(text: str) -> list[str]:
    return _TOKEN_RE.findall(text.lower())


def _hash_token(token: str, dim: int) -> int:
    digest = hashlib.blake2b(token.encode("utf-8"), digest_size=8).digest()
    return int.from_bytes(digest, "big") % dim


def _normalize(vector: list[float]) -> None:
    norm = math.sqrt(sum(value * value for value in vector))
    if norm == 0:
        return
    inv = 1.0 / norm
    for idx, value in enumerate(vector):
        vector[idx] = value * inv


__all__ = [
    "EmbeddingClient",
    "OpenAIEmbeddingClient",
    "HashedEmbeddingClient",
    "build_embedding_client",
    "encode_vector",
    "decode_vector",
]
