"""Test fixtures for the document pipeline."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Sequence

import pytest

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from pricing_docs.core.config import Settings  # noqa: E402
from pricing_docs.core.errors import EmbeddingServiceError  # noqa: E402
from pricing_docs.db.sqlite import SQLiteDatabase  # noqa: E402
from pricing_docs.db.store import DocumentStore  # noqa: E402
from pricing_docs.ingest.embeddings import EmbeddingClient, HashedEmbeddingClient  # noqa: E402


class KeywordEmbeddingClient(EmbeddingClient):
    """One axis per vocabulary word, so similarities are easy to predict."""

    provider_name = "keyword"

    def __init__(self, vocabulary: Sequence[str]) -> None:
        self.vocabulary = [word.lower() for word in vocabulary]
        self.calls: list[str] = []

    @property
    def model(self) -> str:
        return "keyword-test"

    @property
    def dim(self) -> int:
        return len(self.vocabulary)

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        words = text.lower().split()
        return [float(words.count(word)) for word in self.vocabulary]


class FlakyEmbeddingClient(HashedEmbeddingClient):
    """Hashed vectors, except for texts containing ``fail_token``."""

    def __init__(self, fail_token: str, dim: int = 64) -> None:
        super().__init__(dim=dim, model="flaky-test")
        self.fail_token = fail_token

    async def embed(self, text: str) -> list[float]:
        if self.fail_token in text.split():
            raise EmbeddingServiceError("simulated outage", provider_name=self.provider_name)
        return await super().embed(text)


class CancellingEmbeddingClient(HashedEmbeddingClient):
    """Sets ``event`` on the first request, as a user pressing cancel would."""

    def __init__(self, event: asyncio.Event, dim: int = 64) -> None:
        super().__init__(dim=dim, model="cancel-test")
        self.event = event

    async def embed(self, text: str) -> list[float]:
        self.event.set()
        return await super().embed(text)


@pytest.fixture(autouse=True)
def reset_state(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Reset global singletons and environment between tests."""
    monkeypatch.setenv("PDOCS_DB_PATH", str(tmp_path / "docs.db"))
    monkeypatch.setenv("PDOCS_UPLOAD_ROOT", str(tmp_path))
    monkeypatch.setenv("PDOCS_EMBEDDING_BACKEND", "hashed")
    monkeypatch.setenv("PDOCS_BATCH_PAUSE_S", "0")
    monkeypatch.delenv("PDOCS_CONFIG", raising=False)
    monkeypatch.delenv("PDOCS_OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    from pricing_docs.api.dependencies import reset_dependencies

    reset_dependencies()
    yield
    reset_dependencies()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        db_path=tmp_path / "docs.db",
        upload_root=tmp_path,
        embedding_backend="hashed",
        chunk_size=40,
        chunk_overlap=0,
        batch_pause_s=0,
    )


@pytest.fixture
def store(settings: Settings) -> DocumentStore:
    db = SQLiteDatabase(settings.db_path)
    db.ensure_schema()
    yield DocumentStore(db)
    db.close()


@pytest.fixture
def write_upload(tmp_path: Path):
    """Write a text file into the upload root and return its path."""

    def _write(name: str, content: str) -> Path:
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture(scope="session")
def hundred_words() -> str:
    return " ".join(f"w{i}" for i in range(100))
