"""Tests for retrieval utilities."""

from __future__ import annotations

import asyncio

import pytest
from conftest import KeywordEmbeddingClient

from pricing_docs.core.config import Settings
from pricing_docs.core.errors import ChunkNotFoundError, DocumentNotFoundError
from pricing_docs.db.store import DocumentStore
from pricing_docs.ingest.embeddings import HashedEmbeddingClient
from pricing_docs.ingest.pipeline import IngestPipeline
from pricing_docs.ingest.types import ChunkPayload
from pricing_docs.retrieval import RetrievalService, SimilarityRanker, cosine_similarity, relevance_score

VOCABULARY = ["pricing", "discount", "enterprise", "support"]


@pytest.fixture
def embedder() -> KeywordEmbeddingClient:
    return KeywordEmbeddingClient(VOCABULARY)


@pytest.fixture
def pipeline(settings: Settings, store: DocumentStore, embedder: KeywordEmbeddingClient) -> IngestPipeline:
    return IngestPipeline(store=store, settings=settings, embedder=embedder)


@pytest.fixture
def service(settings: Settings, store: DocumentStore, embedder: KeywordEmbeddingClient) -> RetrievalService:
    return RetrievalService(store=store, embedder=embedder, settings=settings)


def _ingest(pipeline: IngestPipeline, write_upload, name: str, text: str, owner_id: int = 1) -> str:
    path = write_upload(name, text)
    return asyncio.run(pipeline.ingest(owner_id, path, name, "txt")).document_id


def test_cosine_similarity_basics() -> None:
    assert cosine_similarity([1.0, 0.0], [1.0, 0.0]) == pytest.approx(1.0)
    assert cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == pytest.approx(-1.0)
    assert cosine_similarity([0.0, 0.0], [1.0, 0.0]) == 0.0
    with pytest.raises(ValueError):
        cosine_similarity([1.0], [1.0, 0.0])
    assert relevance_score(-1.0) == 0.0
    assert relevance_score(1.0) == 1.0


def test_ranker_keeps_best_and_counts_matches() -> None:
    ranker: SimilarityRanker[str] = SimilarityRanker([1.0, 0.0, 0.0], top_k=1, min_similarity=0.3)
    for item, vector in [("a", [1.0, 1.0, 0.0]), ("b", [1.0, 0.0, 0.0]), ("c", [0.0, 1.0, 0.0])]:
        ranker.offer(item, vector)
    results = ranker.results()
    assert [scored.item for scored in results] == ["b"]
    assert ranker.matched == 2


def test_search_ranks_by_similarity(pipeline: IngestPipeline, service: RetrievalService, write_upload) -> None:
    exact = _ingest(pipeline, write_upload, "exact.txt", "pricing discount")
    partial = _ingest(pipeline, write_upload, "partial.txt", "pricing support")
    _ingest(pipeline, write_upload, "other.txt", "enterprise support")

    result = asyncio.run(service.search("pricing discount"))

    assert [hit.document_id for hit in result.hits] == [exact, partial]
    assert result.total_found == 2
    assert result.hits[0].score == pytest.approx(1.0, abs=1e-6)
    assert result.hits[1].score == pytest.approx(0.75, abs=1e-6)
    assert all(0.0 <= hit.score <= 1.0 for hit in result.hits)
    assert result.hits[0].filename == "exact.txt"
    assert result.hits[0].metadata == {"section": "Chunk 1"}


def test_search_without_matches_returns_empty(pipeline: IngestPipeline, service: RetrievalService, write_upload) -> None:
    _ingest(pipeline, write_upload, "plans.txt", "pricing discount")
    result = asyncio.run(service.search("unrelated words entirely"))
    assert result.hits == []
    assert result.total_found == 0


def test_search_limit_and_total(pipeline: IngestPipeline, service: RetrievalService, write_upload) -> None:
    for idx in range(4):
        _ingest(pipeline, write_upload, f"doc{idx}.txt", "pricing enterprise")
    result = asyncio.run(service.search("pricing", limit=2))
    assert len(result.hits) == 2
    assert result.total_found == 4


def test_search_rejects_empty_query(service: RetrievalService) -> None:
    with pytest.raises(ValueError):
        asyncio.run(service.search("   "))


def test_search_is_scoped_to_owner(pipeline: IngestPipeline, service: RetrievalService, write_upload) -> None:
    mine = _ingest(pipeline, write_upload, "mine.txt", "pricing discount", owner_id=1)
    _ingest(pipeline, write_upload, "theirs.txt", "pricing discount", owner_id=2)

    result = asyncio.run(service.search("pricing", owner_id=1))

    assert [hit.document_id for hit in result.hits] == [mine]
    with pytest.raises(DocumentNotFoundError):
        service.get(mine, owner_id=2)


def test_preview_is_truncated(settings: Settings, store: DocumentStore, write_upload) -> None:
    embedder = HashedEmbeddingClient(dim=32)
    pipeline = IngestPipeline(store=store, settings=settings.model_copy(update={"chunk_size": 1000}), embedder=embedder)
    service = RetrievalService(store=store, embedder=embedder, settings=settings)
    text = " ".join(["pricing"] * 60)
    path = write_upload("long.txt", text)
    asyncio.run(pipeline.ingest(1, path, "long.txt", "txt"))

    hit = asyncio.run(service.search("pricing")).hits[0]

    assert hit.preview == text[:200] + "..."


def test_get_joins_chunks_with_blank_lines(store: DocumentStore, service: RetrievalService) -> None:
    document = store.create_document(1, "abc.txt", "abc.txt", "txt", "abc.txt", 5)
    chunk_ids = store.insert_chunks(
        document.id,
        [ChunkPayload(index=i, text=text, token_count=1) for i, text in enumerate(["A", "B", "C"])],
    )

    content = service.get(document.id)
    assert content.content == "A\n\nB\n\nC"
    assert content.metadata["total_chunks"] == 3

    single = service.get(document.id, chunk_id=chunk_ids[1])
    assert single.content == "B"


def test_get_rejects_chunk_from_another_document(store: DocumentStore, service: RetrievalService) -> None:
    first = store.create_document(1, "a.txt", "a.txt", "txt", "a.txt", 1)
    second = store.create_document(1, "b.txt", "b.txt", "txt", "b.txt", 1)
    (chunk_id,) = store.insert_chunks(second.id, [ChunkPayload(index=0, text="B", token_count=1)])

    with pytest.raises(ChunkNotFoundError):
        service.get(first.id, chunk_id=chunk_id)
    with pytest.raises(DocumentNotFoundError):
        service.get("doc_missing")
