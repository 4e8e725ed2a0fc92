"""Search orchestration."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

import orjson

from pricing_docs.core.config import Settings
from pricing_docs.core.errors import ChunkNotFoundError, DocumentNotFoundError
from pricing_docs.core.logging import get_logger, log_context
from pricing_docs.core.metrics import SEARCH_LATENCY
from pricing_docs.db.store import DocumentStore
from pricing_docs.ingest.embeddings import EmbeddingClient, decode_vector
from pricing_docs.retrieval.similarity import SimilarityRanker

logger = get_logger(__name__)

MAX_SEARCH_LIMIT = 50


@dataclass(slots=True)
class Candidate:
    chunk_id: str
    document_id: str
    chunk_index: int
    filename: str
    content: str
    metadata: dict[str, Any]


@dataclass(slots=True)
class RetrievalHit:
    document_id: str
    chunk_id: str
    chunk_index: int
    filename: str
    score: float
    preview: str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class SearchResult:
    hits: list[RetrievalHit]
    total_found: int


@dataclass(slots=True)
class DocumentContent:
    document_id: str
    filename: str
    content: str
    metadata: dict[str, Any] = field(default_factory=dict)


class RetrievalService:
    """Rank stored chunks against a query and fetch document text."""

    def __init__(self, store: DocumentStore, embedder: EmbeddingClient, settings: Settings) -> None:
        self.store = store
        self.embedder = embedder
        self.settings = settings

    async def search(
        self,
        query: str,
        limit: int | None = None,
        owner_id: int | None = None,
    ) -> SearchResult:
        """Embed ``query`` and return the most similar chunks.

        Embedding failures propagate; there is no keyword fallback. A query
        that matches nothing yields an empty hit list.
        """
        if not query or not query.strip():
            raise ValueError("Search query cannot be empty")
        top_k = max(1, min(limit or self.settings.search_top_k, MAX_SEARCH_LIMIT))
        start_time = time.perf_counter()

        query_vector = await self.embedder.embed(query)
        ranker: SimilarityRanker[Candidate] = SimilarityRanker(
            query_vector,
            top_k=top_k,
            min_similarity=self.settings.search_min_similarity,
        )
        skipped = 0
        for row in self.store.iter_embedded_chunks(self.embedder.model, owner_id=owner_id):
            if row["dim"] != len(query_vector):
                skipped += 1
                continue
            ranker.offer(self._candidate_from_row(row), decode_vector(row["vector"]))
        if skipped:
            logger.debug("Skipped %s stored vectors with a different dimension", skipped)

        hits = [
            RetrievalHit(
                document_id=scored.item.document_id,
                chunk_id=scored.item.chunk_id,
                chunk_index=scored.item.chunk_index,
                filename=scored.item.filename,
                score=scored.score,
                preview=self._preview(scored.item.content),
                metadata=scored.item.metadata,
            )
            for scored in ranker.results()
        ]
        SEARCH_LATENCY.observe(time.perf_counter() - start_time)
        logger.info(
            "Search returned %s of %s matches",
            len(hits),
            ranker.matched,
            extra=log_context(owner_id=owner_id, limit=top_k),
        )
        return SearchResult(hits=hits, total_found=ranker.matched)

    def get(
        self,
        document_id: str,
        chunk_id: str | None = None,
        owner_id: int | None = None,
    ) -> DocumentContent:
        """Return one chunk, or the whole document joined by blank lines."""
        document = self.store.get_document(document_id, owner_id=owner_id)
        if chunk_id is not None:
            chunk = self.store.get_chunk(chunk_id, owner_id=owner_id)
            if document is None or chunk is None or chunk.document_id != document_id:
                raise ChunkNotFoundError(chunk_id, document_id)
            return DocumentContent(
                document_id=document_id,
                filename=document.display_name,
                content=chunk.content,
                metadata=chunk.metadata,
            )

        chunks = self.store.list_chunks(document_id, owner_id=owner_id)
        if document is None or not chunks:
            raise DocumentNotFoundError(document_id)
        return DocumentContent(
            document_id=document_id,
            filename=document.display_name,
            content="\n\n".join(chunk.content for chunk in chunks),
            metadata={
                "total_chunks": len(chunks),
                "chunks": [chunk.metadata for chunk in chunks if chunk.metadata],
            },
        )

    # ------------------------------------------------------------------

    def _candidate_from_row(self, row: Any) -> Candidate:
        return Candidate(
            chunk_id=row["chunk_id"],
            document_id=row["document_id"],
            chunk_index=row["chunk_index"],
            filename=row["original_name"] or row["filename"],
            content=row["content"],
            metadata=orjson.loads(row["meta_json"]) if row["meta_json"] else {},
        )

    def _preview(self, content: str) -> str:
        limit = self.settings.preview_chars
        if len(content) <= limit:
            return content
        return content[:limit] + "..."


__all__ = ["RetrievalService", "RetrievalHit", "SearchResult", "DocumentContent"]
