"""Ingest pipeline orchestration."""

from __future__ import annotations

import asyncio
import time
from pathlib import Path
from typing import Sequence

from pricing_docs.core.config import Settings
from pricing_docs.core.errors import (
    DocumentNotFoundError,
    ExtractionError,
    IngestCancelledError,
    UploadPathError,
)
from pricing_docs.core.logging import get_logger, log_context
from pricing_docs.core.metrics import (
    CHUNK_FAILURES,
    CHUNKS_EMBEDDED,
    DOCUMENTS_INGESTED,
    INDEX_SIZE,
    INGEST_DURATION,
)
from pricing_docs.db.store import DocumentStore
from pricing_docs.ingest.chunker import Chunker
from pricing_docs.ingest.embeddings import EmbeddingClient, encode_vector
from pricing_docs.ingest.extractors import ExtractorRegistry, normalize_file_type
from pricing_docs.ingest.types import ChunkPayload, IngestReport
from pricing_docs.models.entities import Document, DocumentSummary

logger = get_logger(__name__)


class IngestPipeline:
    """Coordinate extraction, chunking, embeddings, and persistence."""

    def __init__(
        self,
        store: DocumentStore,
        settings: Settings,
        embedder: EmbeddingClient,
        extractors: ExtractorRegistry | None = None,
    ) -> None:
        self.store = store
        self.settings = settings
        self.embedder = embedder
        self.extractors = extractors or ExtractorRegistry()
        self.chunker = Chunker(chunk_size=settings.chunk_size, overlap=settings.chunk_overlap)

    async def ingest(
        self,
        owner_id: int,
        path: Path,
        original_name: str,
        file_type: str,
        cancel_event: asyncio.Event | None = None,
    ) -> IngestReport:
        """Index one uploaded file and return how many chunks became searchable."""
        started = time.perf_counter()
        file_type = normalize_file_type(file_type)
        path = self._contain(Path(path).expanduser())
        self.embedder.ensure_ready()
        logger.info("Processing document %s", original_name, extra=log_context(owner_id=owner_id))

        text = await self._extract(path, file_type)
        size_bytes = (await asyncio.to_thread(path.stat)).st_size
        document = self.store.create_document(
            owner_id=owner_id,
            filename=path.name,
            original_name=original_name,
            file_type=file_type,
            storage_path=path.relative_to(self.settings.upload_root.resolve()).as_posix(),
            size_bytes=size_bytes,
        )
        logger.info("Created document record %s", document.id)

        try:
            chunk_ids, payloads = self._prepare_chunks(document, text)
        except Exception:
            self.store.delete_document(document.id)
            DOCUMENTS_INGESTED.labels(operation="ingest", outcome="failed").inc()
            raise

        report = await self._embed_chunks(document, chunk_ids, payloads, cancel_event, operation="ingest")
        INGEST_DURATION.labels(operation="ingest").observe(time.perf_counter() - started)
        logger.info(
            "Indexed %s: %s/%s chunks embedded",
            original_name,
            report.chunks_embedded,
            report.chunks_total,
            extra=log_context(document_id=document.id, coverage=report.coverage),
        )
        return report

    async def reindex(
        self,
        document_id: str,
        owner_id: int,
        cancel_event: asyncio.Event | None = None,
    ) -> IngestReport:
        """Replace a document's chunks and embeddings from its stored file.

        The document row and id survive; chunk ids do not.
        """
        started = time.perf_counter()
        document = self.store.get_document(document_id, owner_id=owner_id)
        if document is None:
            raise DocumentNotFoundError(document_id)
        self.embedder.ensure_ready()

        text = await self._extract(self.resolve_path(document), document.file_type)
        removed = self.store.delete_chunks(document.id)
        logger.info("Removed %s chunks of %s before re-indexing", removed, document.id)

        chunk_ids, payloads = self._prepare_chunks(document, text)
        report = await self._embed_chunks(document, chunk_ids, payloads, cancel_event, operation="reindex")
        INGEST_DURATION.labels(operation="reindex").observe(time.perf_counter() - started)
        logger.info(
            "Re-indexed %s: %s/%s chunks embedded",
            document.display_name,
            report.chunks_embedded,
            report.chunks_total,
            extra=log_context(document_id=document.id, coverage=report.coverage),
        )
        return report

    def delete_document(self, document_id: str, owner_id: int) -> Document:
        """Delete a document, its chunks and embeddings, then its stored file."""
        document = self.store.get_document(document_id, owner_id=owner_id)
        if document is None:
            raise DocumentNotFoundError(document_id)
        self.store.delete_document(document.id)
        self._update_index_metric()

        # The stored file is shared with any other document pointing at it.
        if self.store.count_documents_with_path(document.storage_path):
            logger.info("Keeping %s; other documents still reference it", document.storage_path)
            return document
        try:
            self.resolve_path(document).unlink()
        except (OSError, UploadPathError) as exc:
            logger.warning("Could not delete stored file for %s: %s", document.id, exc)
        return document

    def list_documents(self, owner_id: int) -> list[DocumentSummary]:
        return self.store.list_documents(owner_id)

    def resolve_path(self, document: Document) -> Path:
        """Absolute path of the stored file; never outside the upload root."""
        return self._contain(self.settings.upload_root / document.storage_path)

    # Internal helpers -------------------------------------------------

    async def _extract(self, path: Path, file_type: str) -> str:
        text = await asyncio.to_thread(self.extractors.extract, path, file_type)
        if not text.strip():
            raise ExtractionError(path, file_type, "no text could be extracted from the file")
        return text

    def _contain(self, path: Path) -> Path:
        resolved = path.resolve()
        if not resolved.is_relative_to(self.settings.upload_root.resolve()):
            raise UploadPathError(path)
        return resolved

    def _prepare_chunks(self, document: Document, text: str) -> tuple[list[str], list[ChunkPayload]]:
        payloads = self.chunker.split(text)
        logger.info("Generated %s chunks for %s", len(payloads), document.id)
        chunk_ids = self.store.insert_chunks(document.id, payloads)
        return chunk_ids, payloads

    async def _embed_chunks(
        self,
        document: Document,
        chunk_ids: Sequence[str],
        payloads: Sequence[ChunkPayload],
        cancel_event: asyncio.Event | None,
        operation: str,
    ) -> IngestReport:
        report = IngestReport(document_id=document.id, chunks_total=len(payloads))
        batch_size = self.settings.batch_size
        pairs = list(zip(chunk_ids, payloads))

        for start in range(0, len(pairs), batch_size):
            if cancel_event is not None and cancel_event.is_set():
                DOCUMENTS_INGESTED.labels(operation=operation, outcome="cancelled").inc()
                self._update_index_metric()
                raise IngestCancelledError(report)
            batch = pairs[start : start + batch_size]
            await asyncio.gather(
                *(self._embed_one(document, chunk_id, payload, report) for chunk_id, payload in batch)
            )
            if start + batch_size < len(pairs) and self.settings.batch_pause_s > 0:
                await asyncio.sleep(self.settings.batch_pause_s)

        outcome = "complete" if not report.degraded else "partial"
        DOCUMENTS_INGESTED.labels(operation=operation, outcome=outcome).inc()
        self._update_index_metric()
        return report

    async def _embed_one(
        self,
        document: Document,
        chunk_id: str,
        payload: ChunkPayload,
        report: IngestReport,
    ) -> None:
        stage = "embedding"
        try:
            vector = await self.embedder.embed(payload.text)
            stage = "storage"
            self.store.insert_embedding(chunk_id, self.embedder.model, len(vector), encode_vector(vector))
        except Exception as exc:
            report.failed_indices.append(payload.index)
            CHUNK_FAILURES.labels(reason=stage).inc()
            logger.warning(
                "Skipping chunk %s of %s after %s failure: %s",
                payload.index,
                document.id,
                stage,
                exc,
                extra=log_context(document_id=document.id, chunk_index=payload.index),
            )
            return
        report.chunks_embedded += 1
        CHUNKS_EMBEDDED.inc()
        logger.debug("Processed chunk %s/%s of %s", payload.index + 1, report.chunks_total, document.id)

    def _update_index_metric(self) -> None:
        INDEX_SIZE.set(self.store.count_chunks())


__all__ = ["IngestPipeline"]
