"""Document management routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from pricing_docs.api.dependencies import get_ingest_pipeline, get_owner_id
from pricing_docs.core.metrics import metrics_response
from pricing_docs.ingest.pipeline import IngestPipeline
from pricing_docs.models.dto import DeleteResponse, DocumentListResponse, DocumentResponse
from pricing_docs.models.entities import DocumentSummary

router = APIRouter()


@router.get("/docs", response_model=DocumentListResponse, summary="List the owner's documents")
async def list_documents(
    owner_id: int = Depends(get_owner_id),
    pipeline: IngestPipeline = Depends(get_ingest_pipeline),
) -> DocumentListResponse:
    return DocumentListResponse(docs=[_to_document(summary) for summary in pipeline.list_documents(owner_id)])


@router.delete("/docs/{document_id}", response_model=DeleteResponse, summary="Delete a document and its chunks")
async def delete_document(
    document_id: str,
    owner_id: int = Depends(get_owner_id),
    pipeline: IngestPipeline = Depends(get_ingest_pipeline),
) -> DeleteResponse:
    pipeline.delete_document(document_id, owner_id)
    return DeleteResponse(status="ok", document_id=document_id)


@router.get("/metrics", summary="Prometheus metrics")
async def get_metrics():
    return metrics_response()


def _to_document(summary: DocumentSummary) -> DocumentResponse:
    document = summary.document
    return DocumentResponse(
        id=document.id,
        filename=document.display_name,
        file_type=document.file_type,
        size_bytes=document.size_bytes,
        created_at=document.created_at,
        chunks=summary.chunk_count,
        embedded_chunks=summary.embedded_count,
        coverage=summary.coverage,
    )


__all__ = ["router"]
