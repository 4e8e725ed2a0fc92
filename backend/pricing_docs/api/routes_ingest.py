"""Ingest API routes."""

from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Depends

from pricing_docs.api.dependencies import get_app_settings, get_ingest_pipeline, get_owner_id
from pricing_docs.core.config import Settings
from pricing_docs.ingest.pipeline import IngestPipeline
from pricing_docs.ingest.types import IngestReport
from pricing_docs.models.dto import IngestRequest, IngestResponse

router = APIRouter()


@router.post("/ingest", response_model=IngestResponse, summary="Extract, chunk and embed a stored upload")
async def ingest_document(
    request: IngestRequest,
    owner_id: int = Depends(get_owner_id),
    pipeline: IngestPipeline = Depends(get_ingest_pipeline),
    settings: Settings = Depends(get_app_settings),
) -> IngestResponse:
    path = Path(request.path).expanduser()
    if not path.is_absolute():
        path = settings.upload_root / path
    original_name = request.original_name or path.name
    file_type = request.file_type or path.suffix
    report = await pipeline.ingest(owner_id, path, original_name, file_type)
    return _to_response(report, original_name)


@router.post("/docs/{document_id}/reindex", response_model=IngestResponse, summary="Rebuild a document's chunks")
async def reindex_document(
    document_id: str,
    owner_id: int = Depends(get_owner_id),
    pipeline: IngestPipeline = Depends(get_ingest_pipeline),
) -> IngestResponse:
    report = await pipeline.reindex(document_id, owner_id)
    document = pipeline.store.get_document(document_id)
    return _to_response(report, document.display_name if document else document_id)


def _to_response(report: IngestReport, filename: str) -> IngestResponse:
    return IngestResponse(filename=filename, **report.to_dict())


__all__ = ["router"]
