"""Query API routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from pricing_docs.api.dependencies import get_owner_id, get_retrieval_service
from pricing_docs.models.dto import DocumentContentResponse, SearchHit, SearchRequest, SearchResponse
from pricing_docs.retrieval.search import RetrievalService

router = APIRouter()


@router.post("/search", response_model=SearchResponse, summary="Similarity search over the owner's documents")
async def search_documents(
    request: SearchRequest,
    owner_id: int = Depends(get_owner_id),
    service: RetrievalService = Depends(get_retrieval_service),
) -> SearchResponse:
    result = await service.search(request.query, limit=request.top_k, owner_id=owner_id)
    return SearchResponse(
        hits=[
            SearchHit(
                doc_id=hit.document_id,
                chunk_id=hit.chunk_id,
                chunk_index=hit.chunk_index,
                score=hit.score,
                preview=hit.preview,
                filename=hit.filename,
                metadata=hit.metadata or None,
            )
            for hit in result.hits
        ],
        total_found=result.total_found,
    )


@router.get("/docs/{document_id}/content", response_model=DocumentContentResponse, summary="Fetch a document or chunk")
async def get_document_content(
    document_id: str,
    chunk_id: str | None = None,
    owner_id: int = Depends(get_owner_id),
    service: RetrievalService = Depends(get_retrieval_service),
) -> DocumentContentResponse:
    content = service.get(document_id, chunk_id=chunk_id, owner_id=owner_id)
    return DocumentContentResponse(
        doc_id=content.document_id,
        content=content.content,
        filename=content.filename,
        metadata=content.metadata or None,
    )


__all__ = ["router"]
