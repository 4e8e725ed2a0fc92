"""Pydantic DTOs exposed via API."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


class IngestRequest(BaseModel):
    path: str = Field(description="Path of the stored upload, inside the upload root")
    original_name: str | None = Field(default=None, description="Display name; defaults to the file name")
    file_type: str | None = Field(default=None, description="Declared type; defaults to the file extension")


class IngestResponse(BaseModel):
    document_id: str
    filename: str
    chunks_total: int
    chunks_embedded: int
    failed_indices: list[int]
    coverage: float


class DocumentResponse(BaseModel):
    id: str
    filename: str
    file_type: str
    size_bytes: int
    created_at: datetime
    chunks: int
    embedded_chunks: int
    coverage: float


class DocumentListResponse(BaseModel):
    docs: list[DocumentResponse]


class SearchRequest(BaseModel):
    query: str = Field(min_length=1)
    top_k: int = Field(default=5, ge=1, le=50)


class SearchHit(BaseModel):
    doc_id: str
    chunk_id: str
    chunk_index: int
    score: float = Field(ge=0.0, le=1.0)
    preview: str
    filename: str | None = None
    metadata: dict[str, Any] | None = None


class SearchResponse(BaseModel):
    hits: list[SearchHit]
    total_found: int


class DocumentContentResponse(BaseModel):
    doc_id: str
    content: str
    filename: str | None = None
    metadata: dict[str, Any] | None = None


class DeleteResponse(BaseModel):
    status: Literal["ok"]
    document_id: str


__all__ = [
    "IngestRequest",
    "IngestResponse",
    "DocumentResponse",
    "DocumentListResponse",
    "SearchRequest",
    "SearchHit",
    "SearchResponse",
    "DocumentContentResponse",
    "DeleteResponse",
]
