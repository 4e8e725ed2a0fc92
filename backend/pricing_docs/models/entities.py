"""Internal dataclasses representing persisted entities."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import orjson


@dataclass(slots=True)
class Document:
    id: str
    owner_id: int
    filename: str
    original_name: str
    file_type: str
    storage_path: str
    size_bytes: int
    created_at: datetime

    @property
    def display_name(self) -> str:
        return self.original_name or self.filename

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Document":
        return cls(
            id=row["id"],
            owner_id=row["owner_id"],
            filename=row["filename"],
            original_name=row["original_name"],
            file_type=row["file_type"],
            storage_path=row["storage_path"],
            size_bytes=row["size_bytes"],
            created_at=ms_to_datetime(row["created_at"]),
        )


@dataclass(slots=True)
class DocumentSummary:
    """A document plus how much of it is searchable."""

    document: Document
    chunk_count: int
    embedded_count: int

    @property
    def coverage(self) -> float:
        if self.chunk_count == 0:
            return 0.0
        return self.embedded_count / self.chunk_count


@dataclass(slots=True)
class Chunk:
    id: str
    document_id: str
    chunk_index: int
    content: str
    token_count: int
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Chunk":
        return cls(
            id=row["id"],
            document_id=row["document_id"],
            chunk_index=row["chunk_index"],
            content=row["content"],
            token_count=row["token_count"],
            metadata=orjson.loads(row["meta_json"]) if row["meta_json"] else {},
            created_at=ms_to_datetime(row["created_at"]),
        )


@dataclass(slots=True)
class Embedding:
    chunk_id: str
    model: str
    dim: int
    vector: bytes
    created_at: datetime


def ms_to_datetime(value: Any) -> datetime:
    if value is None:
        return datetime.now(timezone.utc)
    return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)


__all__ = ["Document", "DocumentSummary", "Chunk", "Embedding", "ms_to_datetime"]
