"""Common ingestion data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True)
class ChunkPayload:
    """Chunk produced by the chunker prior to persistence."""

    index: int
    text: str
    token_count: int
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class IngestReport:
    """Outcome of indexing one document.

    ``chunks_embedded`` is the processed count: chunks that have a stored
    embedding. It can be lower than ``chunks_total`` when individual chunks
    failed, which callers should surface as degraded coverage.
    """

    document_id: str
    chunks_total: int = 0
    chunks_embedded: int = 0
    failed_indices: list[int] = field(default_factory=list)

    @property
    def coverage(self) -> float:
        if self.chunks_total == 0:
            return 0.0
        return self.chunks_embedded / self.chunks_total

    @property
    def degraded(self) -> bool:
        return self.chunks_embedded < self.chunks_total

    def to_dict(self) -> dict[str, Any]:
        return {
            "document_id": self.document_id,
            "chunks_total": self.chunks_total,
            "chunks_embedded": self.chunks_embedded,
            "failed_indices": sorted(self.failed_indices),
            "coverage": self.coverage,
        }


__all__ = ["ChunkPayload", "IngestReport"]
