"""Exception hierarchy for the document pipeline.

    PricingDocsError
    +-- ConfigurationError
    |   +-- UnsupportedFileTypeError
    |   +-- UploadPathError
    |   +-- ChunkingConfigError
    |   +-- EmbeddingConfigError (also an EmbeddingError)
    +-- ExtractionError
    +-- EmbeddingError
    |   +-- EmbeddingServiceError
    |   +-- EmbeddingResponseError
    +-- NotFoundError
    |   +-- DocumentNotFoundError
    |   +-- ChunkNotFoundError
    +-- IngestCancelledError

Configuration, extraction and not-found errors are fatal to the operation that
raised them. Embedding errors are fatal on the query path but only skip the
affected chunk during ingestion.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from pricing_docs.ingest.types import IngestReport


class PricingDocsError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(PricingDocsError):
    """Missing credentials or an invalid setting; never retried."""


class UnsupportedFileTypeError(ConfigurationError):
    def __init__(self, file_type: str, path: Path | None = None) -> None:
        self.file_type = file_type
        self.path = path
        super().__init__(f"Unsupported file type: {file_type or '<none>'}")


class UploadPathError(ConfigurationError):
    """The file lies outside the upload root."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        super().__init__(f"File is outside the upload root: {self.path.name}")


class ChunkingConfigError(ConfigurationError):
    """Chunk size and overlap cannot produce a forward-moving window."""


class ExtractionError(PricingDocsError):
    """The file could not be turned into text."""

    def __init__(self, path: Path | str, file_type: str, reason: str) -> None:
        self.path = Path(path)
        self.file_type = file_type
        self.reason = reason
        super().__init__(f"Failed to extract {file_type} text from {self.path.name}: {reason}")


class EmbeddingError(PricingDocsError):
    """Base class for embedding service failures."""

    def __init__(self, message: str, provider_name: str | None = None) -> None:
        self.provider_name = provider_name
        super().__init__(message)

    def __str__(self) -> str:
        message = super().__str__()
        if self.provider_name:
            return f"[{self.provider_name}] {message}"
        return message


class EmbeddingConfigError(ConfigurationError, EmbeddingError):
    """Credentials are absent or were rejected by the service."""


class EmbeddingServiceError(EmbeddingError):
    """Transient failure: timeout, connection problem, rate limit or 5xx."""


class EmbeddingResponseError(EmbeddingError):
    """The service answered with something that is not a usable vector."""


class NotFoundError(PricingDocsError):
    pass


class DocumentNotFoundError(NotFoundError):
    def __init__(self, document_id: str) -> None:
        self.document_id = document_id
        super().__init__(f"Document not found or access denied: {document_id}")


class ChunkNotFoundError(NotFoundError):
    def __init__(self, chunk_id: str, document_id: str | None = None) -> None:
        self.chunk_id = chunk_id
        self.document_id = document_id
        super().__init__(f"Chunk not found: {chunk_id}")


class IngestCancelledError(PricingDocsError):
    """Raised between batches when the caller asked to stop."""

    def __init__(self, report: "IngestReport") -> None:
        self.report = report
        super().__init__(
            f"Indexing of {report.document_id} cancelled after "
            f"{report.chunks_embedded}/{report.chunks_total} chunks"
        )


__all__ = [
    "PricingDocsError",
    "ConfigurationError",
    "UnsupportedFileTypeError",
    "UploadPathError",
    "ChunkingConfigError",
    "ExtractionError",
    "EmbeddingError",
    "EmbeddingConfigError",
    "EmbeddingServiceError",
    "EmbeddingResponseError",
    "NotFoundError",
    "DocumentNotFoundError",
    "ChunkNotFoundError",
    "IngestCancelledError",
]
