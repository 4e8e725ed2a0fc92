"""Prometheus metrics instrumentation."""

from __future__ import annotations

from fastapi import Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry()

DOCUMENTS_INGESTED = Counter(
    "pdocs_documents_ingested_total",
    "Documents indexed, by operation and outcome",
    labelnames=("operation", "outcome"),
    registry=REGISTRY,
)

CHUNKS_EMBEDDED = Counter(
    "pdocs_chunks_embedded_total",
    "Chunks whose embedding was generated and stored",
    registry=REGISTRY,
)

CHUNK_FAILURES = Counter(
    "pdocs_chunk_failures_total",
    "Chunks skipped because embedding or persistence failed",
    labelnames=("reason",),
    registry=REGISTRY,
)

INGEST_DURATION = Histogram(
    "pdocs_ingest_duration_seconds",
    "Time spent indexing a single document",
    labelnames=("operation",),
    registry=REGISTRY,
)

SEARCH_LATENCY = Histogram(
    "pdocs_search_latency_seconds",
    "Latency of similarity searches",
    registry=REGISTRY,
)

INDEX_SIZE = Gauge(
    "pdocs_index_chunks",
    "Number of chunks stored",
    registry=REGISTRY,
)


def metrics_response() -> Response:
    """Return Prometheus metrics as an HTTP response."""
    payload = generate_latest(REGISTRY)
    return Response(content=payload, media_type=CONTENT_TYPE_LATEST)


__all__ = [
    "REGISTRY",
    "DOCUMENTS_INGESTED",
    "CHUNKS_EMBEDDED",
    "CHUNK_FAILURES",
    "INGEST_DURATION",
    "SEARCH_LATENCY",
    "INDEX_SIZE",
    "metrics_response",
]
