"""FastAPI application setup for the document pipeline."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pricing_docs.api.dependencies import (
    get_app_settings,
    get_database,
    get_embedding_client,
    get_ingest_pipeline,
    get_retrieval_service,
)
from pricing_docs.api.routes_admin import router as admin_router
from pricing_docs.api.routes_ingest import router as ingest_router
from pricing_docs.api.routes_query import router as query_router
from pricing_docs.core.errors import (
    ConfigurationError,
    EmbeddingError,
    ExtractionError,
    IngestCancelledError,
    NotFoundError,
    PricingDocsError,
)
from pricing_docs.core.logging import configure_logging, get_logger

configure_logging()
logger = get_logger(__name__)

# Checked in order; the first matching class decides the status code.
_ERROR_STATUS: tuple[tuple[type[PricingDocsError], int], ...] = (
    (NotFoundError, 404),
    (EmbeddingError, 503),
    (ConfigurationError, 400),
    (ExtractionError, 422),
    (IngestCancelledError, 409),
)

app = FastAPI(
    title="Pricing Docs",
    version="0.1.0",
    docs_url="/docs-ui",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://127.0.0.1:5173",
        "http://localhost:5173",
    ],
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

app.include_router(ingest_router, prefix="", tags=["ingest"])
app.include_router(query_router, prefix="", tags=["query"])
app.include_router(admin_router, prefix="", tags=["admin"])


@app.exception_handler(PricingDocsError)
async def handle_pipeline_error(request: Request, exc: PricingDocsError) -> JSONResponse:
    status_code = next((code for cls, code in _ERROR_STATUS if isinstance(exc, cls)), 500)
    if status_code >= 500:
        logger.error("Request %s failed: %s", request.url.path, exc)
    return JSONResponse(status_code=status_code, content={"error": str(exc)})


@app.exception_handler(ValueError)
async def handle_value_error(request: Request, exc: ValueError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.on_event("startup")
async def startup() -> None:
    """Warm up core singletons on startup."""
    get_app_settings()
    get_database()
    get_embedding_client()
    get_ingest_pipeline()
    get_retrieval_service()


@app.get("/health", tags=["admin"])
def health() -> dict[str, bool]:
    """Simple liveness check."""
    return {"ok": True}
