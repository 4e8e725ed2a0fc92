"""Shared FastAPI dependencies."""

from __future__ import annotations

from functools import lru_cache

from fastapi import Header

from pricing_docs.core.config import Settings, get_settings
from pricing_docs.db.sqlite import SQLiteDatabase
from pricing_docs.db.store import DocumentStore
from pricing_docs.ingest.embeddings import EmbeddingClient, build_embedding_client
from pricing_docs.ingest.pipeline import IngestPipeline
from pricing_docs.retrieval import RetrievalService

_DB: SQLiteDatabase | None = None
_EMBEDDER: EmbeddingClient | None = None
_PIPELINE: IngestPipeline | None = None
_RETRIEVAL: RetrievalService | None = None


@lru_cache(maxsize=1)
def get_app_settings() -> Settings:
    return get_settings()


def get_database() -> SQLiteDatabase:
    global _DB
    if _DB is None:
        db = SQLiteDatabase(get_app_settings().db_path)
        db.ensure_schema()
        _DB = db
    return _DB


def get_store() -> DocumentStore:
    return DocumentStore(get_database())


def get_embedding_client() -> EmbeddingClient:
    global _EMBEDDER
    if _EMBEDDER is None:
        _EMBEDDER = build_embedding_client(get_app_settings())
    return _EMBEDDER


def get_ingest_pipeline() -> IngestPipeline:
    global _PIPELINE
    if _PIPELINE is None:
        _PIPELINE = IngestPipeline(
            store=get_store(),
            settings=get_app_settings(),
            embedder=get_embedding_client(),
        )
    return _PIPELINE


def get_retrieval_service() -> RetrievalService:
    global _RETRIEVAL
    if _RETRIEVAL is None:
        _RETRIEVAL = RetrievalService(
            store=get_store(),
            embedder=get_embedding_client(),
            settings=get_app_settings(),
        )
    return _RETRIEVAL


def get_owner_id(x_owner_id: int = Header(..., alias="X-Owner-Id")) -> int:
    """Owner identity as resolved by the surrounding application."""
    return x_owner_id


def reset_dependencies() -> None:
    """Drop cached singletons, closing the database connection."""
    global _DB, _EMBEDDER, _PIPELINE, _RETRIEVAL
    if _DB is not None:
        _DB.close()
    get_app_settings.cache_clear()
    get_settings.cache_clear()
    _DB = None
    _EMBEDDER = None
    _PIPELINE = None
    _RETRIEVAL = None


__all__ = [
    "get_app_settings",
    "get_database",
    "get_store",
    "get_embedding_client",
    "get_ingest_pipeline",
    "get_retrieval_service",
    "get_owner_id",
    "reset_dependencies",
]
