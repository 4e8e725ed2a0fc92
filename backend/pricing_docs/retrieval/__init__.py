"""Retrieval components."""

from .search import DocumentContent, RetrievalHit, RetrievalService, SearchResult
from .similarity import SimilarityRanker, cosine_similarity, relevance_score

__all__ = [
    "RetrievalService",
    "RetrievalHit",
    "SearchResult",
    "DocumentContent",
    "SimilarityRanker",
    "cosine_similarity",
    "relevance_score",
]
