"""Cosine similarity scoring over stored vectors.

This is a linear scan, not an index: every candidate vector is compared with
the query. Relevance scores map cosine similarity from ``[-1, 1]`` onto
``[0, 1]`` with ``(cosine + 1) / 2``.
"""

from __future__ import annotations

import heapq
import math
from dataclasses import dataclass
from typing import Generic, Sequence, TypeVar

T = TypeVar("T")


@dataclass(slots=True)
class ScoredItem(Generic[T]):
    item: T
    similarity: float

    @property
    def score(self) -> float:
        return relevance_score(self.similarity)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between two vectors; 0.0 if either is all zeros."""
    if len(a) != len(b):
        raise ValueError(f"Vector dimension mismatch: {len(a)} != {len(b)}")
    dot = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for x, y in zip(a, b):
        dot += x * y
        norm_a += x * x
        norm_b += y * y
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    value = dot / (math.sqrt(norm_a) * math.sqrt(norm_b))
    return max(-1.0, min(1.0, value))


def relevance_score(similarity: float) -> float:
    return (similarity + 1.0) / 2.0


class SimilarityRanker(Generic[T]):
    """Keep the best ``top_k`` candidates at or above ``min_similarity``."""

    def __init__(self, query: Sequence[float], top_k: int, min_similarity: float = -1.0) -> None:
        self.query = list(query)
        self.top_k = top_k
        self.min_similarity = min_similarity
        self.matched = 0
        self._heap: list[tuple[float, int, ScoredItem[T]]] = []
        self._seen = 0

    def offer(self, item: T, vector: Sequence[float]) -> ScoredItem[T] | None:
        """Score one candidate; returns it if it clears the threshold."""
        similarity = cosine_similarity(self.query, vector)
        if similarity < self.min_similarity:
            return None
        self.matched += 1
        scored = ScoredItem(item=item, similarity=similarity)
        # Earlier offers win ties: the sequence number is negated for the min-heap.
        entry = (similarity, -self._seen, scored)
        self._seen += 1
        if len(self._heap) < self.top_k:
            heapq.heappush(self._heap, entry)
        elif entry[:2] > self._heap[0][:2]:
            heapq.heapreplace(self._heap, entry)
        return scored

    def results(self) -> list[ScoredItem[T]]:
        ordered = sorted(self._heap, key=lambda entry: entry[:2], reverse=True)
        return [entry[2] for entry in ordered]


__all__ = ["ScoredItem", "SimilarityRanker", "cosine_similarity", "relevance_score"]
