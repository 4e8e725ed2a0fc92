"""Chunking utilities.

Sizes are expressed in approximate tokens. No tokenizer is involved: a token
is taken to be ``CHARS_PER_TOKEN`` characters, and the same ratio converts a
token budget into a word budget. Both are estimates, good enough to keep chunks
well inside embedding model input limits.
"""

from __future__ import annotations

import math

from pricing_docs.core.errors import ChunkingConfigError
from pricing_docs.ingest.types import ChunkPayload

CHARS_PER_TOKEN = 4
DEFAULT_CHUNK_SIZE = 1000
DEFAULT_OVERLAP = 150


def estimate_tokens(text: str) -> int:
    """Approximate token count: ``ceil(len(text) / CHARS_PER_TOKEN)``."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def words_for_tokens(tokens: int) -> int:
    """Approximate number of words that fill a ``tokens`` budget."""
    return math.ceil(tokens / CHARS_PER_TOKEN)


class Chunker:
    """Sliding word window with a fixed overlap between neighbours."""

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE, overlap: int = DEFAULT_OVERLAP) -> None:
        if chunk_size <= 0:
            raise ChunkingConfigError(f"chunk_size must be positive, got {chunk_size}")
        if overlap < 0:
            raise ChunkingConfigError(f"overlap must not be negative, got {overlap}")
        if overlap >= chunk_size:
            raise ChunkingConfigError(f"overlap ({overlap}) must be smaller than chunk_size ({chunk_size})")
        self.chunk_size = chunk_size
        self.overlap = overlap
        self.words_per_chunk = words_for_tokens(chunk_size)
        self.overlap_words = words_for_tokens(overlap)
        if self.overlap_words >= self.words_per_chunk:
            raise ChunkingConfigError(
                f"overlap of {self.overlap_words} words leaves no forward step "
                f"for {self.words_per_chunk}-word chunks"
            )

    @property
    def step(self) -> int:
        return self.words_per_chunk - self.overlap_words

    def split(self, text: str) -> list[ChunkPayload]:
        """Chunks of ``words_per_chunk`` words, each starting ``step`` words on.

        Any text with at least one word yields one chunk or more. Empty or
        whitespace-only text yields ``[]``; callers reject such text before
        chunking.
        """
        words = text.split()
        chunks: list[ChunkPayload] = []
        start = 0
        while start < len(words):
            end = start + self.words_per_chunk
            chunk_text = " ".join(words[start:end])
            if chunk_text.strip():
                index = len(chunks)
                chunks.append(
                    ChunkPayload(
                        index=index,
                        text=chunk_text,
                        token_count=estimate_tokens(chunk_text),
                        metadata={"section": f"Chunk {index + 1}"},
                    )
                )
            if end >= len(words):
                break
            start += self.step
        return chunks


def chunk_text(
    text: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_OVERLAP,
) -> list[ChunkPayload]:
    """Split text into overlapping chunks; see :class:`Chunker`."""
    return Chunker(chunk_size=chunk_size, overlap=overlap).split(text)


__all__ = [
    "CHARS_PER_TOKEN",
    "DEFAULT_CHUNK_SIZE",
    "DEFAULT_OVERLAP",
    "Chunker",
    "chunk_text",
    "estimate_tokens",
    "words_for_tokens",
]
