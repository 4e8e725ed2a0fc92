"""Tests for chunker."""

import pytest

from pricing_docs.core.errors import ChunkingConfigError
from pricing_docs.ingest.chunker import Chunker, chunk_text, estimate_tokens, words_for_tokens


def test_chunk_indices_are_contiguous_and_cover_all_words(hundred_words: str) -> None:
    chunks = chunk_text(hundred_words, chunk_size=40, overlap=8)
    assert [chunk.index for chunk in chunks] == list(range(len(chunks)))
    assert chunks[0].text.split()[0] == "w0"
    assert chunks[-1].text.split()[-1] == "w99"
    covered = {word for chunk in chunks for word in chunk.text.split()}
    assert covered == set(hundred_words.split())


def test_neighbouring_chunks_share_overlap_words(hundred_words: str) -> None:
    chunker = Chunker(chunk_size=40, overlap=8)
    chunks = chunker.split(hundred_words)
    assert chunker.words_per_chunk == 10
    assert chunker.overlap_words == 2
    for previous, current in zip(chunks, chunks[1:]):
        assert previous.text.split()[-2:] == current.text.split()[:2]


def test_words_keep_document_order() -> None:
    text = "alpha beta gamma delta epsilon zeta eta theta"
    chunks = chunk_text(text, chunk_size=12, overlap=0)
    assert " ".join(chunk.text for chunk in chunks) == text


def test_short_text_yields_single_chunk() -> None:
    chunks = chunk_text("Just a few words here.")
    assert len(chunks) == 1
    assert chunks[0].text == "Just a few words here."
    assert chunks[0].metadata == {"section": "Chunk 1"}


def test_whitespace_only_text_yields_no_chunks() -> None:
    assert chunk_text("  \n\t  ") == []


def test_window_stops_at_end_of_text() -> None:
    chunks = chunk_text(" ".join(f"w{i}" for i in range(12)), chunk_size=40, overlap=8)
    assert len(chunks) == 2
    assert chunks[1].text.split() == [f"w{i}" for i in range(8, 12)]


def test_token_estimate_uses_four_characters_per_token() -> None:
    assert estimate_tokens("") == 0
    assert estimate_tokens("abcd") == 1
    assert estimate_tokens("abcde") == 2
    assert words_for_tokens(1000) == 250
    assert words_for_tokens(150) == 38
    chunk = chunk_text("pricing tiers")[0]
    assert chunk.token_count == estimate_tokens("pricing tiers")


@pytest.mark.parametrize(
    ("chunk_size", "overlap"),
    [(0, 0), (-5, 0), (100, -1), (100, 100), (100, 150), (4, 1)],
)
def test_invalid_sizes_are_rejected(chunk_size: int, overlap: int) -> None:
    with pytest.raises(ChunkingConfigError):
        Chunker(chunk_size=chunk_size, overlap=overlap)
