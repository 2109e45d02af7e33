"""Chunk selection strategies and statistics for token-bounded document text."""

from __future__ import annotations

import math
import re

from pydantic import BaseModel

_WHITESPACE = re.compile(r"\s+")

TOKENS_PER_WORD = 1.3


class ChunkStats(BaseModel):
    total_chunks: int
    total_characters: int
    total_words: int
    estimated_tokens: int
    average_chunk_size: int
    largest_chunk: int
    smallest_chunk: int


def clean_chunk_content(content: object) -> str:
    """Collapse whitespace and strip; non-strings become empty text."""
    if not isinstance(content, str):
        return ""
    return _WHITESPACE.sub(" ", content).strip()


def count_words(text: str) -> int:
    return len(text.split())


def estimate_tokens(texts: list[str]) -> int:
    return math.ceil(sum(count_words(t) for t in texts) * TOKENS_PER_WORD)


def select_chunks(chunks: list[str], strategy: str, max_chunks: int) -> list[str]:
    """Pick the chunks to send to the model.

    - ``first``: the opening chunks, never more than three
    - ``summary``: first, middle and last chunk
    - ``all``: everything up to ``max_chunks``
    - ``balanced`` (default): evenly spaced across the document
    """
    total = len(chunks)
    max_chunks = max(1, max_chunks)

    if strategy == "first":
        return chunks[: min(max_chunks, 3)]

    if strategy == "summary":
        if total <= 3:
            return list(chunks)
        return [chunks[0], chunks[total // 2], chunks[total - 1]]

    if strategy == "all":
        return chunks[:max_chunks]

    if total <= max_chunks:
        return list(chunks)
    step = total // max_chunks
    indexes: list[int] = []
    for i in range(max_chunks):
        index = min(i * step, total - 1)
        if index not in indexes:
            indexes.append(index)
    return [chunks[i] for i in indexes]


def chunk_stats(chunks: list[str]) -> ChunkStats | None:
    if not chunks:
        return None
    sizes = [len(c) for c in chunks]
    return ChunkStats(
        total_chunks=len(chunks),
        total_characters=sum(sizes),
        total_words=sum(count_words(c) for c in chunks),
        estimated_tokens=estimate_tokens(chunks),
        average_chunk_size=round(sum(sizes) / len(chunks)),
        largest_chunk=max(sizes),
        smallest_chunk=min(sizes),
    )


def join_sections(chunks: list[str]) -> str:
    """Join chunk bodies with ``[Section i/N]`` headers."""
    total = len(chunks)
    return "\n\n---\n\n".join(f"[Section {i}/{total}]\n{body}" for i, body in enumerate(chunks, 1))
