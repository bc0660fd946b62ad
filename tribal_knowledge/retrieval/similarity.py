"""Cosine similarity and stable top-K ranking of transcript chunks."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

from tribal_knowledge.ingestion.models import Chunk


@dataclass
class RankedChunk:
    """A chunk paired with its similarity to the question."""

    chunk: Chunk
    similarity: float


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Return ``dot(a, b) / (|a| * |b|)``.

    Returns NaN when either vector has zero magnitude.

    Raises:
        ValueError: The vectors differ in length.
    """
    if len(a) != len(b):
        raise ValueError(f"Vector lengths differ: {len(a)} != {len(b)}")
    dot = sum(x * y for x, y in zip(a, b))
    magnitude = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    if magnitude == 0:
        return math.nan
    return dot / magnitude


def _sort_key(item: RankedChunk) -> float:
    # NaN means "no similarity" and must sort below every real score
    return -math.inf if math.isnan(item.similarity) else item.similarity


def rank_chunks(
    query_vector: Sequence[float],
    chunks: Sequence[Chunk],
    chunk_vectors: Sequence[Sequence[float]],
    top_k: int | None = None,
) -> list[RankedChunk]:
    """Rank *chunks* by similarity to *query_vector*, highest first.

    Ties keep their original order. With *top_k*, at most that many chunks
    are returned.
    """
    ranked = [
        RankedChunk(chunk=chunk, similarity=cosine_similarity(query_vector, vector))
        for chunk, vector in zip(chunks, chunk_vectors, strict=True)
    ]
    # sorted() is stable under reverse=True, so equal scores keep input order
    ranked = sorted(ranked, key=_sort_key, reverse=True)
    return ranked if top_k is None else ranked[:top_k]
