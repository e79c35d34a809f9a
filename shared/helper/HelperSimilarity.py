"""Brute-force cosine similarity ranking over in-memory chunks."""

import math
from typing import Iterable, Sequence

from shared.models.knowledge import KnowledgeChunk, SearchResult


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two vectors.

    Args:
        a (Sequence[float]): First vector.
        b (Sequence[float]): Second vector.

    Returns:
        float: Similarity in [-1, 1]; 0.0 if the lengths differ or either vector has zero norm.
    """
    if len(a) != len(b):
        return 0.0

    dot = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for x, y in zip(a, b):
        dot += x * y
        norm_a += x * x
        norm_b += y * y

    denominator = math.sqrt(norm_a) * math.sqrt(norm_b)
    if denominator == 0:
        return 0.0
    # clamp float drift, e.g. 1.0000000000000002 for identical vectors
    return max(-1.0, min(1.0, dot / denominator))


def search(query_embedding: Sequence[float], chunks: Iterable[KnowledgeChunk], top_k: int) -> list[SearchResult]:
    """Rank chunks against a query embedding.

    Chunks without an embedding, or with an embedding of a different length than
    the query, are excluded. The remaining chunks are sorted by similarity
    descending; equal scores keep their input order. The first top_k are kept,
    then anything with similarity <= 0 is dropped.

    Args:
        query_embedding (Sequence[float]): The query vector.
        chunks (Iterable[KnowledgeChunk]): Candidate chunks.
        top_k (int): Maximum number of results.

    Returns:
        list[SearchResult]: Ranked results with a blank document_title.
    """
    if top_k <= 0:
        return []

    scored: list[tuple[KnowledgeChunk, float]] = []
    for chunk in chunks:
        if chunk.embedding is None or len(chunk.embedding) != len(query_embedding):
            continue
        scored.append((chunk, cosine_similarity(query_embedding, chunk.embedding)))

    # sorted() is stable, ties stay in input order
    ranked = sorted(scored, key=lambda pair: pair[1], reverse=True)[:top_k]
    return [
        SearchResult(chunk=chunk, similarity=similarity)
        for chunk, similarity in ranked
        if similarity > 0
    ]
