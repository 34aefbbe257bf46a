"""
Cosine similarity ranking of stored chunks against a query vector
"""
from typing import List, NamedTuple, Sequence

import numpy as np

from ..schemas.knowledge import Chunk


DEFAULT_TOP_K = 5


class ScoredChunk(NamedTuple):
    chunk: Chunk
    score: float


def cosine_similarity(vec_a: Sequence[float], vec_b: Sequence[float]) -> float:
    """
    Cosine similarity of two vectors

    Returns NaN when the vectors differ in length, are empty, or either
    has zero norm.
    """
    a = np.asarray(vec_a, dtype="float64")
    b = np.asarray(vec_b, dtype="float64")
    if a.shape != b.shape or a.size == 0:
        return float("nan")

    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return float("nan")
    return float(np.dot(a, b) / (norm_a * norm_b))


def similarity_scores(query_vector: Sequence[float], chunks: Sequence[Chunk]) -> np.ndarray:
    """
    Cosine similarity of the query against every chunk, in storage order

    Chunks whose embedding length differs from the query, and zero-norm
    vectors, score NaN.
    """
    scores = np.full(len(chunks), np.nan, dtype="float64")
    query = np.asarray(query_vector, dtype="float64")
    query_norm = np.linalg.norm(query) if query.size else 0.0
    if query_norm == 0:
        return scores

    rows = [i for i, chunk in enumerate(chunks) if len(chunk.embedding) == query.size]
    if not rows:
        return scores

    matrix = np.asarray([chunks[i].embedding for i in rows], dtype="float64")
    norms = np.linalg.norm(matrix, axis=1)
    with np.errstate(divide="ignore", invalid="ignore"):
        row_scores = np.dot(matrix, query) / (norms * query_norm)
    row_scores[norms == 0] = np.nan
    scores[rows] = row_scores
    return scores


def rank_chunks(query_vector: Sequence[float], chunks: Sequence[Chunk], k: int = DEFAULT_TOP_K) -> List[ScoredChunk]:
    """Return the k chunks most similar to the query vector, best first"""
    if k < 1 or not chunks:
        return []
    scores = similarity_scores(query_vector, chunks)
    # NaN sorts last; the stable sort keeps storage order for ties
    sort_keys = np.where(np.isnan(scores), np.inf, -scores)
    order = np.argsort(sort_keys, kind="stable")[:k]
    return [ScoredChunk(chunks[int(i)], float(scores[i])) for i in order]


def top_k_content(query_vector: Sequence[float], chunks: Sequence[Chunk], k: int = DEFAULT_TOP_K) -> str:
    """Concatenate the content of the top k chunks with blank lines"""
    return "\n\n".join(scored.chunk.content for scored in rank_chunks(query_vector, chunks, k))
