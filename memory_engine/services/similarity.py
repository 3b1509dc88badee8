"""
Brute-force cosine ranking of stored memory vectors against a query vector.

There is no index here: callers pass a bounded, recency-ordered window of
candidates and every candidate is scored.
"""

from typing import Iterable, List, Sequence, Tuple

import numpy as np

from ..models.core import ScoredMemory

DEFAULT_THRESHOLD = 0.65
DEFAULT_TOP_K = 5


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between two vectors.

    Returns 0.0 when either vector is empty, the lengths differ, either
    norm is zero or an entry is not numeric. Never raises.
    """
    if a is None or b is None or len(a) == 0 or len(b) == 0 or len(a) != len(b):
        return 0.0

    try:
        vector_a = np.asarray(a, dtype=np.float64)
        vector_b = np.asarray(b, dtype=np.float64)
    except (TypeError, ValueError):
        return 0.0

    if vector_a.ndim != 1 or vector_b.ndim != 1:
        return 0.0

    norm_a = np.linalg.norm(vector_a)
    norm_b = np.linalg.norm(vector_b)
    if norm_a == 0 or norm_b == 0 or not np.isfinite(norm_a * norm_b):
        return 0.0

    score = float(np.dot(vector_a, vector_b) / (norm_a * norm_b))
    return float(np.clip(score, -1.0, 1.0))


def rank(query_vector: Sequence[float],
         candidates: Iterable[Tuple[str, Sequence[float]]],
         threshold: float = DEFAULT_THRESHOLD,
         top_k: int = DEFAULT_TOP_K) -> List[ScoredMemory]:
    """Score candidates against the query and keep the best ones.

    Args:
        query_vector: Embedding of the query
        candidates: (content, vector) pairs, most recent first
        threshold: Scores must be strictly greater than this to survive
        top_k: Maximum number of results

    Returns:
        Surviving memories sorted by descending score; equal scores keep candidate order
    """
    scored = []
    for content, vector in candidates:
        if not isinstance(vector, (list, tuple)):
            continue
        score = cosine_similarity(query_vector, vector)
        if score > threshold:
            scored.append(ScoredMemory(content=content, score=score))

    # list.sort is stable, so ties stay in recency order
    scored.sort(key=lambda m: m.score, reverse=True)
    return scored[:max(top_k, 0)]
