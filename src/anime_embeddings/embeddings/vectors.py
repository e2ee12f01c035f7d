"""
Vector Math

Pure functions for building and comparing item vectors. Everything here is
deterministic: the same inputs always produce bit-identical outputs.
"""

from __future__ import annotations

from collections import Counter
from typing import Collection, Dict, Iterable, List, Sequence, Tuple

import numpy as np

from .models import IdfSnapshot, SimilarityResult


def term_frequencies(tokens: Sequence[str]) -> Dict[str, float]:
    """Occurrence count of each term divided by the document length."""
    if not tokens:
        return {}

    total = len(tokens)
    return {term: count / total for term, count in Counter(tokens).items()}


def description_vector(
    tokens: Sequence[str],
    snapshot: IdfSnapshot,
    dimensions: int,
) -> List[float]:
    """
    TF-IDF weights over the first ``dimensions`` terms of the term universe.

    Document terms outside the window are ignored; window terms absent from
    the document are 0.
    """
    if not tokens:
        return []

    tf = term_frequencies(tokens)
    return [
        tf.get(term, 0.0) * snapshot.scores.get(term, 0.0)
        for term in snapshot.window(dimensions)
    ]


def categorical_vector(
    tag_ids: Collection[str],
    known_tags: Sequence[str],
) -> List[float]:
    """One-hot encoding of ``tag_ids`` over ``known_tags``."""
    present = set(tag_ids)
    return [1.0 if tag in present else 0.0 for tag in known_tags]


def combine_vectors(
    desc: Sequence[float],
    cat: Sequence[float],
    desc_weight: float,
    cat_weight: float,
) -> List[float]:
    """Weighted element-wise sum; the shorter vector is padded with zeros."""
    size = max(len(desc), len(cat))
    if size == 0:
        return []

    a = np.zeros(size, dtype=np.float64)
    b = np.zeros(size, dtype=np.float64)
    a[: len(desc)] = desc
    b[: len(cat)] = cat

    return (a * desc_weight + b * cat_weight).tolist()


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine of the angle between ``a`` and ``b``.

    Returns 0 for empty vectors, zero-norm vectors and vectors of different
    lengths.
    """
    if len(a) == 0 or len(a) != len(b):
        return 0.0

    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)

    norm = float(np.linalg.norm(va)) * float(np.linalg.norm(vb))
    if norm == 0.0:
        return 0.0

    # Clip rounding noise so self-similarity never exceeds 1.
    return float(np.clip(np.dot(va, vb) / norm, -1.0, 1.0))


def rank_by_similarity(
    query: Sequence[float],
    candidates: Iterable[Tuple[str, Sequence[float]]],
    threshold: float,
) -> List[SimilarityResult]:
    """
    Score every candidate against ``query`` and keep those above ``threshold``.

    Results are sorted by descending similarity; ties keep candidate order.
    """
    results = []
    for item_id, vector in candidates:
        similarity = cosine_similarity(query, vector)
        if similarity > threshold:
            results.append(SimilarityResult(item_id=item_id, similarity=similarity))

    results.sort(key=lambda r: r.similarity, reverse=True)
    return results
