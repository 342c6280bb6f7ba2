"""
Similarity engine for co-expression vectors.

Computes every descriptive metric the API reports from two equal-length,
index-aligned vectors. Degenerate inputs (empty, zero-variance, zero-norm)
resolve to 0 for the affected field and never raise.

Binarization marks a category "active" when its value is strictly above the
vector's own threshold. Both threshold policies (median and mean) stay
selectable so earlier results remain reproducible.
"""

from __future__ import annotations

import math
from typing import Sequence, Union

import numpy as np

from ..core.models import SimilarityMetrics
from ..core.types import BinarizationStrategy
from .vectors import CategoryVector

VectorLike = Union[CategoryVector, np.ndarray, Sequence[float]]

DEFAULT_TOP_K = 10


def _as_array(vector: VectorLike) -> np.ndarray:
    if isinstance(vector, CategoryVector):
        return np.asarray(vector.values, dtype=float)
    return np.asarray(vector, dtype=float).ravel()


def _finite(value: float) -> float:
    """Collapse NaN/inf to 0."""
    value = float(value)
    return value if math.isfinite(value) else 0.0


def _clip(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _unit(v: np.ndarray) -> np.ndarray | None:
    """Scale ``v`` to unit length, dividing by its peak first so large values do not overflow."""
    peak = float(np.max(np.abs(v))) if v.size else 0.0
    if peak == 0:
        return None
    scaled = v / peak
    return scaled / np.linalg.norm(scaled)


def pearson_correlation(a: np.ndarray, b: np.ndarray) -> float:
    """Centered cosine; exactly 0 when either input is constant."""
    if a.size == 0 or np.ptp(a) == 0 or np.ptp(b) == 0:
        return 0.0
    ua = _unit(a - a.mean())
    ub = _unit(b - b.mean())
    if ua is None or ub is None:
        return 0.0
    return _clip(_finite(np.dot(ua, ub)), -1.0, 1.0)


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """Dot product of the unit vectors; 0 when either norm is 0."""
    ua = _unit(a)
    ub = _unit(b)
    if ua is None or ub is None:
        return 0.0
    return _clip(_finite(np.dot(ua, ub)), -1.0, 1.0)


def binarize(
    values: np.ndarray,
    strategy: BinarizationStrategy = BinarizationStrategy.median,
) -> np.ndarray:
    """Boolean mask of values strictly above the vector's own threshold."""
    if values.size == 0:
        return np.zeros(0, dtype=bool)
    if BinarizationStrategy(strategy) is BinarizationStrategy.mean:
        threshold = float(np.mean(values))
    else:
        threshold = float(np.median(values))
    return values > threshold


def top_k_indices(values: np.ndarray, k: int) -> set[int]:
    """Indices of the k largest values, ties broken by ascending index."""
    if k <= 0 or values.size == 0:
        return set()
    order = np.argsort(-values, kind="stable")
    return {int(i) for i in order[:k]}


def compute_similarity(
    v1: VectorLike,
    v2: VectorLike,
    binarization: BinarizationStrategy = BinarizationStrategy.median,
    top_k: int = DEFAULT_TOP_K,
) -> SimilarityMetrics:
    """
    Compute similarity metrics between two aligned vectors.

    Args:
        v1: First vector
        v2: Second vector, same length and category order as v1
        binarization: Threshold policy for jaccard / overlap
        top_k: Number of leading positions compared for top-k agreement

    Returns:
        SimilarityMetrics; all zeros for empty vectors

    Raises:
        ValueError: If the vectors differ in length or category order
    """
    if (
        isinstance(v1, CategoryVector)
        and isinstance(v2, CategoryVector)
        and v1.categories != v2.categories
    ):
        raise ValueError("Vectors must share the same category order")

    a = _as_array(v1)
    b = _as_array(v2)
    if a.shape != b.shape:
        raise ValueError(f"Vector length mismatch: {a.size} != {b.size}")

    if a.size == 0:
        return SimilarityMetrics()

    active_a = binarize(a, binarization)
    active_b = binarize(b, binarization)
    intersection = int(np.count_nonzero(active_a & active_b))
    union = int(np.count_nonzero(active_a | active_b))

    return SimilarityMetrics(
        pearson_corr=pearson_correlation(a, b),
        cosine_sim=cosine_similarity(a, b),
        jaccard_index=_finite(intersection / union) if union else 0.0,
        l2_norm_diff=_finite(np.linalg.norm(a - b)),
        overlap_count=intersection,
        shared_top_k_count=len(top_k_indices(a, top_k) & top_k_indices(b, top_k)),
        common_types=int(a.size),
    )
