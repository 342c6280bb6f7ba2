"""
Feature combination across the tissue and cell-type axes.

The combined metrics are computed directly on the concatenation of the
tissue and cell vectors. Averaging the per-axis results is kept as an
opt-in strategy for reproducing older rankings.
"""

from __future__ import annotations

import numpy as np

from ..core.models import FeatureBundle, SimilarityMetrics
from ..core.types import BinarizationStrategy, CombineStrategy
from .metrics import DEFAULT_TOP_K, VectorLike, _as_array, compute_similarity

_FLOAT_FIELDS = ("pearson_corr", "cosine_sim", "jaccard_index", "l2_norm_diff")
_COUNT_FIELDS = ("overlap_count", "shared_top_k_count", "common_types")


def average_metrics(first: SimilarityMetrics, second: SimilarityMetrics) -> SimilarityMetrics:
    """Elementwise mean of the float metrics; counts are summed."""
    values: dict[str, float | int] = {
        name: (getattr(first, name) + getattr(second, name)) / 2 for name in _FLOAT_FIELDS
    }
    values.update(
        {name: getattr(first, name) + getattr(second, name) for name in _COUNT_FIELDS}
    )
    return SimilarityMetrics(**values)


def combine_features(
    tissue1: VectorLike,
    tissue2: VectorLike,
    cell1: VectorLike,
    cell2: VectorLike,
    strategy: CombineStrategy = CombineStrategy.concatenate,
    binarization: BinarizationStrategy = BinarizationStrategy.median,
    top_k: int = DEFAULT_TOP_K,
) -> FeatureBundle:
    """
    Build the tissue / cell / combined feature bundle for one pair.

    Args:
        tissue1, tissue2: Aligned tissue vectors
        cell1, cell2: Aligned cell-type vectors
        strategy: How `combined` is derived
        binarization: Threshold policy passed to the engine
        top_k: Top-k size passed to the engine

    Returns:
        FeatureBundle with all three metric sets
    """
    tissue = compute_similarity(tissue1, tissue2, binarization, top_k)
    cell = compute_similarity(cell1, cell2, binarization, top_k)

    if CombineStrategy(strategy) is CombineStrategy.average:
        combined = average_metrics(tissue, cell)
    else:
        joined1 = np.concatenate([_as_array(tissue1), _as_array(cell1)])
        joined2 = np.concatenate([_as_array(tissue2), _as_array(cell2)])
        combined = compute_similarity(joined1, joined2, binarization, top_k)

    return FeatureBundle(tissue=tissue, cell=cell, combined=combined)
