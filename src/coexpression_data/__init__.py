"""
Coexpression Data

Compares two genes (typically a receptor and a ligand) by their expression
across anatomical tissues and single-cell types, and ranks candidate pairs
by similarity.

Key Features:
- Aligned tissue / cell-type vectors with deterministic category order
- Pearson, cosine, jaccard, L2, overlap and shared top-k metrics
- Combined metrics over concatenated tissue + cell-type vectors
- Paginated, cancellable batch ranking with progress events
- Tissue -> cell type (and reverse) groupings for inspection

Usage:
    from coexpression_data import compute_similarity, combine_features

    metrics = compute_similarity([1, 2, 3, 4], [1, 2, 3, 4])
    metrics.pearson_corr  # 1.0
"""

from .aggregators import flatten_groups, format_category_label, group_observations
from .similarity import (
    CategoryVector,
    align_vectors,
    build_vectors,
    combine_features,
    compute_similarity,
)
from .services import process_pairs, run_batch

__version__ = "1.0.0"

__all__ = [
    # Similarity
    "CategoryVector",
    "align_vectors",
    "build_vectors",
    "combine_features",
    "compute_similarity",
    # Aggregation
    "flatten_groups",
    "format_category_label",
    "group_observations",
    # Ranking
    "process_pairs",
    "run_batch",
]
