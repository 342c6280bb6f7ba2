"""
Co-expression similarity module.

Builds aligned category vectors, computes descriptive similarity metrics
(pearson, cosine, jaccard, L2, overlap, shared top-k) and combines the
tissue and cell-type axes into one feature bundle.
"""

from .combiner import average_metrics, combine_features
from .metrics import compute_similarity
from .vectors import CategoryVector, align_vectors, build_vectors, collapse_records

__all__ = [
    "CategoryVector",
    "align_vectors",
    "average_metrics",
    "build_vectors",
    "collapse_records",
    "combine_features",
    "compute_similarity",
]
