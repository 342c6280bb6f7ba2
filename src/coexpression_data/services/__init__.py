"""
Services for the co-expression API.

- ranking: paginated, cancellable batch scoring of gene pairs
- pairs: compare-mode and curated pair sources
- stratified: per-tissue / per-cell-type correlation analysis
"""

from .pairs import cartesian_pairs, resolve_pairs, split_identifiers
from .ranking import PairState, paginate_pairs, process_pairs, run_batch
from .stratified import analyze_pair, stratum_correlations

__all__ = [
    "PairState",
    "analyze_pair",
    "cartesian_pairs",
    "paginate_pairs",
    "process_pairs",
    "resolve_pairs",
    "run_batch",
    "split_identifiers",
    "stratum_correlations",
]
