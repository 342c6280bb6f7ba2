"""
Stratified co-expression analysis.

Fixes one category on one axis (a single tissue, or a single cell type)
and compares the two genes across the other axis inside that stratum.
Only categories where both genes were observed contribute, and a stratum
needs at least two such categories to be scored.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Optional, Sequence

import numpy as np

from ..core.errors import EntityNotFoundError
from ..core.models import ObservedExpression, StratifiedAnalysisResult, StratumCorrelation
from ..core.types import AnalysisMode, Axis, BinarizationStrategy, DuplicateReducer
from ..similarity.metrics import DEFAULT_TOP_K, compute_similarity
from ..similarity.vectors import REDUCERS, CategoryVector

logger = logging.getLogger(__name__)

MIN_STRATUM_POINTS = 2

_STRATUM_AXIS: dict[AnalysisMode, Axis] = {
    AnalysisMode.tissue_specific: Axis.tissue,
    AnalysisMode.cell_specific: Axis.cell,
}


def _stratify(
    records: Sequence[ObservedExpression],
    stratum_axis: Axis,
    inner_axis: Axis,
    reducer: DuplicateReducer,
) -> dict[str, dict[str, float]]:
    """stratum -> inner category -> reduced intensity."""
    values: dict[str, dict[str, list[float]]] = defaultdict(lambda: defaultdict(list))
    for record in records:
        stratum = getattr(record, stratum_axis.field)
        values[stratum][getattr(record, inner_axis.field)].append(record.intensity)

    reduce = REDUCERS[DuplicateReducer(reducer)]
    return {
        stratum: {category: reduce(v) for category, v in inner.items()}
        for stratum, inner in values.items()
    }


def stratum_correlations(
    records1: Sequence[ObservedExpression],
    records2: Sequence[ObservedExpression],
    stratum_axis: Axis,
    selected: Optional[Sequence[str]] = None,
    binarization: BinarizationStrategy = BinarizationStrategy.median,
    top_k: int = DEFAULT_TOP_K,
    reducer: DuplicateReducer = DuplicateReducer.mean,
) -> list[StratumCorrelation]:
    """
    Score each stratum of ``stratum_axis`` for two genes' observations.

    Args:
        records1: Observations of the first gene only
        records2: Observations of the second gene only
        stratum_axis: Axis whose categories are held fixed
        selected: Optional strata to analyze; defaults to all strata seen
        binarization: Threshold policy for jaccard / overlap
        top_k: Top-k size for shared_top_k_count
        reducer: How duplicate observations collapse

    Returns:
        One StratumCorrelation per stratum with enough shared categories,
        sorted by stratum key
    """
    inner_axis = Axis.cell if stratum_axis is Axis.tissue else Axis.tissue
    strata1 = _stratify(records1, stratum_axis, inner_axis, reducer)
    strata2 = _stratify(records2, stratum_axis, inner_axis, reducer)

    wanted = set(selected) if selected else set(strata1) | set(strata2)
    correlations: list[StratumCorrelation] = []

    for stratum in sorted(wanted):
        inner1 = strata1.get(stratum, {})
        inner2 = strata2.get(stratum, {})
        shared = tuple(sorted(set(inner1) & set(inner2)))
        if len(shared) < MIN_STRATUM_POINTS:
            logger.debug("Skipping %s %s: %d shared categories", stratum_axis.value, stratum, len(shared))
            continue

        v1 = CategoryVector(shared, _values(inner1, shared))
        v2 = CategoryVector(shared, _values(inner2, shared))
        metrics = compute_similarity(v1, v2, binarization, top_k)
        correlations.append(StratumCorrelation(category=stratum, **metrics.model_dump()))

    return correlations


def _values(intensities: dict[str, float], categories: tuple[str, ...]) -> np.ndarray:
    return np.array([intensities[c] for c in categories], dtype=float)


def analyze_pair(
    records: Sequence[ObservedExpression],
    gene1: str,
    gene2: str,
    mode: AnalysisMode,
    selected: Optional[Sequence[str]] = None,
    binarization: BinarizationStrategy = BinarizationStrategy.median,
    top_k: int = DEFAULT_TOP_K,
    reducer: DuplicateReducer = DuplicateReducer.mean,
) -> StratifiedAnalysisResult:
    """
    Run tissue-specific or cell-specific analysis for one gene pair.

    Raises:
        EntityNotFoundError: If either gene has no observations
    """
    records1 = [r for r in records if r.matches(gene1)]
    records2 = [r for r in records if r.matches(gene2)]
    for gene, matched in ((gene1, records1), (gene2, records2)):
        if not matched:
            raise EntityNotFoundError(gene)

    stratum_axis = _STRATUM_AXIS[AnalysisMode(mode)]
    correlations = stratum_correlations(
        records1, records2, stratum_axis, selected, binarization, top_k, reducer
    )
    logger.info(
        "%s analysis for %s/%s: %d strata scored",
        AnalysisMode(mode).value, gene1, gene2, len(correlations),
    )

    is_tissue = stratum_axis is Axis.tissue
    return StratifiedAnalysisResult(
        p1_name=records1[0].entity_display_name or gene1,
        p1_id=records1[0].entity_id,
        p2_name=records2[0].entity_display_name or gene2,
        p2_id=records2[0].entity_id,
        pair_id=f"{gene1}-{gene2}",
        tissue_correlations=correlations if is_tissue else [],
        cell_correlations=[] if is_tissue else correlations,
    )
