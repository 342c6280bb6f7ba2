"""
Vector building for co-expression comparison.

Turns raw observations (or per-category intensity maps from a fetched
profile) into two index-aligned vectors over one shared category list.
The category list is the union of both entities' categories, minus any
category where both intensities are zero, sorted by raw key.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Iterable, Mapping, Optional, Sequence

import numpy as np

from ..core.errors import EntityNotFoundError
from ..core.models import ObservedExpression
from ..core.types import Axis, DuplicateReducer

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class CategoryVector:
    """Intensities in a fixed category order."""

    categories: tuple[str, ...]
    values: np.ndarray

    def __len__(self) -> int:
        return len(self.categories)

    def as_dict(self) -> dict[str, float]:
        return {c: float(v) for c, v in zip(self.categories, self.values)}


REDUCERS: dict[DuplicateReducer, Callable[[list[float]], float]] = {
    DuplicateReducer.mean: lambda values: float(np.mean(values)),
    DuplicateReducer.max: lambda values: float(max(values)),
    DuplicateReducer.sum: lambda values: float(sum(values)),
    DuplicateReducer.first: lambda values: float(values[0]),
}


def collapse_records(
    records: Iterable[ObservedExpression],
    identifier: str,
    axis: Axis,
    reducer: DuplicateReducer = DuplicateReducer.mean,
) -> dict[str, float]:
    """
    Collapse one entity's observations to a category -> intensity map.

    Raises:
        EntityNotFoundError: If no record matches the identifier
    """
    grouped: dict[str, list[float]] = defaultdict(list)
    for record in records:
        if record.matches(identifier):
            grouped[getattr(record, axis.field)].append(record.intensity)

    if not grouped:
        raise EntityNotFoundError(identifier)

    reduce = REDUCERS[DuplicateReducer(reducer)]
    return {category: reduce(values) for category, values in grouped.items()}


def align_vectors(
    intensities1: Mapping[str, float],
    intensities2: Mapping[str, float],
    categories: Optional[Sequence[str]] = None,
) -> tuple[CategoryVector, CategoryVector]:
    """
    Align two category -> intensity maps onto one shared category order.

    A category missing from one map counts as zero for that entity.

    Args:
        intensities1: First entity's intensities
        intensities2: Second entity's intensities
        categories: Optional allowlist restricting the category set

    Returns:
        Two vectors of equal length with identical category order
    """
    keys = set(intensities1) | set(intensities2)
    if categories is not None:
        keys &= set(categories)

    ordered = tuple(
        sorted(
            key
            for key in keys
            if intensities1.get(key, 0.0) != 0 or intensities2.get(key, 0.0) != 0
        )
    )
    values1 = np.array([intensities1.get(key, 0.0) for key in ordered], dtype=float)
    values2 = np.array([intensities2.get(key, 0.0) for key in ordered], dtype=float)

    return CategoryVector(ordered, values1), CategoryVector(ordered, values2)


def build_vectors(
    records: Sequence[ObservedExpression],
    entity1: str,
    entity2: str,
    axis: Axis,
    categories: Optional[Sequence[str]] = None,
    reducer: DuplicateReducer = DuplicateReducer.mean,
) -> tuple[CategoryVector, CategoryVector]:
    """
    Build aligned vectors for two entities along one axis.

    Args:
        records: Observations for (at least) both entities
        entity1: Canonical id or display name of the first entity
        entity2: Canonical id or display name of the second entity
        axis: Axis whose categories index the vectors
        categories: Optional category allowlist
        reducer: How duplicate observations per category collapse

    Raises:
        EntityNotFoundError: If either entity matches no record
    """
    intensities1 = collapse_records(records, entity1, axis, reducer)
    intensities2 = collapse_records(records, entity2, axis, reducer)
    v1, v2 = align_vectors(intensities1, intensities2, categories)

    logger.debug(
        "Built %s vectors for %s/%s over %d categories",
        axis.value, entity1, entity2, len(v1),
    )
    return v1, v2
