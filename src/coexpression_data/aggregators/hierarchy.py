"""
Hierarchical grouping of two entities' observations.

Regroups raw observations into primary category -> ordered list of
secondary-category entries (for example tissue -> cell types) holding both
entities' intensities side by side. Used for inspection and export only;
the ranking path never reads these groupings.

Design: grouped values keep raw category keys. Display labels are produced
by format_category_label() at the API boundary.
"""

from __future__ import annotations

import re
from collections import defaultdict
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from ..core.models import ObservedExpression
from ..core.types import Axis, DuplicateReducer
from ..similarity.vectors import REDUCERS

_WORD_START = re.compile(r"\b\w")


@dataclass(frozen=True)
class GroupedEntry:
    """One secondary category inside a primary group."""

    category: str
    entity1_intensity: float
    entity2_intensity: float
    cluster_label: str = ""


def format_category_label(key: str) -> str:
    """Display form of a raw category key: underscores to spaces, words capitalized.

    >>> format_category_label("heart_muscle")
    'Heart Muscle'
    """
    return _WORD_START.sub(lambda m: m.group(0).upper(), key.replace("_", " "))


def group_observations(
    records: Iterable[ObservedExpression],
    entity1: str,
    entity2: str,
    primary_axis: Axis,
    secondary_axis: Axis,
    primary_filter: Optional[Sequence[str]] = None,
    reducer: DuplicateReducer = DuplicateReducer.mean,
) -> dict[str, list[GroupedEntry]]:
    """
    Group two entities' observations by primary then secondary category.

    Args:
        records: Observations; records matching neither entity are ignored
        entity1: Canonical id or display name of the first entity
        entity2: Canonical id or display name of the second entity
        primary_axis: Axis for the outer grouping
        secondary_axis: Axis for the entries inside each group
        primary_filter: Optional allowlist of primary categories
        reducer: How duplicate observations per cell collapse

    Returns:
        Primary keys in lexicographic order, each mapped to secondary
        entries in lexicographic order. Entries where both intensities are
        zero are dropped, and so are groups left empty.
    """
    if primary_axis == secondary_axis:
        raise ValueError("Primary and secondary axes must differ")

    allowed = set(primary_filter) if primary_filter is not None else None
    # (primary, secondary) -> [entity1 values, entity2 values]
    cells: dict[tuple[str, str], tuple[list[float], list[float]]] = defaultdict(
        lambda: ([], [])
    )
    clusters: dict[tuple[str, str], str] = {}

    for record in records:
        is_first = record.matches(entity1)
        is_second = record.matches(entity2)
        if not (is_first or is_second):
            continue

        primary = getattr(record, primary_axis.field)
        if allowed is not None and primary not in allowed:
            continue
        key = (primary, getattr(record, secondary_axis.field))

        if is_first:
            cells[key][0].append(record.intensity)
        if is_second:
            cells[key][1].append(record.intensity)
        if record.cluster_label and key not in clusters:
            clusters[key] = record.cluster_label

    reduce = REDUCERS[DuplicateReducer(reducer)]
    grouped: dict[str, list[GroupedEntry]] = defaultdict(list)

    for (primary, secondary), (values1, values2) in sorted(cells.items()):
        intensity1 = reduce(values1) if values1 else 0.0
        intensity2 = reduce(values2) if values2 else 0.0
        if intensity1 == 0 and intensity2 == 0:
            continue
        grouped[primary].append(
            GroupedEntry(
                category=secondary,
                entity1_intensity=intensity1,
                entity2_intensity=intensity2,
                cluster_label=clusters.get((primary, secondary), ""),
            )
        )

    return dict(grouped)


def flatten_groups(
    groups: dict[str, list[GroupedEntry]],
    entity1: str,
    entity2: str,
    primary_axis: Axis,
    secondary_axis: Axis,
) -> list[ObservedExpression]:
    """
    Turn grouped entries back into observations.

    Regrouping the result with the same entities and axes reproduces
    ``groups`` exactly.
    """
    records: list[ObservedExpression] = []
    for primary, entries in groups.items():
        for entry in entries:
            for identifier, intensity in (
                (entity1, entry.entity1_intensity),
                (entity2, entry.entity2_intensity),
            ):
                fields = {
                    primary_axis.field: primary,
                    secondary_axis.field: entry.category,
                }
                records.append(
                    ObservedExpression(
                        entity_id=identifier,
                        entity_display_name=identifier,
                        cluster_label=entry.cluster_label,
                        intensity=intensity,
                        **fields,
                    )
                )
    return records
