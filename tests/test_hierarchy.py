"""
Tests for tissue -> cell type (and reverse) grouping.
"""

import pytest

from conftest import observation
from coexpression_data.aggregators import (
    flatten_groups,
    format_category_label,
    group_observations,
)
from coexpression_data.aggregators.hierarchy import GroupedEntry
from coexpression_data.core.types import Axis, DuplicateReducer


class TestGroupObservations:
    """Grouping keeps raw keys in lexicographic order."""

    def test_tissue_then_cell(self, records):
        groups = group_observations(records, "TNF", "TNFRSF1A", Axis.tissue, Axis.cell)
        assert list(groups) == ["liver", "lung"]
        assert groups["liver"] == [
            GroupedEntry("hepatocytes", 10.0, 5.0, "c-0"),
            GroupedEntry("kupffer_cells", 4.0, 2.0, "c-1"),
        ]

    def test_cell_then_tissue(self, records):
        groups = group_observations(records, "TNF", "TNFRSF1A", Axis.cell, Axis.tissue)
        assert list(groups) == ["alveolar_cells", "hepatocytes", "kupffer_cells", "macrophages"]
        assert groups["macrophages"] == [GroupedEntry("lung", 8.0, 6.0, "c-2")]

    def test_unrelated_entities_are_ignored(self, records):
        groups = group_observations(records, "TNF", "TNFRSF1A", Axis.tissue, Axis.cell)
        assert "heart_muscle" not in groups

    def test_one_sided_entries_fill_zero(self):
        records = [
            observation("A", "liver", "hepatocytes", 3.0),
            observation("B", "liver", "kupffer_cells", 1.0),
        ]
        groups = group_observations(records, "A", "B", Axis.tissue, Axis.cell)
        assert groups["liver"] == [
            GroupedEntry("hepatocytes", 3.0, 0.0),
            GroupedEntry("kupffer_cells", 0.0, 1.0),
        ]

    def test_zero_for_both_dropped(self):
        records = [
            observation("A", "liver", "hepatocytes", 0.0),
            observation("B", "liver", "hepatocytes", 0.0),
            observation("A", "lung", "macrophages", 1.0),
        ]
        groups = group_observations(records, "A", "B", Axis.tissue, Axis.cell)
        assert list(groups) == ["lung"]

    def test_primary_filter(self, records):
        groups = group_observations(
            records, "TNF", "TNFRSF1A", Axis.tissue, Axis.cell, primary_filter=["lung"]
        )
        assert list(groups) == ["lung"]

    def test_duplicates_use_reducer(self):
        records = [
            observation("A", "liver", "hepatocytes", 2.0),
            observation("A", "liver", "hepatocytes", 4.0),
            observation("B", "liver", "hepatocytes", 1.0),
        ]
        mean = group_observations(records, "A", "B", Axis.tissue, Axis.cell)
        maximum = group_observations(
            records, "A", "B", Axis.tissue, Axis.cell, reducer=DuplicateReducer.max
        )
        assert mean["liver"][0].entity1_intensity == 3.0
        assert maximum["liver"][0].entity1_intensity == 4.0

    def test_same_axis_rejected(self, records):
        with pytest.raises(ValueError):
            group_observations(records, "TNF", "TNFRSF1A", Axis.tissue, Axis.tissue)

    def test_regrouping_is_idempotent(self, records):
        groups = group_observations(records, "TNF", "TNFRSF1A", Axis.tissue, Axis.cell)
        flat = flatten_groups(groups, "TNF", "TNFRSF1A", Axis.tissue, Axis.cell)
        again = group_observations(flat, "TNF", "TNFRSF1A", Axis.tissue, Axis.cell)
        assert again == groups


class TestFormatCategoryLabel:
    @pytest.mark.parametrize(
        "key, label",
        [
            ("heart_muscle", "Heart Muscle"),
            ("adipose tissue", "Adipose Tissue"),
            ("t-cells", "T-Cells"),
            ("", ""),
        ],
    )
    def test_labels(self, key, label):
        assert format_category_label(key) == label
