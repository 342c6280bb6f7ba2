"""
Tests for vector alignment, the similarity engine and feature combination.
"""

from __future__ import annotations

import math

import numpy as np
import pytest

from conftest import observation
from coexpression_data.core.errors import EntityNotFoundError
from coexpression_data.core.models import SimilarityMetrics
from coexpression_data.core.types import (
    Axis,
    BinarizationStrategy,
    CombineStrategy,
    DuplicateReducer,
)
from coexpression_data.similarity import (
    CategoryVector,
    align_vectors,
    average_metrics,
    build_vectors,
    collapse_records,
    combine_features,
    compute_similarity,
)
from coexpression_data.similarity.metrics import binarize, top_k_indices


# =========================================================================
# Vector building
# =========================================================================


class TestAlignVectors:
    """Aligned vectors share one deterministic category order."""

    def test_union_sorted_and_zero_filled(self):
        v1, v2 = align_vectors({"lung": 2.0, "liver": 1.0}, {"spleen": 3.0, "liver": 4.0})
        assert v1.categories == ("liver", "lung", "spleen")
        assert v2.categories == v1.categories
        assert v1.values.tolist() == [1.0, 2.0, 0.0]
        assert v2.values.tolist() == [4.0, 0.0, 3.0]

    def test_drops_categories_zero_for_both(self):
        v1, v2 = align_vectors({"a": 0.0, "b": 1.0}, {"a": 0.0, "c": 2.0})
        assert v1.categories == ("b", "c")
        assert len(v2) == 2

    def test_allowlist_restricts_categories(self):
        v1, _ = align_vectors({"a": 1.0, "b": 2.0}, {"a": 3.0, "c": 4.0}, categories=["a", "c"])
        assert v1.categories == ("a", "c")

    def test_empty_inputs(self):
        v1, v2 = align_vectors({}, {})
        assert len(v1) == 0
        assert v2.as_dict() == {}

    def test_order_independent_of_input_order(self):
        first, _ = align_vectors({"b": 1.0, "a": 2.0}, {})
        second, _ = align_vectors({"a": 2.0, "b": 1.0}, {})
        assert first.categories == second.categories


class TestCollapseRecords:
    """Duplicate observations collapse with the configured reducer."""

    @pytest.fixture
    def duplicates(self):
        return [
            observation("G1", "liver", "hepatocytes", 2.0),
            observation("G1", "liver", "kupffer_cells", 6.0),
            observation("G1", "lung", "macrophages", 3.0),
        ]

    def test_mean_is_default(self, duplicates):
        assert collapse_records(duplicates, "G1", Axis.tissue) == {"liver": 4.0, "lung": 3.0}

    @pytest.mark.parametrize(
        "reducer, expected",
        [
            (DuplicateReducer.max, 6.0),
            (DuplicateReducer.sum, 8.0),
            (DuplicateReducer.first, 2.0),
        ],
    )
    def test_alternative_reducers(self, duplicates, reducer, expected):
        assert collapse_records(duplicates, "G1", Axis.tissue, reducer)["liver"] == expected

    def test_matches_display_name_case_insensitively(self):
        records = [observation("ENSG01", "liver", "hepatocytes", 1.0, name="TNF")]
        assert collapse_records(records, "tnf", Axis.cell) == {"hepatocytes": 1.0}

    def test_unknown_entity_raises(self, duplicates):
        with pytest.raises(EntityNotFoundError) as exc_info:
            collapse_records(duplicates, "MISSING", Axis.tissue)
        assert exc_info.value.identifier == "MISSING"


class TestBuildVectors:
    def test_builds_aligned_cell_vectors(self, records):
        v1, v2 = build_vectors(records, "TNF", "TNFRSF1A", Axis.cell)
        assert v1.categories == ("alveolar_cells", "hepatocytes", "kupffer_cells", "macrophages")
        assert v1.values.tolist() == [2.0, 10.0, 4.0, 8.0]
        assert v2.values.tolist() == [1.0, 5.0, 2.0, 6.0]

    def test_missing_second_entity(self, records):
        with pytest.raises(EntityNotFoundError):
            build_vectors(records, "TNF", "NOPE", Axis.tissue)


# =========================================================================
# Similarity engine
# =========================================================================


class TestComputeSimilarity:
    """Metric values for known inputs."""

    def test_identical_vectors(self):
        m = compute_similarity([1, 2, 3, 4], [1, 2, 3, 4])
        assert m.pearson_corr == pytest.approx(1.0)
        assert m.cosine_sim == pytest.approx(1.0)
        assert m.jaccard_index == pytest.approx(1.0)
        assert m.l2_norm_diff == 0.0
        assert m.overlap_count == 2
        assert m.common_types == 4

    def test_disjoint_support(self):
        m = compute_similarity([5, 0, 0], [0, 0, 5])
        assert m.cosine_sim == 0.0
        assert m.jaccard_index == 0.0
        assert m.overlap_count == 0
        assert m.l2_norm_diff == pytest.approx(math.sqrt(50))

    def test_perfect_anticorrelation(self):
        m = compute_similarity([1, 2, 3], [3, 2, 1])
        assert m.pearson_corr == pytest.approx(-1.0)

    def test_empty_vectors_are_all_zero(self):
        assert compute_similarity([], []) == SimilarityMetrics()

    def test_zero_variance_gives_zero_pearson(self):
        m = compute_similarity([2, 2, 2], [1, 5, 9])
        assert m.pearson_corr == 0.0
        assert m.cosine_sim > 0

    @pytest.mark.parametrize("constant", [0.1, 0.7, 2.0])
    def test_constant_non_dyadic_vector_gives_exact_zero_pearson(self, constant):
        m = compute_similarity([constant] * 3, [1.0, 4.0, 9.0])
        assert m.pearson_corr == 0.0
        assert compute_similarity([1.0, 4.0, 9.0], [constant] * 3).pearson_corr == 0.0

    def test_constant_vectors_tie_at_zero(self):
        first = compute_similarity([0.1] * 3, [1.0, 4.0, 9.0])
        second = compute_similarity([0.7] * 3, [1.0, 4.0, 9.0])
        assert first.pearson_corr == second.pearson_corr == 0.0

    @pytest.mark.parametrize(
        "a, b",
        [
            ([float("nan"), 1.0, 2.0], [1.0, 2.0, 3.0]),
            ([float("inf"), 1.0, 2.0], [1.0, 2.0, 3.0]),
            ([float("-inf"), float("inf"), 0.0], [float("nan")] * 3),
            ([1e200, 2e200, 3e200], [3e200, 1e200, 2e200]),
            ([1e308, 1e308, -1e308], [1.0, 2.0, 3.0]),
        ],
    )
    def test_non_finite_inputs_are_sanitized(self, a, b):
        m = compute_similarity(a, b)
        for name, value in m.model_dump().items():
            assert math.isfinite(value), name

    def test_cosine_of_huge_vector_with_itself(self):
        v = [1e200, 2e200, 3e200]
        m = compute_similarity(v, v)
        assert m.cosine_sim == pytest.approx(1.0)
        assert m.pearson_corr == pytest.approx(1.0)

    def test_zero_norm_gives_zero_cosine(self):
        m = compute_similarity([0, 0, 0], [1, 2, 3])
        assert m.cosine_sim == 0.0
        assert m.pearson_corr == 0.0

    def test_length_mismatch_raises(self):
        with pytest.raises(ValueError):
            compute_similarity([1, 2], [1, 2, 3])

    def test_category_order_mismatch_raises(self):
        v1 = CategoryVector(("a", "b"), np.array([1.0, 2.0]))
        v2 = CategoryVector(("b", "a"), np.array([1.0, 2.0]))
        with pytest.raises(ValueError):
            compute_similarity(v1, v2)

    def test_symmetric(self):
        a, b = [1.0, 7.0, 3.0, 0.5], [2.0, 1.0, 9.0, 4.0]
        assert compute_similarity(a, b) == compute_similarity(b, a)

    def test_scale_invariance(self):
        a, b = [1.0, 7.0, 3.0, 0.5], [2.0, 1.0, 9.0, 4.0]
        base = compute_similarity(a, b)
        scaled = compute_similarity([x * 10 for x in a], b)
        assert scaled.pearson_corr == pytest.approx(base.pearson_corr)
        assert scaled.cosine_sim == pytest.approx(base.cosine_sim)

    def test_bounds(self):
        m = compute_similarity([0.1, 100.0, 3.0, 0.0, 7.0], [9.0, 0.0, 1.0, 1.0, 2.0])
        assert -1 <= m.pearson_corr <= 1
        assert -1 <= m.cosine_sim <= 1
        assert 0 <= m.jaccard_index <= 1
        assert m.l2_norm_diff >= 0
        assert 0 <= m.shared_top_k_count <= 5

    def test_shared_top_k(self):
        m = compute_similarity([9, 8, 1, 0], [0, 8, 9, 1], top_k=2)
        # top-2 positions: {0, 1} vs {1, 2}
        assert m.shared_top_k_count == 1

    def test_top_k_larger_than_vector(self):
        m = compute_similarity([1, 2, 3], [3, 2, 1], top_k=10)
        assert m.shared_top_k_count == 3


class TestBinarization:
    def test_median_threshold_is_strict(self):
        assert binarize(np.array([1.0, 2.0, 3.0])).tolist() == [False, False, True]

    def test_mean_threshold(self):
        mask = binarize(np.array([1.0, 1.0, 10.0]), BinarizationStrategy.mean)
        assert mask.tolist() == [False, False, True]

    def test_strategies_can_differ(self):
        # median 2, mean 4
        a = [1.0, 2.0, 3.0, 10.0]
        median = compute_similarity(a, a, BinarizationStrategy.median)
        mean = compute_similarity(a, a, BinarizationStrategy.mean)
        assert median.overlap_count == 2
        assert mean.overlap_count == 1

    def test_top_k_ties_break_by_index(self):
        assert top_k_indices(np.array([5.0, 5.0, 5.0]), 2) == {0, 1}


# =========================================================================
# Feature combination
# =========================================================================


class TestCombineFeatures:
    """Combined metrics come from the concatenated vectors."""

    def test_concatenation(self):
        bundle = combine_features([2, 4], [2, 4], [1, 1], [1, 1])
        assert bundle.combined.pearson_corr == pytest.approx(1.0)
        assert bundle.combined.common_types == 4
        # A constant cell vector has no variance on its own
        assert bundle.cell.pearson_corr == 0.0

    def test_concatenation_matches_direct_computation(self):
        bundle = combine_features([1, 5, 2], [2, 4, 1], [7, 0], [3, 1])
        direct = compute_similarity([1, 5, 2, 7, 0], [2, 4, 1, 3, 1])
        assert bundle.combined == direct

    def test_average_strategy(self):
        bundle = combine_features(
            [1, 2, 3], [1, 2, 3], [1, 2, 3], [3, 2, 1], strategy=CombineStrategy.average
        )
        assert bundle.combined.pearson_corr == pytest.approx(0.0)
        assert bundle.combined.overlap_count == bundle.tissue.overlap_count + bundle.cell.overlap_count

    def test_empty_axis(self):
        bundle = combine_features([], [], [1, 2], [2, 4])
        assert bundle.tissue == SimilarityMetrics()
        assert bundle.combined.pearson_corr == pytest.approx(1.0)


class TestAverageMetrics:
    def test_floats_averaged_counts_summed(self):
        first = SimilarityMetrics(pearson_corr=1.0, cosine_sim=0.5, overlap_count=2, common_types=3)
        second = SimilarityMetrics(pearson_corr=0.0, cosine_sim=0.5, overlap_count=1, common_types=4)
        merged = average_metrics(first, second)
        assert merged.pearson_corr == 0.5
        assert merged.cosine_sim == 0.5
        assert merged.overlap_count == 3
        assert merged.common_types == 7
