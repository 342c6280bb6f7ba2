"""
Pytest configuration for coexpression-data tests.
"""

import os
from typing import Optional, Sequence

import pytest

from coexpression_data.core.errors import FetchFailureError
from coexpression_data.core.models import EntityPair, EntityProfile, ObservedExpression
from coexpression_data.core.types import Axis, QueryType
from coexpression_data.repositories.base import ExpressionRepository, PairRepository


def pytest_configure(config):
    """Configure pytest with database URL if available."""
    # Try to load from .env file if environment variables not already set
    env_file = os.path.join(os.path.dirname(__file__), "..", ".env")
    if os.path.exists(env_file):
        with open(env_file) as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith("#") and "=" in line:
                    key, value = line.split("=", 1)
                    key = key.strip()
                    value = value.strip().strip('"').strip("'")
                    if key not in os.environ:
                        os.environ[key] = value


@pytest.fixture(scope="session")
def database_url():
    """Get the PostgreSQL database URL."""
    url = os.environ.get("DATABASE_URL")
    if not url:
        pytest.skip("DATABASE_URL not set")
    return url


# =========================================================================
# Builders
# =========================================================================


def observation(
    gene: str,
    tissue: str,
    cell: str,
    intensity: float,
    name: Optional[str] = None,
    cluster: str = "",
) -> ObservedExpression:
    return ObservedExpression(
        entity_id=gene,
        entity_display_name=name or gene,
        tissue_category=tissue,
        cell_category=cell,
        cluster_label=cluster,
        intensity=intensity,
    )


def profile(gene: str, tissue: dict[str, float], cell: dict[str, float]) -> EntityProfile:
    return EntityProfile(entity_id=gene, display_name=gene, tissue=tissue, cell=cell)


def pair(p1: str, p2: str) -> EntityPair:
    return EntityPair(p1_id=p1, p1_name=p1, p2_id=p2, p2_name=p2)


# =========================================================================
# In-memory collaborators
# =========================================================================


class InMemoryExpressionRepository(ExpressionRepository):
    """Observation store backed by a list."""

    def __init__(self, records: Sequence[ObservedExpression]):
        self.records = list(records)

    def fetch_observations(self, identifiers, axis=None, categories=None):
        matched = [r for r in self.records if any(r.matches(i) for i in identifiers)]
        if axis is not None and categories is not None:
            allowed = set(categories)
            matched = [r for r in matched if getattr(r, axis.field) in allowed]
        return matched

    def list_categories(self, axis: Axis) -> list[str]:
        return sorted({getattr(r, axis.field) for r in self.records})

    def count_gene_records(self, identifier: str) -> int:
        return sum(1 for r in self.records if r.matches(identifier))


class InMemoryPairRepository(PairRepository):
    """Curated pair source backed by a list."""

    def __init__(self, pairs: Sequence[EntityPair]):
        self.pairs = list(pairs)

    def find_pairs(self, query: str, query_type: QueryType) -> list[EntityPair]:
        needle = query.lower()
        if query_type is QueryType.receptor:
            return [p for p in self.pairs if p.p1_id == query or needle in p.p1_name.lower()]
        return [p for p in self.pairs if p.p2_id == query or needle in p.p2_name.lower()]


class FakeProfileFetcher:
    """Async profile fetcher serving canned profiles and recording calls."""

    def __init__(
        self,
        profiles: dict[str, EntityProfile],
        failing: Sequence[str] = (),
    ):
        self.profiles = profiles
        self.failing = set(failing)
        self.calls: list[str] = []

    async def __call__(self, gene_id: str) -> Optional[EntityProfile]:
        self.calls.append(gene_id)
        if gene_id in self.failing:
            raise FetchFailureError(f"Request failed: timeout fetching {gene_id}")
        return self.profiles.get(gene_id)


# =========================================================================
# Fixtures
# =========================================================================


@pytest.fixture
def records() -> list[ObservedExpression]:
    """Two genes observed across two tissues and three cell types."""
    return [
        observation("ENSG01", "liver", "hepatocytes", 10.0, name="TNF", cluster="c-0"),
        observation("ENSG01", "liver", "kupffer_cells", 4.0, name="TNF", cluster="c-1"),
        observation("ENSG01", "lung", "macrophages", 8.0, name="TNF", cluster="c-2"),
        observation("ENSG01", "lung", "alveolar_cells", 2.0, name="TNF", cluster="c-3"),
        observation("ENSG02", "liver", "hepatocytes", 5.0, name="TNFRSF1A", cluster="c-0"),
        observation("ENSG02", "liver", "kupffer_cells", 2.0, name="TNFRSF1A", cluster="c-1"),
        observation("ENSG02", "lung", "macrophages", 6.0, name="TNFRSF1A", cluster="c-2"),
        observation("ENSG02", "lung", "alveolar_cells", 1.0, name="TNFRSF1A", cluster="c-3"),
        observation("ENSG03", "heart_muscle", "cardiomyocytes", 50.0, name="ACTB"),
    ]


@pytest.fixture
def expression_repo(records) -> InMemoryExpressionRepository:
    return InMemoryExpressionRepository(records)


@pytest.fixture
def curated_pairs() -> list[EntityPair]:
    return [
        EntityPair(p1_id="P19438", p1_name="TNFRSF1A", p2_id="P01375", p2_name="TNF"),
        EntityPair(p1_id="P20333", p1_name="TNFRSF1B", p2_id="P01375", p2_name="TNF"),
        EntityPair(p1_id="P08887", p1_name="IL6R", p2_id="P05231", p2_name="IL6"),
    ]


@pytest.fixture
def pair_repo(curated_pairs) -> InMemoryPairRepository:
    return InMemoryPairRepository(curated_pairs)


@pytest.fixture
def profiles() -> dict[str, EntityProfile]:
    return {
        "TNF": profile("TNF", {"liver": 10.0, "lung": 30.0, "spleen": 5.0}, {"T-cells": 40.0, "B-cells": 2.0}),
        "TNFRSF1A": profile("TNFRSF1A", {"liver": 12.0, "lung": 28.0, "spleen": 6.0}, {"T-cells": 35.0, "B-cells": 3.0}),
        "IL6": profile("IL6", {"liver": 1.0, "lung": 2.0, "spleen": 40.0}, {"T-cells": 1.0, "B-cells": 20.0}),
        "IL6R": profile("IL6R", {"liver": 50.0, "lung": 1.0, "spleen": 2.0}, {"T-cells": 3.0, "B-cells": 1.0}),
    }


@pytest.fixture
def fetcher(profiles) -> FakeProfileFetcher:
    return FakeProfileFetcher(profiles)
