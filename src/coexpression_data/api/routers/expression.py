"""
Expression router - side-by-side expression of two genes.

Endpoints:
- GET /tissues - tissue -> cell types, both genes' nTPM per entry
- GET /cells - cell type -> tissues
- GET /tissue/{tissue} - cell types within one tissue
- GET /cell/{cell_type} - tissues for one cell type
- GET /cell-types - distinct cell types in the store

Grouped values keep raw category keys; ``label`` carries the display form.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Query
from pydantic import BaseModel

from ..dependencies import ExpressionRepoDependency, SettingsDependency
from ...aggregators.hierarchy import GroupedEntry, format_category_label, group_observations
from ...core.config import Settings
from ...core.errors import EntityNotFoundError
from ...core.models import ObservedExpression
from ...core.types import Axis
from ...repositories.base import ExpressionRepository
from ...services.pairs import split_identifiers

logger = logging.getLogger(__name__)

router = APIRouter()

Gene1 = Annotated[str, Query(min_length=1, description="First gene name or ID")]
Gene2 = Annotated[str, Query(min_length=1, description="Second gene name or ID")]


# =============================================================================
# Response Models
# =============================================================================


class ExpressionEntry(BaseModel):
    """One secondary category with both genes' intensities."""

    category: str
    label: str
    gene1_expression: float
    gene2_expression: float
    cluster: str = ""


class ExpressionGroup(BaseModel):
    """A primary category and its secondary entries."""

    category: str
    label: str
    entries: list[ExpressionEntry]


class GroupedExpressionResponse(BaseModel):
    gene1: str
    gene1_name: str
    gene2: str
    gene2_name: str
    groups: list[ExpressionGroup]


class CategoryExpressionResponse(BaseModel):
    """Single-category breakdown."""

    category: str
    label: str
    gene1: str
    gene1_name: str
    gene2: str
    gene2_name: str
    expression_data: list[ExpressionEntry]


class CellTypesResponse(BaseModel):
    cell_types: list[str]
    count: int


# =============================================================================
# Helper Functions
# =============================================================================


def _load(
    repo: ExpressionRepository,
    gene1: str,
    gene2: str,
    axis: Axis | None = None,
    categories: list[str] | None = None,
) -> tuple[list[ObservedExpression], str, str]:
    """Fetch both genes' observations and resolve their display names."""
    records = repo.fetch_observations([gene1, gene2], axis, categories)
    names = []
    for gene in (gene1, gene2):
        match = next((r for r in records if r.matches(gene)), None)
        if match is None and axis is None:
            raise EntityNotFoundError(gene)
        names.append(match.entity_display_name if match else gene)
    return records, names[0], names[1]


def _entries(entries: list[GroupedEntry]) -> list[ExpressionEntry]:
    return [
        ExpressionEntry(
            category=entry.category,
            label=format_category_label(entry.category),
            gene1_expression=entry.entity1_intensity,
            gene2_expression=entry.entity2_intensity,
            cluster=entry.cluster_label,
        )
        for entry in entries
    ]


def _grouped(
    repo: ExpressionRepository,
    gene1: str,
    gene2: str,
    primary: Axis,
    secondary: Axis,
    filter_items: list[str] | None,
    settings: Settings,
) -> GroupedExpressionResponse:
    records, name1, name2 = _load(repo, gene1, gene2)
    groups = group_observations(
        records, gene1, gene2, primary, secondary,
        primary_filter=filter_items,
        reducer=settings.duplicate_reducer,
    )
    return GroupedExpressionResponse(
        gene1=gene1,
        gene1_name=name1,
        gene2=gene2,
        gene2_name=name2,
        groups=[
            ExpressionGroup(category=key, label=format_category_label(key), entries=_entries(entries))
            for key, entries in groups.items()
        ],
    )


def _single(
    repo: ExpressionRepository,
    gene1: str,
    gene2: str,
    primary: Axis,
    secondary: Axis,
    category: str,
    settings: Settings,
) -> CategoryExpressionResponse:
    records, name1, name2 = _load(repo, gene1, gene2, primary, [category])
    groups = group_observations(
        records, gene1, gene2, primary, secondary,
        primary_filter=[category],
        reducer=settings.duplicate_reducer,
    )
    return CategoryExpressionResponse(
        category=category,
        label=format_category_label(category),
        gene1=gene1,
        gene1_name=name1,
        gene2=gene2,
        gene2_name=name2,
        expression_data=_entries(groups.get(category, [])),
    )


# =============================================================================
# Endpoints
# =============================================================================


@router.get("/tissues", response_model=GroupedExpressionResponse)
async def get_tissue_groups(
    gene1: Gene1,
    gene2: Gene2,
    repo: ExpressionRepoDependency,
    settings: SettingsDependency,
    tissues: Annotated[str | None, Query(description="Comma-separated tissue filter")] = None,
) -> GroupedExpressionResponse:
    """Both genes' expression grouped by tissue, then cell type."""
    return _grouped(
        repo, gene1, gene2, Axis.tissue, Axis.cell, split_identifiers(tissues) or None, settings
    )


@router.get("/cells", response_model=GroupedExpressionResponse)
async def get_cell_groups(
    gene1: Gene1,
    gene2: Gene2,
    repo: ExpressionRepoDependency,
    settings: SettingsDependency,
    cell_types: Annotated[str | None, Query(description="Comma-separated cell type filter")] = None,
) -> GroupedExpressionResponse:
    """Both genes' expression grouped by cell type, then tissue."""
    return _grouped(
        repo, gene1, gene2, Axis.cell, Axis.tissue, split_identifiers(cell_types) or None, settings
    )


@router.get("/tissue/{tissue}", response_model=CategoryExpressionResponse)
async def get_tissue_expression(
    tissue: str,
    gene1: Gene1,
    gene2: Gene2,
    repo: ExpressionRepoDependency,
    settings: SettingsDependency,
) -> CategoryExpressionResponse:
    """Cell-type breakdown of both genes inside one tissue."""
    return _single(repo, gene1, gene2, Axis.tissue, Axis.cell, tissue, settings)


@router.get("/cell/{cell_type}", response_model=CategoryExpressionResponse)
async def get_cell_expression(
    cell_type: str,
    gene1: Gene1,
    gene2: Gene2,
    repo: ExpressionRepoDependency,
    settings: SettingsDependency,
) -> CategoryExpressionResponse:
    """Tissue breakdown of both genes for one cell type."""
    return _single(repo, gene1, gene2, Axis.cell, Axis.tissue, cell_type, settings)


@router.get("/cell-types", response_model=CellTypesResponse)
async def list_cell_types(repo: ExpressionRepoDependency) -> CellTypesResponse:
    """Distinct cell types, sorted."""
    cell_types = repo.list_categories(Axis.cell)
    return CellTypesResponse(cell_types=cell_types, count=len(cell_types))
