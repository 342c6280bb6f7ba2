"""
Core types and constants for Coexpression Data.

This module provides:
- Axis enum and the record field each axis reads
- Strategy enums for binarization, duplicate collapsing and combination
- Search mode / query type enums used by the pair source
- Unified table name constants
"""

from enum import Enum


class Axis(str, Enum):
    """Categorical axes an expression observation can be read along."""

    tissue = "tissue"
    cell = "cell"

    @property
    def field(self) -> str:
        """ObservedExpression attribute holding this axis' category."""
        return AXIS_FIELDS[self]


AXIS_FIELDS: dict[Axis, str] = {
    Axis.tissue: "tissue_category",
    Axis.cell: "cell_category",
}


class BinarizationStrategy(str, Enum):
    """Per-vector threshold used to mark a category as active."""

    median = "median"
    mean = "mean"


class DuplicateReducer(str, Enum):
    """How several observations for one (entity, category) collapse to one value."""

    mean = "mean"
    max = "max"
    sum = "sum"
    first = "first"


class CombineStrategy(str, Enum):
    """How per-axis metrics become the combined metrics."""

    concatenate = "concatenate"
    average = "average"


class SearchMode(str, Enum):
    """Pair source modes."""

    all = "all"
    compare = "compare"


class QueryType(str, Enum):
    """Which side of a curated pair the query gene sits on."""

    receptor = "receptor"
    ligand = "ligand"


class AnalysisMode(str, Enum):
    """Stratified analysis modes."""

    tissue_specific = "tissue-specific"
    cell_specific = "cell-specific"


# =============================================================================
# Unified table names
# =============================================================================

EXPRESSION_TABLE = "expression_data"
PAIRS_TABLE = "receptor_ligand_pairs"
