"""
Base repository protocols.

Defines abstract interfaces for the observation store and the curated pair
source, so services and API routes can run against PostgreSQL or an
in-memory double.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional, Sequence

from ..core.models import EntityPair, ObservedExpression
from ..core.types import Axis, QueryType


class ExpressionRepository(ABC):
    """Read access to (gene, tissue, cell type, cluster, nTPM) observations."""

    @abstractmethod
    def fetch_observations(
        self,
        identifiers: Sequence[str],
        axis: Optional[Axis] = None,
        categories: Optional[Sequence[str]] = None,
    ) -> list[ObservedExpression]:
        """
        Fetch every observation for the given genes.

        Args:
            identifiers: Gene ids or display names, matched case-insensitively
            axis: Optional axis to filter on
            categories: Allowed categories along ``axis``

        Returns:
            Matching observations in storage order

        Raises:
            CollaboratorUnavailableError: If the store cannot be queried
        """
        ...

    @abstractmethod
    def list_categories(self, axis: Axis) -> list[str]:
        """Distinct categories along an axis, sorted."""
        ...

    @abstractmethod
    def count_gene_records(self, identifier: str) -> int:
        """Number of observations stored for a gene."""
        ...


class PairRepository(ABC):
    """Read access to curated receptor/ligand pairs."""

    @abstractmethod
    def find_pairs(self, query: str, query_type: QueryType) -> list[EntityPair]:
        """
        Curated pairs where the query gene sits on the given side.

        Receptors are matched on p1, ligands on p2; either by exact id or
        case-insensitive name substring.

        Raises:
            CollaboratorUnavailableError: If the pair source cannot be queried
        """
        ...
