"""
PostgreSQL observation store.

Reads the expression_data table populated by the TSV loader and maps rows
onto ObservedExpression records.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterable, Optional, Sequence

import psycopg

from ..core.errors import CollaboratorUnavailableError
from ..core.models import ObservedExpression
from ..core.types import EXPRESSION_TABLE, Axis
from .base import ExpressionRepository

if TYPE_CHECKING:
    from ..pg_connection import PostgresDB

logger = logging.getLogger(__name__)

# Axis -> column in expression_data
AXIS_COLUMNS = {
    Axis.tissue: "tissue",
    Axis.cell: "cell_type",
}

# Column order of loader rows
LOAD_COLUMNS = ("gene", "gene_name", "tissue", "cluster", "cell_type", "read_count", "ntpm")


def row_to_observation(row: dict[str, Any]) -> ObservedExpression:
    """Map an expression_data row to an ObservedExpression."""
    return ObservedExpression(
        entity_id=row["gene"],
        entity_display_name=row["gene_name"],
        tissue_category=row["tissue"],
        cell_category=row["cell_type"],
        cluster_label=row.get("cluster") or "",
        intensity=row["ntpm"],
    )


class PostgresExpressionRepository(ExpressionRepository):
    """PostgreSQL implementation of the observation store."""

    def __init__(self, db: "PostgresDB"):
        self.db = db

    def fetch_observations(
        self,
        identifiers: Sequence[str],
        axis: Optional[Axis] = None,
        categories: Optional[Sequence[str]] = None,
    ) -> list[ObservedExpression]:
        needles = [i.strip().lower() for i in identifiers if i and i.strip()]
        if not needles:
            return []

        query = f"""
            SELECT gene, gene_name, tissue, cluster, cell_type, ntpm
            FROM {EXPRESSION_TABLE}
            WHERE (LOWER(gene) = ANY(%s) OR LOWER(gene_name) = ANY(%s))
        """
        params: list[Any] = [needles, needles]

        if axis is not None and categories is not None:
            query += f" AND {AXIS_COLUMNS[Axis(axis)]} = ANY(%s)"
            params.append(list(categories))

        query += " ORDER BY id"

        try:
            rows = self.db.fetchall(query, tuple(params))
        except psycopg.Error as e:
            logger.error("Observation query failed for %s: %s", needles, e)
            raise CollaboratorUnavailableError(
                "Error querying expression data", details=str(e)
            ) from e

        logger.debug("Fetched %d observations for %s", len(rows), needles)
        return [row_to_observation(row) for row in rows]

    def list_categories(self, axis: Axis) -> list[str]:
        column = AXIS_COLUMNS[Axis(axis)]
        try:
            rows = self.db.fetchall(
                f"SELECT DISTINCT {column} AS category FROM {EXPRESSION_TABLE} ORDER BY {column}"
            )
        except psycopg.Error as e:
            raise CollaboratorUnavailableError(
                f"Failed to fetch {axis.value} categories", details=str(e)
            ) from e
        return [row["category"] for row in rows]

    def count_gene_records(self, identifier: str) -> int:
        needle = identifier.strip().lower()
        try:
            row = self.db.fetchone(
                f"""
                SELECT COUNT(*) AS count FROM {EXPRESSION_TABLE}
                WHERE LOWER(gene) = %s OR LOWER(gene_name) = %s
                """,
                (needle, needle),
            )
        except psycopg.Error as e:
            raise CollaboratorUnavailableError(
                "Error querying expression data", details=str(e)
            ) from e
        return row["count"] if row else 0

    def insert_rows(self, rows: Iterable[tuple]) -> int:
        """COPY loader rows (LOAD_COLUMNS order) into the table; returns how many were written."""
        return self.db.copy_rows(EXPRESSION_TABLE, LOAD_COLUMNS, rows)
