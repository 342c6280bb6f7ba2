"""PostgreSQL curated receptor/ligand pair source."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable

import psycopg

from ..core.errors import CollaboratorUnavailableError
from ..core.models import EntityPair
from ..core.types import PAIRS_TABLE, QueryType
from .base import PairRepository

if TYPE_CHECKING:
    from ..pg_connection import PostgresDB

logger = logging.getLogger(__name__)

# Receptors sit on p1, ligands on p2
_SIDE_COLUMNS = {
    QueryType.receptor: ("p1_id", "p1_name"),
    QueryType.ligand: ("p2_id", "p2_name"),
}

UPSERT_SQL = f"""
    INSERT INTO {PAIRS_TABLE} (p1_id, p1_name, p2_id, p2_name)
    VALUES (%s, %s, %s, %s)
    ON CONFLICT (p1_id, p2_id) DO UPDATE
    SET p1_name = EXCLUDED.p1_name, p2_name = EXCLUDED.p2_name
"""


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class PostgresPairRepository(PairRepository):
    """PostgreSQL implementation of the curated pair source."""

    def __init__(self, db: "PostgresDB"):
        self.db = db

    def find_pairs(self, query: str, query_type: QueryType) -> list[EntityPair]:
        id_column, name_column = _SIDE_COLUMNS[QueryType(query_type)]
        try:
            rows = self.db.fetchall(
                f"""
                SELECT p1_id, p1_name, p2_id, p2_name
                FROM {PAIRS_TABLE}
                WHERE {id_column} = %s OR {name_column} ILIKE %s
                ORDER BY id
                """,
                (query, f"%{_escape_like(query)}%"),
            )
        except psycopg.Error as e:
            logger.error("Pair lookup failed for %s: %s", query, e)
            raise CollaboratorUnavailableError(
                "Error querying receptor-ligand pairs", details=str(e)
            ) from e

        return [EntityPair(**row) for row in rows]

    def upsert_pairs(self, pairs: Iterable[EntityPair]) -> int:
        """Insert or update curated pairs; returns how many were written."""
        params = [(p.p1_id, p.p1_name, p.p2_id, p.p2_name) for p in pairs]
        if params:
            self.db.executemany(UPSERT_SQL, params)
        return len(params)
