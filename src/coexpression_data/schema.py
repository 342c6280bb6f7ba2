"""
Database schema management for the expression store.

Creates the observation and pair tables with lower-case lookup indexes, and
tracks the applied schema version in the meta table.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .core.types import EXPRESSION_TABLE, PAIRS_TABLE

if TYPE_CHECKING:
    from .pg_connection import PostgresDB

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "1"

SCHEMA_SQL = f"""
CREATE TABLE IF NOT EXISTS meta (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS {EXPRESSION_TABLE} (
    id BIGSERIAL PRIMARY KEY,
    gene TEXT NOT NULL,
    gene_name TEXT NOT NULL,
    tissue TEXT NOT NULL,
    cluster TEXT NOT NULL DEFAULT '',
    cell_type TEXT NOT NULL,
    read_count INTEGER,
    ntpm DOUBLE PRECISION NOT NULL CHECK (ntpm >= 0)
);

CREATE INDEX IF NOT EXISTS idx_{EXPRESSION_TABLE}_gene_lower
    ON {EXPRESSION_TABLE} (LOWER(gene));
CREATE INDEX IF NOT EXISTS idx_{EXPRESSION_TABLE}_gene_name_lower
    ON {EXPRESSION_TABLE} (LOWER(gene_name));
CREATE INDEX IF NOT EXISTS idx_{EXPRESSION_TABLE}_tissue
    ON {EXPRESSION_TABLE} (tissue);
CREATE INDEX IF NOT EXISTS idx_{EXPRESSION_TABLE}_cell_type
    ON {EXPRESSION_TABLE} (cell_type);

CREATE TABLE IF NOT EXISTS {PAIRS_TABLE} (
    id BIGSERIAL PRIMARY KEY,
    p1_id TEXT NOT NULL,
    p1_name TEXT NOT NULL,
    p2_id TEXT NOT NULL,
    p2_name TEXT NOT NULL,
    UNIQUE (p1_id, p2_id)
);

CREATE INDEX IF NOT EXISTS idx_{PAIRS_TABLE}_p1_name_lower
    ON {PAIRS_TABLE} (LOWER(p1_name));
CREATE INDEX IF NOT EXISTS idx_{PAIRS_TABLE}_p2_name_lower
    ON {PAIRS_TABLE} (LOWER(p2_name));
"""

MANAGED_TABLES = ("meta", EXPRESSION_TABLE, PAIRS_TABLE)


def init_database(db: "PostgresDB") -> None:
    """
    Create all tables and indexes (idempotent) and record the schema version.

    Args:
        db: Database connection
    """
    logger.info("Initializing expression database schema")
    db.executescript(SCHEMA_SQL)
    db.set_meta("schema_version", SCHEMA_VERSION)
    logger.info("Database initialized at schema version %s", SCHEMA_VERSION)


def get_schema_version(db: "PostgresDB") -> str:
    """Get the current schema version."""
    if not db.is_initialized():
        return "0"

    result = db.get_meta("schema_version")
    return result or "unknown"


def list_tables(db: "PostgresDB") -> list[str]:
    """List all tables in the public schema."""
    rows = db.fetchall(
        """
        SELECT table_name FROM information_schema.tables
        WHERE table_schema = 'public' AND table_type = 'BASE TABLE'
        ORDER BY table_name
        """
    )
    return [row["table_name"] for row in rows]


def get_table_counts(db: "PostgresDB") -> dict[str, int]:
    """Get row counts for the managed tables that exist."""
    existing = set(list_tables(db))
    counts = {}

    for table in MANAGED_TABLES:
        if table not in existing:
            continue
        result = db.fetchone(f"SELECT COUNT(*) as count FROM {table}")
        counts[table] = result["count"] if result else 0

    return counts
