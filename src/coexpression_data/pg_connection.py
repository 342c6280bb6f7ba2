"""
PostgreSQL access for the expression store.

One psycopg3 ConnectionPool per process serves both the API (curated pair
lookups, grouped expression views) and the loaders, which stream the Human
Protein Atlas TSV in through COPY.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, Optional, Sequence

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from .core.config import get_settings

logger = logging.getLogger(__name__)

Row = dict[str, Any]


class PostgresDB:
    """
    Pooled PostgreSQL connection manager.

    Every helper borrows a pooled connection, runs inside its own
    transaction and hands rows back as plain dicts. The pool is created
    closed; it opens on open() or on the first borrowed connection.
    """

    def __init__(
        self,
        connection_string: Optional[str] = None,
        min_pool_size: Optional[int] = None,
        max_pool_size: Optional[int] = None,
    ):
        settings = get_settings()
        self.connection_string = connection_string or settings.db_url
        if not self.connection_string:
            raise ValueError("DATABASE_URL is not set and no connection_string was given")

        max_size = max_pool_size or settings.database_pool_size
        min_size = min(min_pool_size or settings.database_min_pool_size, max_size)

        self._pool = ConnectionPool(
            self.connection_string,
            min_size=min_size,
            max_size=max_size,
            kwargs={"row_factory": dict_row},
            open=False,
            name="coexpression",
        )
        self._opened = False

    def open(self) -> None:
        """Open the pool and block until min_size connections are ready."""
        if self._opened:
            return
        self._pool.open(wait=True)
        self._opened = True
        logger.info("Database pool open (min=%d, max=%d)", self._pool.min_size, self._pool.max_size)

    @contextmanager
    def get_connection(self) -> Iterator[psycopg.Connection]:
        """Borrow a pooled connection, opening the pool on first use."""
        if not self._opened:
            self._pool.open()
            self._opened = True
        with self._pool.connection() as conn:
            yield conn

    @contextmanager
    def transaction(self) -> Iterator[psycopg.Connection]:
        """Borrowed connection whose work commits together or not at all."""
        with self.get_connection() as conn:
            try:
                yield conn
            except Exception:
                conn.rollback()
                raise
            conn.commit()

    @contextmanager
    def _cursor(self) -> Iterator[psycopg.Cursor]:
        with self.transaction() as conn:
            with conn.cursor() as cur:
                yield cur

    # -- Statements ----------------------------------------------------------

    def execute(self, query: str, params: Sequence[Any] = ()) -> None:
        with self._cursor() as cur:
            cur.execute(query, params)

    def executemany(self, query: str, params_list: Iterable[Sequence[Any]]) -> None:
        with self._cursor() as cur:
            cur.executemany(query, params_list)

    def executescript(self, script: str) -> None:
        """Run several ``;``-separated statements in one transaction."""
        with self._cursor() as cur:
            cur.execute(script)

    def fetchone(self, query: str, params: Sequence[Any] = ()) -> Optional[Row]:
        with self._cursor() as cur:
            cur.execute(query, params)
            row = cur.fetchone()
        return dict(row) if row else None

    def fetchall(self, query: str, params: Sequence[Any] = ()) -> list[Row]:
        with self._cursor() as cur:
            cur.execute(query, params)
            rows = cur.fetchall()
        return [dict(row) for row in rows]

    def copy_rows(self, table: str, columns: Sequence[str], rows: Iterable[Sequence[Any]]) -> int:
        """
        Bulk load rows with COPY FROM STDIN.

        Args:
            table: Target table
            columns: Column names, in the order each row lists its values
            rows: Row tuples

        Returns:
            Number of rows written
        """
        statement = sql.SQL("COPY {} ({}) FROM STDIN").format(
            sql.Identifier(table),
            sql.SQL(", ").join(sql.Identifier(c) for c in columns),
        )
        written = 0
        with self._cursor() as cur:
            with cur.copy(statement) as copy:
                for row in rows:
                    copy.write_row(row)
                    written += 1
        return written

    def close(self) -> None:
        self._pool.close()
        self._opened = False

    # -- Schema metadata -----------------------------------------------------

    def table_exists(self, table: str) -> bool:
        row = self.fetchone("SELECT to_regclass(%s) IS NOT NULL AS present", (table,))
        return bool(row and row["present"])

    def is_initialized(self) -> bool:
        """True once init_database has created the meta table."""
        return self.table_exists("meta")

    def get_meta(self, key: str) -> Optional[str]:
        row = self.fetchone("SELECT value FROM meta WHERE key = %s", (key,))
        return row["value"] if row else None

    def set_meta(self, key: str, value: str) -> None:
        self.execute(
            """
            INSERT INTO meta (key, value) VALUES (%s, %s)
            ON CONFLICT (key) DO UPDATE SET value = EXCLUDED.value, updated_at = NOW()
            """,
            (key, value),
        )


_postgres_db: Optional[PostgresDB] = None


def get_postgres_db() -> PostgresDB:
    """Process-wide PostgresDB built from DATABASE_URL."""
    global _postgres_db
    if _postgres_db is None:
        _postgres_db = PostgresDB()
    return _postgres_db


def close_postgres_db() -> None:
    global _postgres_db
    if _postgres_db is not None:
        _postgres_db.close()
        _postgres_db = None
