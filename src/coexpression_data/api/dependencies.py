"""
Dependency injection for API endpoints.

Routes use the SYNC database connection: psycopg3's pooled connections are
cheap, and the slow part of a search is the profile fetch, which is async.

Every dependency here is overridable through ``app.dependency_overrides``;
tests swap in in-memory repositories and a fake profile fetcher.
"""

import logging
from typing import Annotated, Optional

from fastapi import Depends

from ..core.config import Settings, get_settings
from ..external.protein_atlas import ProteinAtlasClient
from ..pg_connection import PostgresDB, close_postgres_db, get_postgres_db
from ..repositories.base import ExpressionRepository, PairRepository
from ..repositories.expression import PostgresExpressionRepository
from ..repositories.pairs import PostgresPairRepository
from ..services.ranking import ProfileFetcher
from .errors import ServiceUnavailableError

logger = logging.getLogger(__name__)

SettingsDependency = Annotated[Settings, Depends(get_settings)]


# =============================================================================
# Database
# =============================================================================

_db_instance: PostgresDB | None = None


def get_db() -> PostgresDB:
    """
    Dependency that provides synchronous database connection.

    Raises:
        ServiceUnavailableError: If DATABASE_URL is not configured
    """
    global _db_instance
    if _db_instance is None:
        if not get_settings().db_url:
            raise ServiceUnavailableError("database", detail="DATABASE_URL is not configured")
        _db_instance = get_postgres_db()
    return _db_instance


def close_db() -> None:
    """Close the global database connection. Called at app shutdown."""
    global _db_instance
    if _db_instance is not None:
        close_postgres_db()
        _db_instance = None


DBDependency = Annotated[PostgresDB, Depends(get_db)]


def get_expression_repository(db: DBDependency) -> ExpressionRepository:
    return PostgresExpressionRepository(db)


def get_pair_repository(settings: SettingsDependency) -> Optional[PairRepository]:
    """
    Curated pair source, or None when no database is configured.

    Compare-mode searches never touch the pair table, so they keep working
    without a database.
    """
    if not settings.db_url:
        return None
    return PostgresPairRepository(get_db())


ExpressionRepoDependency = Annotated[ExpressionRepository, Depends(get_expression_repository)]
PairRepoDependency = Annotated[Optional[PairRepository], Depends(get_pair_repository)]


# =============================================================================
# Profile fetch
# =============================================================================

_atlas_client: ProteinAtlasClient | None = None


def get_atlas_client() -> ProteinAtlasClient:
    """Shared Protein Atlas client; one rate limiter across all requests."""
    global _atlas_client
    if _atlas_client is None:
        _atlas_client = ProteinAtlasClient.from_settings()
    return _atlas_client


async def close_atlas_client() -> None:
    """Close the shared Protein Atlas client. Called at app shutdown."""
    global _atlas_client
    if _atlas_client is not None:
        await _atlas_client.close()
        _atlas_client = None


def get_profile_fetcher(
    client: Annotated[ProteinAtlasClient, Depends(get_atlas_client)],
) -> ProfileFetcher:
    return client.get_expression_profile


ProfileFetcherDependency = Annotated[ProfileFetcher, Depends(get_profile_fetcher)]
