"""
Pair sources for the batch processor.

Compare mode builds the cartesian product of two comma-separated gene
lists. Curated mode looks pairs up in the receptor/ligand table through
PairRepository; see resolve_pairs().
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from ..core.errors import CollaboratorUnavailableError, EntityNotFoundError, InvalidInputError
from ..core.models import EntityPair
from ..core.types import QueryType, SearchMode

if TYPE_CHECKING:
    from ..repositories.base import PairRepository

logger = logging.getLogger(__name__)


def split_identifiers(value: Optional[str]) -> list[str]:
    """Split a comma-separated list, trimming blanks and dropping empties."""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def cartesian_pairs(query: str, second_query: Optional[str]) -> list[EntityPair]:
    """
    Every (first, second) combination of two comma-separated gene lists.

    Order follows the first list, then the second.

    Raises:
        InvalidInputError: If either list is empty after trimming
    """
    firsts = split_identifiers(query)
    seconds = split_identifiers(second_query)
    if not firsts or not seconds:
        raise InvalidInputError(
            "No valid gene pairs to analyze",
            details="Please enter at least one receptor and one ligand.",
        )

    return [
        EntityPair(p1_id=first, p1_name=first, p2_id=second, p2_name=second)
        for first in firsts
        for second in seconds
    ]


def resolve_pairs(
    search_mode: SearchMode,
    query: Optional[str],
    second_query: Optional[str] = None,
    query_type: QueryType = QueryType.receptor,
    repository: Optional["PairRepository"] = None,
) -> list[EntityPair]:
    """
    Produce the full ordered pair list for a search request.

    Raises:
        InvalidInputError: Missing query, or compare mode without a second list
        EntityNotFoundError: Curated mode and the gene is not in any pair
        CollaboratorUnavailableError: Curated mode without a reachable pair source
    """
    if not query or not query.strip():
        raise InvalidInputError("Missing required parameters", details="query is required")

    if SearchMode(search_mode) is SearchMode.compare:
        if not second_query:
            raise InvalidInputError(
                "Missing required parameters",
                details="second_query is required in compare mode",
            )
        pairs = cartesian_pairs(query, second_query)
        logger.debug("Compare mode: %d pairs", len(pairs))
        return pairs

    if repository is None:
        raise CollaboratorUnavailableError(
            "Receptor-ligand pairs are unavailable",
            details="No pair database is configured",
        )

    query_type = QueryType(query_type)
    pairs = repository.find_pairs(query.strip(), query_type)
    if not pairs:
        raise EntityNotFoundError(query.strip(), source=query_type.value)
    logger.debug("Curated mode (%s %s): %d pairs", query_type.value, query, len(pairs))
    return pairs
