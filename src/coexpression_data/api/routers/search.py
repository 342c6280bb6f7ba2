"""
Search router - ranks gene pairs by co-expression.

Endpoints:
- GET / - Server-Sent Events stream of batch progress and ranked results

Stream format:
    data: {"current_gene": "TNF"}
    data: {"current_gene": "TNFRSF1A"}
    ...
    data: {"results": [...], "errors": [...], "has_more": false, "page": 1}

or, when nothing could be scored, a single terminal error:
    data: {"error": "...", "details": "...", "errors": [...]}
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Query, Request
from fastapi.responses import StreamingResponse

from ..dependencies import PairRepoDependency, ProfileFetcherDependency, SettingsDependency
from ..errors import ValidationError
from ..streaming import single_event_response, sse_response
from ...core.errors import CoexpressionError, EntityNotFoundError, InvalidInputError
from ...core.models import BatchFailed
from ...core.types import QueryType, SearchMode
from ...services.pairs import resolve_pairs
from ...services.ranking import process_pairs

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_class=StreamingResponse)
async def search_pairs(
    request: Request,
    settings: SettingsDependency,
    pair_repository: PairRepoDependency,
    fetch_profile: ProfileFetcherDependency,
    query: Annotated[
        str | None, Query(description="Gene name or UniProt ID (comma-separated in compare mode)")
    ] = None,
    second_query: Annotated[
        str | None, Query(description="Second comma-separated gene list (compare mode)")
    ] = None,
    query_type: Annotated[
        QueryType, Query(description="Which side of the pair the query gene is on")
    ] = QueryType.receptor,
    search_mode: Annotated[
        SearchMode | None, Query(description="all: curated pairs; compare: cartesian product")
    ] = None,
    page: Annotated[int, Query(ge=1, description="Page number (1-indexed)")] = 1,
    page_size: Annotated[int | None, Query(ge=1, description="Pairs per page")] = None,
) -> StreamingResponse:
    """
    Stream co-expression scores for one page of gene pairs.

    Progress events name each gene as its profile is fetched. Pairs that
    cannot be scored are reported in ``errors``; results are sorted by the
    combined Pearson correlation, highest first.
    """
    if not query or search_mode is None or (
        search_mode is SearchMode.compare and not second_query
    ):
        raise ValidationError(
            "Missing required parameters",
            detail="query and search_mode are required; compare mode also needs second_query",
        )

    size = min(page_size or settings.default_page_size, settings.max_page_size)

    try:
        pairs = resolve_pairs(search_mode, query, second_query, query_type, pair_repository)
    except InvalidInputError as e:
        return single_event_response(BatchFailed(error=e.message, details=e.details))
    except CoexpressionError as e:
        logger.info("Search for %s rejected: %s", query, e.message)
        return single_event_response(_pair_source_error(e, query, query_type))

    logger.info(
        "Search %s (%s): %d pairs, page %d, page_size %d",
        query, search_mode.value, len(pairs), page, size,
    )

    events = process_pairs(
        pairs,
        page,
        size,
        fetch_profile,
        is_disconnected=request.is_disconnected,
        binarization=settings.binarization,
        top_k=settings.top_k,
        strategy=settings.combine_strategy,
    )
    return sse_response(events)


def _pair_source_error(exc: CoexpressionError, query: str, query_type: QueryType) -> BatchFailed:
    if isinstance(exc, EntityNotFoundError):
        return BatchFailed(
            error=f'No {query_type.value} found with gene name or UniProt ID "{query}"',
            details=(
                f'The {query_type.value} "{query}" was not found in our database. '
                "Please check the gene name or UniProt ID and try again."
            ),
        )
    return BatchFailed(error=exc.message, details=exc.details)
