"""
Analysis router - stratified tissue / cell-type co-expression.

Endpoints:
- GET /tissue-cell - one SSE frame with per-stratum correlations

Modes:
- tissue-specific: for each tissue, correlate the genes across its cell types
- cell-specific: for each cell type, correlate the genes across tissues
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Query
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from ..dependencies import ExpressionRepoDependency, SettingsDependency
from ..streaming import single_event_response
from ...core.errors import CoexpressionError
from ...core.models import BatchFailed, StratifiedAnalysisResult
from ...core.types import AnalysisMode
from ...services.pairs import split_identifiers
from ...services.stratified import analyze_pair

logger = logging.getLogger(__name__)

router = APIRouter()


class AnalysisResponse(BaseModel):
    results: list[StratifiedAnalysisResult]


@router.get("/tissue-cell", response_class=StreamingResponse)
async def tissue_cell_analysis(
    gene1: Annotated[str, Query(min_length=1, description="First gene name or ID")],
    gene2: Annotated[str, Query(min_length=1, description="Second gene name or ID")],
    analysis_mode: Annotated[AnalysisMode, Query(description="tissue-specific or cell-specific")],
    repo: ExpressionRepoDependency,
    settings: SettingsDependency,
    selected_items: Annotated[
        str | None, Query(description="Comma-separated tissues or cell types to analyze")
    ] = None,
) -> StreamingResponse:
    """Per-tissue or per-cell-type correlations for one gene pair."""
    try:
        records = repo.fetch_observations([gene1, gene2])
        result = analyze_pair(
            records,
            gene1,
            gene2,
            analysis_mode,
            selected=split_identifiers(selected_items) or None,
            binarization=settings.binarization,
            top_k=settings.top_k,
            reducer=settings.duplicate_reducer,
        )
    except CoexpressionError as e:
        logger.info("Analysis %s/%s failed: %s", gene1, gene2, e.message)
        return single_event_response(BatchFailed(error=e.message, details=e.details))

    return single_event_response(AnalysisResponse(results=[result]))
