"""
Pair ranking and batch processing.

Walks one page of candidate pairs sequentially, fetching both profiles,
aligning them per axis and combining the per-axis metrics. Progress is
reported as an async stream of events:

    ProgressUpdate*  then exactly one of  BatchComplete | BatchFailed

A pair that cannot be scored (unknown gene, transient fetch failure) is
recorded as an error string naming the pair and processing continues.
Request-fatal errors (InvalidInputError, CollaboratorUnavailableError)
propagate to the caller.

Cancellation is cooperative: ``is_disconnected`` is awaited before every
fetch, and the generator stops without a terminal event once it reports
True. Closing the generator early has the same effect.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import AsyncIterator, Awaitable, Callable, Optional, Sequence

from ..core.errors import EntityNotFoundError, FetchFailureError
from ..core.models import (
    BatchComplete,
    BatchFailed,
    EntityPair,
    EntityProfile,
    PairProfiles,
    PairResult,
    ProgressEvent,
    ProgressUpdate,
)
from ..core.types import BinarizationStrategy, CombineStrategy
from ..similarity.combiner import combine_features
from ..similarity.metrics import DEFAULT_TOP_K
from ..similarity.vectors import align_vectors

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50

ProfileFetcher = Callable[[str], Awaitable[Optional[EntityProfile]]]
DisconnectCheck = Callable[[], Awaitable[bool]]

ALL_FAILED_MESSAGE = "No valid expression data found for any gene pairs"
ALL_FAILED_DETAILS = (
    "None of the specified gene pairs could be analyzed. "
    "Please check the gene names or UniProt IDs."
)


class PairState(str, Enum):
    """Lifecycle of one pair inside a batch."""

    pending = "pending"
    fetching_p1 = "fetching_p1"
    fetching_p2 = "fetching_p2"
    combining = "combining"
    succeeded = "succeeded"
    failed = "failed"


def paginate_pairs(
    pairs: Sequence[EntityPair], page: int, page_size: int = DEFAULT_PAGE_SIZE
) -> tuple[list[EntityPair], bool]:
    """
    Slice one page out of the full pair list.

    Returns:
        (page slice, has_more). has_more is True when the slice is full.
    """
    if page < 1:
        raise ValueError(f"page must be >= 1, got {page}")
    if page_size < 1:
        raise ValueError(f"page_size must be >= 1, got {page_size}")

    start = (page - 1) * page_size
    chunk = list(pairs[start:start + page_size])
    return chunk, len(chunk) == page_size


class _PairRun:
    """Tracks the state of a single pair and logs its terminal state once."""

    def __init__(self, pair: EntityPair):
        self.pair = pair
        self.state = PairState.pending
        self.reason: Optional[str] = None

    def advance(self, state: PairState) -> None:
        logger.debug("Pair %s: %s -> %s", self.pair.pair_id, self.state.value, state.value)
        self.state = state

    def succeed(self) -> None:
        self.state = PairState.succeeded
        logger.info("Pair %s succeeded", self.pair.pair_id)

    def fail(self, reason: str) -> None:
        self.state = PairState.failed
        self.reason = reason
        logger.info("Pair %s failed: %s", self.pair.pair_id, reason)


def _score_pair(
    pair: EntityPair,
    profile1: EntityProfile,
    profile2: EntityProfile,
    strategy: CombineStrategy,
    binarization: BinarizationStrategy,
    top_k: int,
) -> PairResult:
    tissue1, tissue2 = align_vectors(profile1.tissue, profile2.tissue)
    cell1, cell2 = align_vectors(profile1.cell, profile2.cell)
    features = combine_features(
        tissue1, tissue2, cell1, cell2,
        strategy=strategy,
        binarization=binarization,
        top_k=top_k,
    )
    return PairResult(
        pair=pair,
        features=features,
        profiles=PairProfiles(p1=profile1, p2=profile2),
    )


async def process_pairs(
    pairs: Sequence[EntityPair],
    page: int,
    page_size: int,
    fetch_profile: ProfileFetcher,
    *,
    is_disconnected: Optional[DisconnectCheck] = None,
    binarization: BinarizationStrategy = BinarizationStrategy.median,
    top_k: int = DEFAULT_TOP_K,
    strategy: CombineStrategy = CombineStrategy.concatenate,
) -> AsyncIterator[ProgressEvent]:
    """
    Score one page of pairs, yielding progress and a terminal event.

    Args:
        pairs: Full ordered pair list; only the requested page is processed
        page: 1-based page number
        page_size: Pairs per page
        fetch_profile: Coroutine returning a profile, or None when unknown
        is_disconnected: Optional coroutine reporting consumer disconnect
        binarization: Threshold policy for jaccard / overlap
        top_k: Top-k size for shared_top_k_count
        strategy: How the combined metrics are derived

    Yields:
        ProgressUpdate before each fetch, then BatchComplete or BatchFailed
    """
    chunk, has_more = paginate_pairs(pairs, page, page_size)
    results: list[PairResult] = []
    errors: list[str] = []

    async def cancelled() -> bool:
        return is_disconnected is not None and await is_disconnected()

    for pair in chunk:
        run = _PairRun(pair)
        profiles: list[EntityProfile] = []

        try:
            for identifier, state in (
                (pair.p1_id, PairState.fetching_p1),
                (pair.p2_id, PairState.fetching_p2),
            ):
                if await cancelled():
                    logger.info("Consumer disconnected, stopping at pair %s", pair.pair_id)
                    return

                run.advance(state)
                yield ProgressUpdate(current_gene=identifier)

                profile = await fetch_profile(identifier)
                if profile is None:
                    raise EntityNotFoundError(identifier)
                profiles.append(profile)

            run.advance(PairState.combining)
            results.append(_score_pair(pair, profiles[0], profiles[1], strategy, binarization, top_k))
            run.succeed()

        except (EntityNotFoundError, FetchFailureError) as e:
            role = "p1" if run.state is PairState.fetching_p1 else "p2"
            gene = pair.p1_id if role == "p1" else pair.p2_id
            message = (
                f'Error processing pair "{pair.pair_id}": '
                f'could not fetch expression data for {role} "{gene}" ({e.message})'
            )
            run.fail(message)
            errors.append(message)

    # list.sort is stable, so ties keep input order
    results.sort(key=lambda r: r.features.combined.pearson_corr, reverse=True)

    if chunk and not results:
        logger.warning("All %d pairs on page %d failed", len(chunk), page)
        yield BatchFailed(error=ALL_FAILED_MESSAGE, details=ALL_FAILED_DETAILS, errors=errors)
        return

    logger.info(
        "Page %d: %d pairs scored, %d errors, has_more=%s",
        page, len(results), len(errors), has_more,
    )
    yield BatchComplete(results=results, errors=errors, has_more=has_more, page=page)


async def run_batch(
    pairs: Sequence[EntityPair],
    page: int,
    page_size: int,
    fetch_profile: ProfileFetcher,
    **kwargs,
) -> Optional[BatchComplete | BatchFailed]:
    """Drive process_pairs to completion and return its terminal event."""
    terminal: Optional[BatchComplete | BatchFailed] = None
    async for event in process_pairs(pairs, page, page_size, fetch_profile, **kwargs):
        if not isinstance(event, ProgressUpdate):
            terminal = event
    return terminal
