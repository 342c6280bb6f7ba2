"""
Pydantic models for co-expression entities.

These models are used for:
- Validating observations read from the expression store
- Type-safe similarity results and feature bundles
- Progress / terminal messages streamed to API callers
"""

from __future__ import annotations

from typing import Optional, Union

from pydantic import BaseModel, Field, computed_field


# =============================================================================
# Observations and Profiles
# =============================================================================


class ObservedExpression(BaseModel):
    """One (entity, tissue, cell type, cluster) intensity observation."""

    entity_id: str
    entity_display_name: str
    tissue_category: str
    cell_category: str
    cluster_label: str = ""
    intensity: float = Field(ge=0)

    def matches(self, identifier: str) -> bool:
        """Case-insensitive match on canonical id or display name."""
        needle = identifier.strip().lower()
        return (
            self.entity_id.lower() == needle
            or self.entity_display_name.lower() == needle
        )


class EntityProfile(BaseModel):
    """Expression profile fetched for a single entity."""

    entity_id: str
    display_name: str
    uniprot_ids: list[str] = Field(default_factory=list)
    tissue: dict[str, float] = Field(default_factory=dict)
    cell: dict[str, float] = Field(default_factory=dict)


class EntityPair(BaseModel):
    """An ordered receptor/ligand (or arbitrary gene) pair."""

    p1_id: str
    p1_name: str
    p2_id: str
    p2_name: str

    @computed_field
    @property
    def pair_id(self) -> str:
        """Stable identifier used in messages and logs."""
        return f"{self.p1_id}-{self.p2_id}"


# =============================================================================
# Similarity Models
# =============================================================================


class SimilarityMetrics(BaseModel):
    """Descriptive similarity metrics between two aligned vectors."""

    pearson_corr: float = Field(default=0.0, ge=-1, le=1)
    cosine_sim: float = Field(default=0.0, ge=-1, le=1)
    jaccard_index: float = Field(default=0.0, ge=0, le=1)
    l2_norm_diff: float = Field(default=0.0, ge=0)
    overlap_count: int = Field(default=0, ge=0)
    shared_top_k_count: int = Field(default=0, ge=0)
    common_types: int = Field(default=0, ge=0)


class FeatureBundle(BaseModel):
    """Per-axis and combined similarity for one pair."""

    tissue: SimilarityMetrics
    cell: SimilarityMetrics
    combined: SimilarityMetrics


class PairProfiles(BaseModel):
    """The two profiles a pair result was computed from."""

    p1: EntityProfile
    p2: EntityProfile


class PairResult(BaseModel):
    """A successfully scored pair."""

    pair: EntityPair
    features: FeatureBundle
    profiles: PairProfiles


# =============================================================================
# Stratified Analysis Models
# =============================================================================


class StratumCorrelation(SimilarityMetrics):
    """Metrics computed inside a single tissue or cell type."""

    category: str


class StratifiedAnalysisResult(BaseModel):
    """Per-tissue or per-cell-type correlations for one gene pair."""

    p1_name: str
    p1_id: str
    p2_name: str
    p2_id: str
    pair_id: str
    tissue_correlations: list[StratumCorrelation] = Field(default_factory=list)
    cell_correlations: list[StratumCorrelation] = Field(default_factory=list)


# =============================================================================
# Progress Messages
# =============================================================================


class ProgressUpdate(BaseModel):
    """Emitted before each profile fetch."""

    current_gene: str


class BatchComplete(BaseModel):
    """Terminal message for a processed page."""

    results: list[PairResult]
    errors: list[str] = Field(default_factory=list)
    has_more: bool
    page: int


class BatchFailed(BaseModel):
    """Terminal message when the request could not produce results."""

    error: str
    details: Optional[str] = None
    errors: Optional[list[str]] = None


ProgressEvent = Union[ProgressUpdate, BatchComplete, BatchFailed]
