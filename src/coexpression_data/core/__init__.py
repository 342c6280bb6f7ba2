"""
Core module for Coexpression Data.

This module provides the foundational components:
- Configuration management (config.py)
- Data models (models.py)
- Axis / strategy enums (types.py)
- Domain exceptions (errors.py)
- Shared HTTP client infrastructure (http.py)

Usage:
    from coexpression_data.core import Settings, get_settings
    from coexpression_data.core import Axis, BinarizationStrategy
    from coexpression_data.core import ObservedExpression, SimilarityMetrics
    from coexpression_data.core.http import BaseApiClient, ExternalAPIError
"""

# Configuration
from .config import Settings, get_settings

# Errors
from .errors import (
    CoexpressionError,
    CollaboratorUnavailableError,
    EntityNotFoundError,
    FetchFailureError,
    InvalidInputError,
)

# Types
from .types import (
    AnalysisMode,
    Axis,
    BinarizationStrategy,
    CombineStrategy,
    DuplicateReducer,
    QueryType,
    SearchMode,
    EXPRESSION_TABLE,
    PAIRS_TABLE,
)

# Models
from .models import (
    BatchComplete,
    BatchFailed,
    EntityPair,
    EntityProfile,
    FeatureBundle,
    ObservedExpression,
    PairProfiles,
    PairResult,
    ProgressEvent,
    ProgressUpdate,
    SimilarityMetrics,
    StratifiedAnalysisResult,
    StratumCorrelation,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Errors
    "CoexpressionError",
    "CollaboratorUnavailableError",
    "EntityNotFoundError",
    "FetchFailureError",
    "InvalidInputError",
    # Types
    "AnalysisMode",
    "Axis",
    "BinarizationStrategy",
    "CombineStrategy",
    "DuplicateReducer",
    "QueryType",
    "SearchMode",
    "EXPRESSION_TABLE",
    "PAIRS_TABLE",
    # Models
    "BatchComplete",
    "BatchFailed",
    "EntityPair",
    "EntityProfile",
    "FeatureBundle",
    "ObservedExpression",
    "PairProfiles",
    "PairResult",
    "ProgressEvent",
    "ProgressUpdate",
    "SimilarityMetrics",
    "StratifiedAnalysisResult",
    "StratumCorrelation",
]
