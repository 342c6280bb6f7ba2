"""
Repository pattern for data access.

Abstract interfaces live in base.py; PostgreSQL implementations in
expression.py and pairs.py.
"""

from .base import ExpressionRepository, PairRepository
from .expression import PostgresExpressionRepository, row_to_observation
from .pairs import PostgresPairRepository

__all__ = [
    "ExpressionRepository",
    "PairRepository",
    "PostgresExpressionRepository",
    "PostgresPairRepository",
    "row_to_observation",
]
