"""API routers module."""

from . import analysis, expression, search

__all__ = ["analysis", "expression", "search"]
