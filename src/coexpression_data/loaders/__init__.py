"""Bulk loaders for the expression store."""

from .tsv import ExpressionLoader, load_pairs, parse_expression_line, read_pairs

__all__ = ["ExpressionLoader", "load_pairs", "parse_expression_line", "read_pairs"]
