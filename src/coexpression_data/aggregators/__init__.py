"""
Display-oriented aggregation of expression observations.

Groups two genes' observations into nested tissue/cell-type structures for
inspection and export.
"""

from .hierarchy import GroupedEntry, flatten_groups, format_category_label, group_observations

__all__ = [
    "GroupedEntry",
    "flatten_groups",
    "format_category_label",
    "group_observations",
]
