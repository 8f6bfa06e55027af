"""Schema resolution, projection and filtering of dynamic-column records.

This package provides:
- SchemaRegistry / prescan_schema: first-seen union of column names
- resolve_column_order / project: priority-first column order and row projection
- FilterPredicate / should_skip: substring filters on projected rows
"""

from tablemap.projection.filters import (
    FilterPredicate,
    normalize_filters,
    parse_filter,
    should_skip,
)
from tablemap.projection.prioritizer import project, resolve_column_order
from tablemap.projection.schema import SchemaRegistry, prescan_schema

__all__ = [
    "FilterPredicate",
    "normalize_filters",
    "parse_filter",
    "should_skip",
    "project",
    "resolve_column_order",
    "SchemaRegistry",
    "prescan_schema",
]
