"""Scan geometry, latitude sort indices and row reordering."""

from . import break_points, permute, sort_index, tables

__all__ = ["break_points", "permute", "sort_index", "tables"]
