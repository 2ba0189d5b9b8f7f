"""Lookup maps over event tables."""

from .event_index import IndexSet, build_indices

__all__ = [
    "IndexSet",
    "build_indices",
]
