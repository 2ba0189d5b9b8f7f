"""
Custom exceptions for the statistics engine.
"""
from __future__ import annotations


class StatsEngineError(RuntimeError):
    """
    Generic statistics engine error.
    """


class UnsupportedDimensionError(StatsEngineError, ValueError):
    """
    Raised when a grouping dimension is not one of competition, season or opponent.
    """

    def __init__(self, dimension: object):
        super().__init__(f"Unsupported grouping dimension '{dimension}'")
        self.dimension = dimension


class SchemaError(StatsEngineError, ValueError):
    """
    Raised when a source table is not a sequence of records or a DataFrame.
    """

    def __init__(self, message: str, *, table: str | None = None):
        super().__init__(message)
        self.table = table
