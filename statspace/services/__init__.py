"""Schema adapter, result caching, batching and the engine facade."""

from .batch import BatchRequest, BatchResponse, RosterBatchRunner, compute_roster
from .result_cache import ResultCache, ResultKey
from .schema import normalise_tables, read_tables_from_directory, tables_from_mapping
from .stats_engine import StatsEngine

__all__ = [
    "BatchRequest",
    "BatchResponse",
    "ResultCache",
    "ResultKey",
    "RosterBatchRunner",
    "StatsEngine",
    "compute_roster",
    "normalise_tables",
    "read_tables_from_directory",
    "tables_from_mapping",
]
