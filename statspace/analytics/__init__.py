"""Aggregation, grouping and goalkeeper attribution over event tables."""

from .aggregation import compute_stats
from .filters import FilterSignature, MatchFilter, candidate_match_ids
from .goalkeepers import (
    AttributedGoal,
    ScorerRecord,
    attribute_goalkeeper,
    attribute_goals,
    compute_goalkeeper_grouped,
    compute_goalkeeper_stats,
    scorers_against_goalkeeper,
)
from .grouping import GroupDimension, compute_grouped

__all__ = [
    "AttributedGoal",
    "FilterSignature",
    "GroupDimension",
    "MatchFilter",
    "ScorerRecord",
    "attribute_goalkeeper",
    "attribute_goals",
    "candidate_match_ids",
    "compute_goalkeeper_grouped",
    "compute_goalkeeper_stats",
    "compute_grouped",
    "compute_stats",
    "scorers_against_goalkeeper",
]
