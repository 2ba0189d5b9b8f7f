"""Split an entity's stat vector by competition, season or opponent."""
from __future__ import annotations

import logging
import re
from collections import defaultdict
from enum import Enum
from typing import Collection, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple, Union

from ..exceptions import UnsupportedDimensionError
from ..indexes.event_index import IndexSet
from ..models import EventTables, Match, StatVector
from .aggregation import (
    _RowSource,
    compute_stats,
    normalise_candidates,
    normalise_team_scope,
    usable_indices,
)

LOGGER = logging.getLogger(__name__)

SEASON_YEAR_PATTERN = re.compile(r"(\d{4})")

GroupedStats = List[Tuple[str, StatVector]]


class GroupDimension(str, Enum):
    COMPETITION = "competition"
    SEASON = "season"
    OPPONENT = "opponent"


def resolve_dimension(dimension: Union[str, GroupDimension]) -> GroupDimension:
    if isinstance(dimension, GroupDimension):
        return dimension
    try:
        return GroupDimension(str(dimension).strip().lower())
    except ValueError as exc:
        raise UnsupportedDimensionError(dimension) from exc


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------


def season_year(label: str) -> Optional[int]:
    match = SEASON_YEAR_PATTERN.search(label or "")
    return int(match.group(1)) if match else None


def order_seasons(labels: Iterable[str]) -> List[str]:
    """
    Latest season first by its 4-digit year; labels without a year follow,
    in descending lexicographic order.
    """
    dated: List[Tuple[int, str]] = []
    undated: List[str] = []
    for label in labels:
        year = season_year(label)
        if year is None:
            undated.append(label)
        else:
            dated.append((year, label))
    ordered = [label for _year, label in sorted(dated, reverse=True)]
    ordered.extend(sorted(undated, reverse=True))
    return ordered


def competition_rank(name: str, priority: Sequence[str]) -> int:
    """
    Position of ``name`` in the priority list; unranked names rank after all entries.

    An exact entry wins; otherwise the first entry contained in the name is used.
    """
    for position, entry in enumerate(priority):
        if name == entry:
            return position
    for position, entry in enumerate(priority):
        if entry and entry in name:
            return position
    return len(priority)


def order_competitions(names: Iterable[str], priority: Sequence[str] = ()) -> List[str]:
    return sorted(names, key=lambda name: (competition_rank(name, priority), name))


def order_by_contribution(entries: Iterable[Tuple[str, StatVector]]) -> GroupedStats:
    return sorted(entries, key=lambda item: (-item[1].goals_and_assists, item[0]))


# ---------------------------------------------------------------------------
# Bucketing
# ---------------------------------------------------------------------------


def _match_lookup(tables: Optional[EventTables], indices: Optional[IndexSet]) -> Mapping[str, Match]:
    if indices is not None:
        return indices.matches_by_id
    if tables is not None:
        return tables.match_lookup()
    return {}


def _attribute_buckets(
    attribute: str,
    candidates: Collection[str],
    lookup: Mapping[str, Match],
    indices: Optional[IndexSet],
) -> Dict[str, Set[str]]:
    buckets: Dict[str, Set[str]] = defaultdict(set)
    for match_id in candidates:
        match = lookup.get(match_id)
        if match is None:
            continue
        value = getattr(match, attribute)
        if value:
            buckets[value].add(match_id)
    if indices is None:
        return dict(buckets)
    # Resolve each value through the grouping map so both paths share one contract.
    return {value: set(candidates).intersection(indices.matches_in(attribute, value)) for value in buckets}


def _opponent_buckets(
    entity: str,
    team_scope: Collection[str],
    candidates: Collection[str],
    tables: Optional[EventTables],
    indices: Optional[IndexSet],
    lookup: Mapping[str, Match],
) -> Dict[str, Set[str]]:
    """
    Opponents seen from the entity's side: for every candidate match the
    entity has rows in, the team on the other side of the entity's team.
    """
    source = _RowSource(entity, frozenset(team_scope), frozenset(candidates), tables, indices)
    buckets: Dict[str, Set[str]] = defaultdict(set)
    unresolved = 0
    for row in [*source.lineup(), *source.actions()]:
        match = lookup.get(row.match_id)
        opponent = match.opponent_of(row.team) if match is not None else None
        if opponent:
            buckets[opponent].add(row.match_id)
        else:
            unresolved += 1
    if unresolved:
        LOGGER.debug("Could not resolve the opponent for %s rows of %s", unresolved, entity)
    return dict(buckets)


def compute_grouped(
    entity: Optional[str],
    dimension: Union[str, GroupDimension],
    team_scope: Optional[Iterable[str]],
    candidate_match_ids: Optional[Collection[str]],
    tables: Optional[EventTables],
    indices: Optional[IndexSet] = None,
    competition_priority: Sequence[str] = (),
) -> GroupedStats:
    """
    Compute one stat vector per dimension value present in the candidate matches.

    Values whose vector is entirely zero are dropped. Seasons come latest first,
    competitions follow ``competition_priority`` and opponents are ordered by
    goals plus assists, highest first.
    """
    resolved = resolve_dimension(dimension)
    if not entity:
        return []
    indices = usable_indices(indices)
    candidates = normalise_candidates(candidate_match_ids)
    if not candidates or (tables is None and indices is None):
        return []
    scope = normalise_team_scope(team_scope)
    lookup = _match_lookup(tables, indices)

    if resolved is GroupDimension.OPPONENT:
        buckets = _opponent_buckets(entity, scope, candidates, tables, indices, lookup)
    else:
        buckets = _attribute_buckets(resolved.value, candidates, lookup, indices)

    if resolved is GroupDimension.SEASON:
        values = order_seasons(buckets)
    elif resolved is GroupDimension.COMPETITION:
        values = order_competitions(buckets, competition_priority)
    else:
        values = list(buckets)

    results: GroupedStats = []
    for value in values:
        stats = compute_stats(entity, scope, buckets[value], tables, indices)
        if stats.is_zero():
            continue
        results.append((value, stats))

    if resolved is GroupDimension.OPPONENT:
        results = order_by_contribution(results)
    return results
