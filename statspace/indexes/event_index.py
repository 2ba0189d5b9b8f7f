"""
In-memory lookup maps over a static snapshot of event tables.

``build_indices`` walks every table once and produces entity -> match -> rows
maps, per-match row lists and match groupings by competition, season and
team. Queries are resolved against a caller supplied candidate match-id set
and cost O(|candidates|) rather than O(|table|).

An :class:`IndexSet` is never patched. When the tables change, build a new one
and :meth:`IndexSet.dispose` the old one.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import (
    AbstractSet,
    Collection,
    Dict,
    Iterable,
    List,
    Optional,
    Sequence,
    TypeVar,
)

from ..models import ActionEvent, ActionKind, EventTables, GoalkeeperAppearance, LineupAppearance, Match

LOGGER = logging.getLogger(__name__)

Row = TypeVar("Row", LineupAppearance, ActionEvent, GoalkeeperAppearance)


@dataclass
class IndexSet:
    matches_by_id: Dict[str, Match] = field(default_factory=dict)
    lineup_by_entity: Dict[str, Dict[str, List[LineupAppearance]]] = field(default_factory=dict)
    lineup_by_match: Dict[str, List[LineupAppearance]] = field(default_factory=dict)
    actions_by_entity: Dict[str, Dict[str, List[ActionEvent]]] = field(default_factory=dict)
    actions_by_match: Dict[str, List[ActionEvent]] = field(default_factory=dict)
    keepers_by_entity: Dict[str, Dict[str, List[GoalkeeperAppearance]]] = field(default_factory=dict)
    keepers_by_match: Dict[str, List[GoalkeeperAppearance]] = field(default_factory=dict)
    matches_by_competition: Dict[str, List[str]] = field(default_factory=dict)
    matches_by_season: Dict[str, List[str]] = field(default_factory=dict)
    matches_by_team: Dict[str, List[str]] = field(default_factory=dict)
    disposed: bool = False

    # ------------------------------------------------------------------ queries

    def matches_for(
        self,
        entity: str,
        candidate_match_ids: Collection[str],
        *,
        team_scope: Optional[AbstractSet[str]] = None,
    ) -> List[LineupAppearance]:
        """
        Lineup rows of ``entity`` restricted to the candidate matches.
        """
        return _rows_for(self.lineup_by_entity, entity, candidate_match_ids, team_scope)

    def actions_for(
        self,
        entity: str,
        candidate_match_ids: Collection[str],
        kinds: Optional[AbstractSet[ActionKind]] = None,
        *,
        team_scope: Optional[AbstractSet[str]] = None,
    ) -> List[ActionEvent]:
        """
        Action rows of ``entity`` in the candidate matches, optionally limited to ``kinds``.
        """
        rows = _rows_for(self.actions_by_entity, entity, candidate_match_ids, team_scope)
        if kinds is None:
            return rows
        return [row for row in rows if row.kind in kinds]

    def keeper_appearances_for(
        self,
        entity: str,
        candidate_match_ids: Collection[str],
        *,
        team_scope: Optional[AbstractSet[str]] = None,
    ) -> List[GoalkeeperAppearance]:
        return _rows_for(self.keepers_by_entity, entity, candidate_match_ids, team_scope)

    def keepers_in_match(self, match_id: str) -> List[GoalkeeperAppearance]:
        return list(self.keepers_by_match.get(match_id, ()))

    def goals_in_match(self, match_id: str) -> List[ActionEvent]:
        return [row for row in self.actions_by_match.get(match_id, ()) if row.kind.is_goal]

    def matches_in(self, dimension: str, value: str) -> List[str]:
        """
        Match ids grouped under ``value`` for ``competition``, ``season`` or ``team``.
        """
        source = {
            "competition": self.matches_by_competition,
            "season": self.matches_by_season,
            "team": self.matches_by_team,
            "opponent": self.matches_by_team,
        }.get(dimension)
        if source is None:
            return []
        return list(source.get(value, ()))

    # ------------------------------------------------------------ lifecycle

    def dispose(self) -> None:
        """
        Release every map. The set must not be queried afterwards.
        """
        for value in vars(self).values():
            if isinstance(value, dict):
                value.clear()
        self.disposed = True


def _rows_for(
    by_entity: Dict[str, Dict[str, List[Row]]],
    entity: str,
    candidate_match_ids: Collection[str],
    team_scope: Optional[AbstractSet[str]],
) -> List[Row]:
    if not entity:
        return []
    per_match = by_entity.get(entity)
    if not per_match or not candidate_match_ids:
        return []

    # Walk whichever side is smaller; both lookups are O(1).
    if len(per_match) < len(candidate_match_ids):
        candidates = (
            candidate_match_ids
            if isinstance(candidate_match_ids, (set, frozenset))
            else set(candidate_match_ids)
        )
        match_ids: Iterable[str] = [match_id for match_id in per_match if match_id in candidates]
    else:
        match_ids = dict.fromkeys(candidate_match_ids)

    rows: List[Row] = []
    for match_id in match_ids:
        for row in per_match.get(match_id, ()):
            if team_scope and row.team not in team_scope:
                continue
            rows.append(row)
    return rows


def _index_rows(
    rows: Sequence[Row],
    known_matches: AbstractSet[str],
    by_entity: Dict[str, Dict[str, List[Row]]],
    by_match: Optional[Dict[str, List[Row]]] = None,
) -> int:
    skipped = 0
    for row in rows:
        if not row.player or not row.match_id:
            skipped += 1
            continue
        if row.match_id not in known_matches:
            skipped += 1
            continue
        by_entity.setdefault(row.player, {}).setdefault(row.match_id, []).append(row)
        if by_match is not None:
            by_match.setdefault(row.match_id, []).append(row)
    return skipped


def build_indices(tables: Optional[EventTables]) -> IndexSet:
    """
    Build every lookup map in one linear pass per table.
    """
    index = IndexSet()
    if tables is None:
        return index

    by_competition: Dict[str, List[str]] = defaultdict(list)
    by_season: Dict[str, List[str]] = defaultdict(list)
    by_team: Dict[str, List[str]] = defaultdict(list)
    for match in tables.matches:
        if not match.match_id:
            continue
        index.matches_by_id[match.match_id] = match
        if match.competition:
            by_competition[match.competition].append(match.match_id)
        if match.season:
            by_season[match.season].append(match.match_id)
        for team in {match.home_team, match.away_team}:
            if team:
                by_team[team].append(match.match_id)
    index.matches_by_competition = dict(by_competition)
    index.matches_by_season = dict(by_season)
    index.matches_by_team = dict(by_team)

    known = index.matches_by_id.keys()
    skipped = _index_rows(tables.lineups, known, index.lineup_by_entity, index.lineup_by_match)
    skipped += _index_rows(tables.actions, known, index.actions_by_entity, index.actions_by_match)
    skipped += _index_rows(tables.goalkeepers, known, index.keepers_by_entity, index.keepers_by_match)

    LOGGER.info(
        "Built indices for %s matches, %s players, %s goalkeepers",
        len(index.matches_by_id),
        len(index.lineup_by_entity.keys() | index.actions_by_entity.keys()),
        len(index.keepers_by_entity),
    )
    if skipped:
        LOGGER.debug("Skipped %s rows without player/match id or with unknown match ids", skipped)
    return index
