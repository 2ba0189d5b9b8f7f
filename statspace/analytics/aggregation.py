"""Reduce filtered lineup and action rows into a :class:`StatVector`."""
from __future__ import annotations

from collections import Counter
from typing import AbstractSet, Collection, FrozenSet, Iterable, List, Optional, Set, Tuple

from ..indexes.event_index import IndexSet
from ..models import (
    GOAL_KINDS,
    ActionEvent,
    ActionKind,
    EventTables,
    LineupAppearance,
    StatVector,
)

EMPTY_STATS = StatVector()

# Counters read straight off the action table by exact kind.
DIRECT_KIND_COUNTERS = (
    ("penalty_assist_goals", ActionKind.PENALTY_ASSIST),
    ("penalty_missed", ActionKind.PENALTY_MISSED),
    ("penalty_assist_missed", ActionKind.PENALTY_ASSIST_MISSED),
    ("penalty_commit_goal", ActionKind.PENALTY_CONCEDED_GOAL),
    ("penalty_commit_missed", ActionKind.PENALTY_CONCEDED_MISSED),
)


def normalise_team_scope(team_scope: Optional[Iterable[str]]) -> FrozenSet[str]:
    """Teams to restrict rows to; blank entries and the "All" placeholder mean no restriction."""
    if not team_scope:
        return frozenset()
    if isinstance(team_scope, str):
        team_scope = (team_scope,)
    cleaned = {str(team).strip() for team in team_scope if team is not None}
    cleaned.discard("")
    cleaned.discard("All")
    return frozenset(cleaned)


def normalise_candidates(candidate_match_ids: Optional[Iterable[str]]) -> FrozenSet[str]:
    if not candidate_match_ids:
        return frozenset()
    if isinstance(candidate_match_ids, frozenset):
        return candidate_match_ids
    return frozenset(candidate_match_ids)


def usable_indices(indices: Optional[IndexSet]) -> Optional[IndexSet]:
    if indices is None or indices.disposed:
        return None
    return indices


class _RowSource:
    """
    Resolve lineup/action rows for one entity either through an index or by scanning.

    The scan applies exactly the index's semantics: rows must name the entity,
    fall in the candidate set, belong to a known match and, when a team scope
    is given, to one of its teams.
    """

    def __init__(
        self,
        entity: str,
        team_scope: AbstractSet[str],
        candidates: FrozenSet[str],
        tables: Optional[EventTables],
        indices: Optional[IndexSet],
    ):
        self.entity = entity
        self.team_scope = team_scope
        self.candidates = candidates
        self.tables = tables
        self.indices = indices

    def _accepts(self, row) -> bool:
        if row.player != self.entity or row.match_id not in self.candidates:
            return False
        if self.tables is not None and row.match_id not in self.tables.match_ids:
            return False
        return not self.team_scope or row.team in self.team_scope

    def lineup(self) -> List[LineupAppearance]:
        if self.indices is not None:
            return self.indices.matches_for(self.entity, self.candidates, team_scope=self.team_scope)
        if self.tables is None:
            return []
        return [row for row in self.tables.lineups if self._accepts(row)]

    def actions(self, kinds: Optional[AbstractSet[ActionKind]] = None) -> List[ActionEvent]:
        if self.indices is not None:
            return self.indices.actions_for(self.entity, self.candidates, kinds, team_scope=self.team_scope)
        if self.tables is None:
            return []
        return [
            row
            for row in self.tables.actions
            if (kinds is None or row.kind in kinds) and self._accepts(row)
        ]


def _milestones(per_match: Counter) -> Tuple[int, int, int]:
    two = three = four_plus = 0
    for count in per_match.values():
        if count == 2:
            two += 1
        elif count == 3:
            three += 1
        elif count >= 4:
            four_plus += 1
    return two, three, four_plus


def compute_stats(
    entity: Optional[str],
    team_scope: Optional[Iterable[str]],
    candidate_match_ids: Optional[Collection[str]],
    tables: Optional[EventTables],
    indices: Optional[IndexSet] = None,
) -> StatVector:
    """
    Compute the 18-counter stat vector for ``entity`` over the candidate matches.

    ``candidate_match_ids`` must already reflect every other filter (season,
    competition, opponent, dates). ``team_scope`` optionally restricts rows to
    the given teams. With ``indices`` the rows are resolved through the lookup
    maps; without them the tables are scanned. Unknown or empty entities and
    missing tables yield an all-zero vector.
    """
    if not entity:
        return EMPTY_STATS
    indices = usable_indices(indices)
    if tables is None and indices is None:
        return EMPTY_STATS
    candidates = normalise_candidates(candidate_match_ids)
    if not candidates:
        return EMPTY_STATS

    source = _RowSource(entity, normalise_team_scope(team_scope), candidates, tables, indices)

    lineup = source.lineup()
    matches_played = len(lineup)
    total_minutes = sum(row.minutes for row in lineup)

    goals_by_match: Counter = Counter()
    assists_by_match: Counter = Counter()
    seen_goals: Set[Tuple[str, str]] = set()
    total_goals = total_assists = penalty_goals = free_kick_goals = 0
    for row in source.actions(GOAL_KINDS | {ActionKind.ASSIST}):
        if row.kind.is_goal:
            # Repeated rows for a timed goal are one goal; untimed goals cannot be told apart.
            minute = (row.minute or "").strip()
            if minute:
                if (row.match_id, minute) in seen_goals:
                    continue
                seen_goals.add((row.match_id, minute))
            total_goals += 1
            goals_by_match[row.match_id] += 1
            if row.kind is ActionKind.PENALTY_GOAL:
                penalty_goals += 1
            elif row.kind is ActionKind.FREE_KICK_GOAL:
                free_kick_goals += 1
        else:
            total_assists += 1
            assists_by_match[row.match_id] += 1

    brace, hat_trick, super_hat_trick = _milestones(goals_by_match)
    assists_2, assists_3, assists_4_plus = _milestones(assists_by_match)

    direct = {name: len(source.actions(frozenset({kind}))) for name, kind in DIRECT_KIND_COUNTERS}

    return StatVector(
        matches_played=matches_played,
        total_minutes=total_minutes,
        goals_and_assists=total_goals + total_assists,
        total_goals=total_goals,
        total_assists=total_assists,
        brace=brace,
        hat_trick=hat_trick,
        super_hat_trick=super_hat_trick,
        assists_2=assists_2,
        assists_3=assists_3,
        assists_4_plus=assists_4_plus,
        penalty_goals=penalty_goals,
        free_kick_goals=free_kick_goals,
        **direct,
    )
