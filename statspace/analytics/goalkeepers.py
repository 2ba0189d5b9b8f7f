"""
Goalkeeper goal attribution and goalkeeper statistics.

A conceded goal only names its scorer, team and minute, while the defending
side may have fielded a starter and a substitute keeper in the same match.
``attribute_goalkeeper`` decides which appearance is responsible:

1. no keeper for the defending side: the goal is not attributed;
2. a single keeper: that keeper;
3. a starter/substitute pair: decided on the goal minute against the
   starter's exit minute and the substitute's entry minute, defaulting to the
   starter when the minute is unknown and to the substitute when the minute
   falls between an exit and a later entry;
4. more rows than that: the first tagged starter/substitute pair as in (3),
   otherwise the first row, reported as a data-quality warning.

Per-keeper tallies (goals conceded, penalty and free-kick goals conceded,
clean sheets, streaks) are built on top of that decision, overall or split by
competition, season or opponent.
"""
from __future__ import annotations

import logging
import re
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Any, Collection, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple, Union

from ..indexes.event_index import IndexSet
from ..models import (
    ActionEvent,
    ActionKind,
    EventTables,
    GoalkeeperAppearance,
    GoalkeeperStats,
    KeeperRole,
    Match,
)
from .aggregation import _RowSource, normalise_candidates, normalise_team_scope, usable_indices
from .grouping import (
    GroupDimension,
    _attribute_buckets,
    _match_lookup,
    order_competitions,
    order_seasons,
    resolve_dimension,
)

LOGGER = logging.getLogger(__name__)

MINUTE_PATTERN = re.compile(r"^\s*(\d+)")

EMPTY_GOALKEEPER_STATS = GoalkeeperStats()


@dataclass(frozen=True)
class AttributedGoal:
    scorer: str
    minute: int
    match_id: str
    conceded_by: str
    kind: ActionKind
    team: str = ""


@dataclass(frozen=True)
class ScorerRecord:
    scorer: str
    teams: Tuple[str, ...]
    matches: int
    goals: int
    penalty_goals: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scorer": self.scorer,
            "teams": list(self.teams),
            "matches": self.matches,
            "goals": self.goals,
            "penalty_goals": self.penalty_goals,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "ScorerRecord":
        return cls(
            scorer=str(payload["scorer"]),
            teams=tuple(str(team) for team in payload.get("teams") or ()),
            matches=int(payload.get("matches", 0)),
            goals=int(payload.get("goals", 0)),
            penalty_goals=int(payload.get("penalty_goals", 0)),
        )


def parse_minute(value: Optional[str]) -> int:
    """Leading integer of a minute label (``"45+2"`` -> 45); 0 means unknown."""
    if not value:
        return 0
    match = MINUTE_PATTERN.match(str(value))
    return int(match.group(1)) if match else 0


def _pair_decision(
    minute: int, starter: GoalkeeperAppearance, substitute: GoalkeeperAppearance
) -> GoalkeeperAppearance:
    if not minute:
        return starter
    exit_minute = starter.substitution_minute
    entry_minute = substitute.substitution_minute
    if exit_minute > 0 and entry_minute > 0:
        if minute < exit_minute:
            return starter
        # At or after the entry, or inside an exit/entry gap the source should not contain.
        return substitute
    if exit_minute > 0:
        return starter if minute < exit_minute else substitute
    if entry_minute > 0:
        return starter if minute < entry_minute else substitute
    return starter


def responsible_appearance(
    goal: ActionEvent, keeper_appearances: Iterable[GoalkeeperAppearance]
) -> Optional[GoalkeeperAppearance]:
    """
    Return the defending keeper appearance responsible for ``goal``, if any.

    Only appearances in the goal's match for a team other than the scorer's
    are considered.
    """
    defending = [
        appearance
        for appearance in keeper_appearances
        if appearance.match_id == goal.match_id and appearance.team != goal.team
    ]
    if not defending:
        return None
    if len(defending) == 1:
        return defending[0]

    starter = next((item for item in defending if item.role is KeeperRole.STARTER), None)
    substitute = next((item for item in defending if item.role is KeeperRole.SUBSTITUTE), None)
    if starter is not None and substitute is not None:
        if len(defending) > 2:
            LOGGER.warning(
                "Match %s has %s goalkeeper rows for the side conceding against %s; using the first starter/substitute pair.",
                goal.match_id,
                len(defending),
                goal.team or "unknown team",
            )
        return _pair_decision(parse_minute(goal.minute), starter, substitute)

    if len(defending) == 2:
        chosen = starter or substitute or defending[0]
    else:
        chosen = defending[0]
    LOGGER.warning(
        "Match %s has %s goalkeeper rows without a starter/substitute pair; attributing goal by %s to %s.",
        goal.match_id,
        len(defending),
        goal.player or "unknown scorer",
        chosen.player,
    )
    return chosen


def attribute_goalkeeper(
    goal: ActionEvent, keeper_appearances: Iterable[GoalkeeperAppearance]
) -> Optional[str]:
    """
    Name of the goalkeeper who conceded ``goal``, or None when nobody can be held responsible.
    """
    appearance = responsible_appearance(goal, keeper_appearances)
    return appearance.player if appearance is not None else None


def goal_key(goal: ActionEvent) -> Tuple[str, str, str]:
    return (goal.match_id, goal.player, (goal.minute or "").strip())


def attribute_goals(
    goals: Iterable[ActionEvent], keeper_appearances: Iterable[GoalkeeperAppearance]
) -> List[AttributedGoal]:
    """
    Attribute every unique goal to a goalkeeper.

    Goals repeating the same (match, scorer, minute) are counted once; goals
    nobody can be held responsible for are left out.
    """
    by_match: Dict[str, List[GoalkeeperAppearance]] = defaultdict(list)
    for appearance in keeper_appearances:
        by_match[appearance.match_id].append(appearance)

    seen: Set[Tuple[str, str, str]] = set()
    results: List[AttributedGoal] = []
    for goal in goals:
        if not goal.kind.is_goal:
            continue
        key = goal_key(goal)
        if key in seen:
            LOGGER.debug("Skipping duplicate goal row %s", key)
            continue
        seen.add(key)
        keeper = attribute_goalkeeper(goal, by_match.get(goal.match_id, ()))
        if keeper is None:
            continue
        results.append(
            AttributedGoal(
                scorer=goal.player,
                minute=parse_minute(goal.minute),
                match_id=goal.match_id,
                conceded_by=keeper,
                kind=goal.kind,
                team=goal.team,
            )
        )
    return results


# ---------------------------------------------------------------------------
# Goalkeeper statistics
# ---------------------------------------------------------------------------


class _MatchEvents:
    """Per-match goal and keeper rows, from the index or from one scan of the tables."""

    def __init__(
        self,
        match_ids: Collection[str],
        tables: Optional[EventTables],
        indices: Optional[IndexSet],
    ):
        self.indices = indices
        self._goals: Dict[str, List[ActionEvent]] = defaultdict(list)
        self._keepers: Dict[str, List[GoalkeeperAppearance]] = defaultdict(list)
        self.matches: Mapping[str, Match] = {}
        if indices is not None:
            self.matches = indices.matches_by_id
            return
        if tables is None:
            return
        wanted = set(match_ids)
        self.matches = tables.match_lookup()
        for action in tables.actions:
            if action.match_id in wanted and action.player and action.kind.is_goal:
                self._goals[action.match_id].append(action)
        for appearance in tables.goalkeepers:
            if appearance.match_id in wanted and appearance.player:
                self._keepers[appearance.match_id].append(appearance)

    def goals(self, match_id: str) -> List[ActionEvent]:
        if self.indices is not None:
            return self.indices.goals_in_match(match_id)
        return list(self._goals.get(match_id, ()))

    def keepers(self, match_id: str) -> List[GoalkeeperAppearance]:
        if self.indices is not None:
            return self.indices.keepers_in_match(match_id)
        return list(self._keepers.get(match_id, ()))

    def match_date(self, match_id: str) -> Optional[date]:
        match = self.matches.get(match_id)
        return match.date if match is not None else None


def _keeper_rows(
    entity: str,
    team_scope: Collection[str],
    candidates: Collection[str],
    tables: Optional[EventTables],
    indices: Optional[IndexSet],
) -> List[GoalkeeperAppearance]:
    if indices is not None:
        return indices.keeper_appearances_for(entity, candidates, team_scope=frozenset(team_scope))
    if tables is None:
        return []
    return [
        row
        for row in tables.goalkeepers
        if row.player == entity
        and row.match_id in candidates
        and row.match_id in tables.match_ids
        and (not team_scope or row.team in team_scope)
    ]


def _goals_conceded_by(
    entity: str,
    rows: Sequence[GoalkeeperAppearance],
    events: _MatchEvents,
) -> List[AttributedGoal]:
    teams_by_match: Dict[str, Set[str]] = defaultdict(set)
    for row in rows:
        teams_by_match[row.match_id].add(row.team)

    goals_against: List[ActionEvent] = []
    keepers: List[GoalkeeperAppearance] = []
    for match_id, teams in teams_by_match.items():
        goals_against.extend(goal for goal in events.goals(match_id) if goal.team not in teams)
        keepers.extend(events.keepers(match_id))
    return [goal for goal in attribute_goals(goals_against, keepers) if goal.conceded_by == entity]


def _is_clean_sheet(row: GoalkeeperAppearance, events: _MatchEvents) -> bool:
    if row.goals_conceded != 0:
        return False
    return not any(
        other.team == row.team and other.player != row.player for other in events.keepers(row.match_id)
    )


def longest_streaks(results: Iterable[Tuple[bool, bool]]) -> Tuple[int, int]:
    """
    Longest run of matches with a goal conceded and longest run of clean sheets.

    ``results`` holds ``(conceded, clean_sheet)`` flags in chronological order.
    """
    current_conceded = longest_conceded = 0
    current_clean = longest_clean = 0
    for conceded, clean_sheet in results:
        if conceded:
            current_conceded += 1
            longest_conceded = max(longest_conceded, current_conceded)
        else:
            current_conceded = 0
        if clean_sheet:
            current_clean += 1
            longest_clean = max(longest_clean, current_clean)
        else:
            current_clean = 0
    return longest_conceded, longest_clean


def compute_goalkeeper_stats(
    entity: Optional[str],
    team_scope: Optional[Iterable[str]],
    candidate_match_ids: Optional[Collection[str]],
    tables: Optional[EventTables],
    indices: Optional[IndexSet] = None,
) -> GoalkeeperStats:
    """
    Goalkeeper tallies for ``entity`` over the candidate matches.

    ``goals_conceded`` sums the counts recorded on the keeper's appearances,
    ``attributed_goals_conceded`` counts goal events resolved to the keeper.
    A clean sheet needs zero goals conceded and no other keeper for the same
    team in that match.
    """
    if not entity:
        return EMPTY_GOALKEEPER_STATS
    indices = usable_indices(indices)
    candidates = normalise_candidates(candidate_match_ids)
    if not candidates or (tables is None and indices is None):
        return EMPTY_GOALKEEPER_STATS
    scope = normalise_team_scope(team_scope)

    rows = _keeper_rows(entity, scope, candidates, tables, indices)
    if not rows:
        return EMPTY_GOALKEEPER_STATS

    match_ids = list(dict.fromkeys(row.match_id for row in rows))
    events = _MatchEvents(match_ids, tables, indices)
    lineup = _RowSource(entity, scope, frozenset(match_ids), tables, indices).lineup()
    conceded = _goals_conceded_by(entity, rows, events)

    ordered = sorted(rows, key=lambda row: events.match_date(row.match_id) or date.min)
    flags = [(row.goals_conceded > 0, _is_clean_sheet(row, events)) for row in ordered]
    longest_conceded, longest_clean = longest_streaks(flags)

    return GoalkeeperStats(
        matches_played=len(match_ids),
        total_minutes=sum(row.minutes for row in lineup),
        goals_conceded=sum(row.goals_conceded for row in rows),
        attributed_goals_conceded=len(conceded),
        penalty_goals_conceded=sum(1 for goal in conceded if goal.kind is ActionKind.PENALTY_GOAL),
        free_kick_goals_conceded=sum(1 for goal in conceded if goal.kind is ActionKind.FREE_KICK_GOAL),
        clean_sheets=sum(1 for _conceded, clean_sheet in flags if clean_sheet),
        longest_goals_conceded_streak=longest_conceded,
        longest_clean_sheet_streak=longest_clean,
    )


def scorers_against_goalkeeper(
    entity: Optional[str],
    team_scope: Optional[Iterable[str]],
    candidate_match_ids: Optional[Collection[str]],
    tables: Optional[EventTables],
    indices: Optional[IndexSet] = None,
) -> List[ScorerRecord]:
    """
    Players who scored against ``entity``, most goals first.
    """
    if not entity:
        return []
    indices = usable_indices(indices)
    candidates = normalise_candidates(candidate_match_ids)
    if not candidates or (tables is None and indices is None):
        return []
    rows = _keeper_rows(entity, normalise_team_scope(team_scope), candidates, tables, indices)
    if not rows:
        return []

    events = _MatchEvents({row.match_id for row in rows}, tables, indices)
    goals: Dict[str, int] = defaultdict(int)
    penalties: Dict[str, int] = defaultdict(int)
    matches: Dict[str, Set[str]] = defaultdict(set)
    teams: Dict[str, Dict[str, None]] = defaultdict(dict)
    for goal in _goals_conceded_by(entity, rows, events):
        goals[goal.scorer] += 1
        matches[goal.scorer].add(goal.match_id)
        if goal.team:
            teams[goal.scorer][goal.team] = None
        if goal.kind is ActionKind.PENALTY_GOAL:
            penalties[goal.scorer] += 1

    records = [
        ScorerRecord(
            scorer=scorer,
            teams=tuple(teams[scorer]),
            matches=len(matches[scorer]),
            goals=count,
            penalty_goals=penalties[scorer],
        )
        for scorer, count in goals.items()
    ]
    records.sort(key=lambda record: (-record.goals, record.scorer))
    return records


GroupedGoalkeeperStats = List[Tuple[str, GoalkeeperStats]]


def _keeper_opponent_buckets(
    rows: Sequence[GoalkeeperAppearance], lookup: Mapping[str, Match]
) -> Dict[str, Set[str]]:
    buckets: Dict[str, Set[str]] = defaultdict(set)
    for row in rows:
        match = lookup.get(row.match_id)
        opponent = match.opponent_of(row.team) if match is not None else None
        if opponent:
            buckets[opponent].add(row.match_id)
    return dict(buckets)


def compute_goalkeeper_grouped(
    entity: Optional[str],
    dimension: Union[str, GroupDimension],
    team_scope: Optional[Iterable[str]],
    candidate_match_ids: Optional[Collection[str]],
    tables: Optional[EventTables],
    indices: Optional[IndexSet] = None,
    competition_priority: Sequence[str] = (),
) -> GroupedGoalkeeperStats:
    """
    Goalkeeper tallies split by competition, season or opponent.

    Buckets come from the keeper's own appearances; empty tallies are dropped.
    Seasons and competitions are ordered like player groups, opponents by
    goals conceded, most first.
    """
    resolved = resolve_dimension(dimension)
    if not entity:
        return []
    indices = usable_indices(indices)
    candidates = normalise_candidates(candidate_match_ids)
    if not candidates or (tables is None and indices is None):
        return []
    scope = normalise_team_scope(team_scope)
    rows = _keeper_rows(entity, scope, candidates, tables, indices)
    if not rows:
        return []

    played = frozenset(row.match_id for row in rows)
    lookup = _match_lookup(tables, indices)
    if resolved is GroupDimension.OPPONENT:
        buckets = _keeper_opponent_buckets(rows, lookup)
        values = list(buckets)
    else:
        buckets = _attribute_buckets(resolved.value, played, lookup, indices)
        if resolved is GroupDimension.SEASON:
            values = order_seasons(buckets)
        else:
            values = order_competitions(buckets, competition_priority)

    results: GroupedGoalkeeperStats = []
    for value in values:
        stats = compute_goalkeeper_stats(entity, scope, buckets[value], tables, indices)
        if stats.is_zero():
            continue
        results.append((value, stats))

    if resolved is GroupDimension.OPPONENT:
        results.sort(key=lambda item: (-item[1].goals_conceded, item[0]))
    return results
