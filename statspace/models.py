"""
Typed records shared by the indexing and aggregation layers.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from datetime import date
from enum import Enum
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple


class ActionKind(str, Enum):
    GOAL = "GOAL"
    PENALTY_GOAL = "PENALTY_GOAL"
    FREE_KICK_GOAL = "FREE_KICK_GOAL"
    ASSIST = "ASSIST"
    PENALTY_ASSIST = "PENALTY_ASSIST"
    PENALTY_MISSED = "PENALTY_MISSED"
    PENALTY_ASSIST_MISSED = "PENALTY_ASSIST_MISSED"
    PENALTY_CONCEDED_GOAL = "PENALTY_CONCEDED_GOAL"
    PENALTY_CONCEDED_MISSED = "PENALTY_CONCEDED_MISSED"

    @property
    def is_goal(self) -> bool:
        return self in GOAL_KINDS


GOAL_KINDS: FrozenSet[ActionKind] = frozenset(
    {ActionKind.GOAL, ActionKind.PENALTY_GOAL, ActionKind.FREE_KICK_GOAL}
)


class KeeperRole(str, Enum):
    STARTER = "STARTER"
    SUBSTITUTE = "SUBSTITUTE"


@dataclass(frozen=True)
class Match:
    match_id: str
    date: Optional[date] = None
    season: str = ""
    competition: str = ""
    home_team: str = ""
    away_team: str = ""
    result: str = ""

    def opponent_of(self, team: str) -> Optional[str]:
        if not team:
            return None
        if team == self.home_team:
            return self.away_team or None
        if team == self.away_team:
            return self.home_team or None
        return None


@dataclass(frozen=True)
class LineupAppearance:
    player: str
    match_id: str
    team: str = ""
    minutes: int = 0


@dataclass(frozen=True)
class ActionEvent:
    player: str
    match_id: str
    kind: ActionKind
    team: str = ""
    minute: Optional[str] = None


@dataclass(frozen=True)
class GoalkeeperAppearance:
    player: str
    match_id: str
    team: str = ""
    role: Optional[KeeperRole] = None
    substitution_minute: int = 0
    goals_conceded: int = 0


@dataclass(frozen=True)
class EventTables:
    """
    Read-only snapshot of the four source tables.
    """

    matches: Tuple[Match, ...] = ()
    lineups: Tuple[LineupAppearance, ...] = ()
    actions: Tuple[ActionEvent, ...] = ()
    goalkeepers: Tuple[GoalkeeperAppearance, ...] = ()
    match_ids: FrozenSet[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "match_ids", frozenset(m.match_id for m in self.matches if m.match_id))

    def match_lookup(self) -> Dict[str, Match]:
        return {match.match_id: match for match in self.matches}


@dataclass(frozen=True)
class StatVector:
    """
    The fixed set of 18 counters produced for one entity/filter combination.
    """

    matches_played: int = 0
    total_minutes: int = 0
    goals_and_assists: int = 0
    total_goals: int = 0
    total_assists: int = 0
    brace: int = 0
    hat_trick: int = 0
    super_hat_trick: int = 0
    assists_2: int = 0
    assists_3: int = 0
    assists_4_plus: int = 0
    penalty_goals: int = 0
    penalty_assist_goals: int = 0
    penalty_missed: int = 0
    penalty_assist_missed: int = 0
    penalty_commit_goal: int = 0
    penalty_commit_missed: int = 0
    free_kick_goals: int = 0

    def is_zero(self) -> bool:
        return not any(getattr(self, item.name) for item in fields(self))

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "StatVector":
        known = {item.name for item in fields(cls)}
        return cls(**{key: int(value) for key, value in payload.items() if key in known})


STAT_VECTOR_FIELDS: Tuple[str, ...] = tuple(item.name for item in fields(StatVector))


@dataclass(frozen=True)
class GoalkeeperStats:
    matches_played: int = 0
    total_minutes: int = 0
    goals_conceded: int = 0
    attributed_goals_conceded: int = 0
    penalty_goals_conceded: int = 0
    free_kick_goals_conceded: int = 0
    clean_sheets: int = 0
    longest_goals_conceded_streak: int = 0
    longest_clean_sheet_streak: int = 0

    def is_zero(self) -> bool:
        return not any(getattr(self, item.name) for item in fields(self))

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "GoalkeeperStats":
        known = {item.name for item in fields(cls)}
        return cls(**{key: int(value) for key, value in payload.items() if key in known})
