"""Match filters, candidate match-id sets and canonical filter signatures."""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, FrozenSet, Iterable, Optional, Tuple

from ..indexes.event_index import IndexSet
from ..models import EventTables, Match


def _canonical_values(values: Optional[Iterable[str]]) -> Tuple[str, ...]:
    if values is None:
        return ()
    if isinstance(values, str):
        values = (values,)
    cleaned = {str(value).strip() for value in values if value is not None}
    cleaned.discard("")
    cleaned.discard("All")
    return tuple(sorted(cleaned))


@dataclass(frozen=True)
class MatchFilter:
    """
    Every match-level criterion except entity identity and team scope.

    Multi-valued criteria match when the match carries any of the listed
    values; an empty criterion does not filter.
    """

    seasons: Tuple[str, ...] = ()
    competitions: Tuple[str, ...] = ()
    opponents: Tuple[str, ...] = ()
    results: Tuple[str, ...] = ()
    date_from: Optional[date] = None
    date_to: Optional[date] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "seasons", _canonical_values(self.seasons))
        object.__setattr__(self, "competitions", _canonical_values(self.competitions))
        object.__setattr__(self, "opponents", _canonical_values(self.opponents))
        object.__setattr__(
            self, "results", tuple(sorted({value.upper() for value in _canonical_values(self.results)}))
        )

    def accepts(self, match: Match) -> bool:
        if self.seasons and match.season not in self.seasons:
            return False
        if self.competitions and match.competition not in self.competitions:
            return False
        if self.opponents and match.home_team not in self.opponents and match.away_team not in self.opponents:
            return False
        if self.results and match.result not in self.results:
            return False
        if self.date_from is not None or self.date_to is not None:
            if match.date is None:
                return False
            if self.date_from is not None and match.date < self.date_from:
                return False
            if self.date_to is not None and match.date > self.date_to:
                return False
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "seasons": list(self.seasons),
            "competitions": list(self.competitions),
            "opponents": list(self.opponents),
            "results": list(self.results),
            "date_from": self.date_from.isoformat() if self.date_from else None,
            "date_to": self.date_to.isoformat() if self.date_to else None,
        }


def candidate_match_ids(
    tables: Optional[EventTables],
    match_filter: Optional[MatchFilter] = None,
    indices: Optional[IndexSet] = None,
) -> FrozenSet[str]:
    """
    Return the ids of matches surviving ``match_filter``.
    """
    match_filter = match_filter or MatchFilter()
    if indices is not None and not indices.disposed:
        matches: Iterable[Match] = indices.matches_by_id.values()
    elif tables is not None:
        matches = tables.matches
    else:
        return frozenset()
    return frozenset(match.match_id for match in matches if match.match_id and match_filter.accepts(match))


@dataclass(frozen=True)
class FilterSignature:
    """
    Canonical, hashable encoding of one computation request.

    Two requests with the same view, team scope and match filter produce equal
    signatures regardless of the order in which values were supplied.
    """

    view: str
    team_scope: Tuple[str, ...] = ()
    match_filter: MatchFilter = field(default_factory=MatchFilter)

    def __post_init__(self) -> None:
        object.__setattr__(self, "team_scope", _canonical_values(self.team_scope))

    @classmethod
    def build(
        cls,
        view: str,
        match_filter: Optional[MatchFilter] = None,
        team_scope: Optional[Iterable[str]] = None,
    ) -> "FilterSignature":
        return cls(view=view, team_scope=team_scope or (), match_filter=match_filter or MatchFilter())

    def token(self) -> str:
        payload = {
            "view": self.view,
            "team_scope": list(self.team_scope),
            "filter": self.match_filter.to_dict(),
        }
        return json.dumps(payload, sort_keys=True, ensure_ascii=False, separators=(",", ":"))
