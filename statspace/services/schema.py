"""
Schema adapter turning loosely keyed source rows into typed records.

Source sheets name the same field in several ways (``MATCH_ID``, ``match_id``,
``matchId`` ...). The variants are resolved here, once per table, so the
indexing and aggregation layers only ever see :mod:`statspace.models` records.
Coercions follow the source conventions: missing text becomes ``""``, numeric
text is read by its leading integer (``"90+3"`` -> 90) and anything else
becomes 0.
"""
from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import pandas as pd

from ..exceptions import SchemaError
from ..models import (
    ActionEvent,
    ActionKind,
    EventTables,
    GoalkeeperAppearance,
    KeeperRole,
    LineupAppearance,
    Match,
)

LOGGER = logging.getLogger(__name__)

TableLike = Union[pd.DataFrame, Iterable[Mapping[str, Any]], None]

MATCH_COLUMNS: Mapping[str, Sequence[str]] = {
    "match_id": ("match_id", "MATCH_ID", "matchId", "Match ID", "id"),
    "date": ("date", "DATE", "match_date", "Date"),
    "season": ("season", "SEASON", "Season"),
    "competition": ("competition", "CHAMPION", "competition_name", "Competition"),
    "home_team": ("home_team", "HOME TEAM", "HOME", "Home Team"),
    "away_team": ("away_team", "AWAY TEAM", "AWAY", "Away Team"),
    "team": ("team", "TEAM", "AHLY TEAM", "Team"),
    "opponent": ("opponent", "OPPONENT TEAM", "opponent_team", "Opponent"),
    "venue": ("venue", "H-A-N", "Venue"),
    "result": ("result", "W-D-L", "RESULT", "Result"),
}

LINEUP_COLUMNS: Mapping[str, Sequence[str]] = {
    "player": ("player", "PLAYER NAME", "player_name", "Player Name", "PLAYER"),
    "match_id": ("match_id", "MATCH_ID", "matchId", "Match ID"),
    "team": ("team", "TEAM", "Team"),
    "minutes": ("minutes", "MINTOTAL", "minutes_played", "MIN"),
}

ACTION_COLUMNS: Mapping[str, Sequence[str]] = {
    "player": ("player", "PLAYER NAME", "player_name", "Player Name", "PLAYER"),
    "match_id": ("match_id", "MATCH_ID", "matchId", "Match ID"),
    "team": ("team", "TEAM", "Team"),
    "kind": ("kind", "GA", "action", "event_type"),
    "subtype": ("subtype", "TYPE", "goal_type"),
    "minute": ("minute", "MINUTE", "Minute"),
}

GOALKEEPER_COLUMNS: Mapping[str, Sequence[str]] = {
    "player": ("player", "PLAYER NAME", "player_name", "Player Name", "PLAYER"),
    "match_id": ("match_id", "MATCH_ID", "matchId", "Match ID"),
    "team": ("team", "TEAM", "Team"),
    "role": ("role", "11/BAKEUP", "11/BACKUP", "ROLE"),
    "substitution_minute": ("substitution_minute", "SUBMIN", "sub_minute"),
    "goals_conceded": ("goals_conceded", "GOALS CONCEDED", "GC"),
}

ACTION_CODES: Mapping[str, ActionKind] = {
    "GOAL": ActionKind.GOAL,
    "ASSIST": ActionKind.ASSIST,
    "PENASSIST": ActionKind.PENALTY_ASSIST,
    "PENMISSED": ActionKind.PENALTY_MISSED,
    "PENASSISTMISSED": ActionKind.PENALTY_ASSIST_MISSED,
    "PENMAKEGOAL": ActionKind.PENALTY_CONCEDED_GOAL,
    "PENMAKEMISSED": ActionKind.PENALTY_CONCEDED_MISSED,
}

STARTER_TAGS = frozenset({"STARTER", "STARTING", "11", "اساسي", "أساسي"})
SUBSTITUTE_TAGS = frozenset({"SUBSTITUTE", "SUB", "BACKUP", "BAKEUP", "احتياطي"})

TABLE_FILES: Mapping[str, str] = {
    "matches": "matches.csv",
    "lineups": "lineups.csv",
    "actions": "actions.csv",
    "goalkeepers": "goalkeepers.csv",
}

_TABLE_KEYS: Mapping[str, Tuple[str, ...]] = {
    "matches": ("matches", "MATCHDETAILS"),
    "lineups": ("lineups", "lineupData", "LINEUP11"),
    "actions": ("actions", "playerDetailsData", "PLAYERDETAILS"),
    "goalkeepers": ("goalkeepers", "gkDetailsData", "GKDETAILS"),
}


# ---------------------------------------------------------------------------
# Value coercion
# ---------------------------------------------------------------------------


def clean_text(value: Any) -> str:
    """Return ``value`` as stripped text; missing values become ``""``."""
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
    try:
        if pd.isna(value):
            return ""
    except (TypeError, ValueError):
        pass
    return str(value).strip()


def _leading_ints(series: pd.Series) -> pd.Series:
    text = series.map(clean_text)
    digits = text.str.extract(r"^\s*(-?\d+)", expand=False)
    return pd.to_numeric(digits, errors="coerce").fillna(0).astype(int)


def _parse_date(value: Any):
    text = clean_text(value)
    if not text:
        return None
    parsed = pd.to_datetime(text, errors="coerce")
    if pd.isna(parsed):
        return None
    return parsed.date()


def action_kind(code: str, subtype: str = "") -> Optional[ActionKind]:
    """
    Map a source action code (plus goal subtype) onto an :class:`ActionKind`.
    """
    normalised = code.strip().upper()
    if not normalised:
        return None
    try:
        kind = ActionKind(normalised)
    except ValueError:
        kind = ACTION_CODES.get(normalised)
    if kind is ActionKind.GOAL:
        detail = subtype.strip().upper()
        if "PENGOAL" in detail:
            return ActionKind.PENALTY_GOAL
        if detail == "FK":
            return ActionKind.FREE_KICK_GOAL
    return kind


def keeper_role(value: str) -> Optional[KeeperRole]:
    tag = value.strip().upper()
    if tag in STARTER_TAGS:
        return KeeperRole.STARTER
    if tag in SUBSTITUTE_TAGS:
        return KeeperRole.SUBSTITUTE
    return None


# ---------------------------------------------------------------------------
# Table normalisation
# ---------------------------------------------------------------------------


def _frame(table: TableLike, name: str) -> pd.DataFrame:
    if table is None:
        return pd.DataFrame()
    if isinstance(table, pd.DataFrame):
        return table
    if isinstance(table, (str, bytes, Mapping)):
        raise SchemaError(f"Table '{name}' must be a sequence of records or a DataFrame", table=name)
    try:
        rows = list(table)
    except TypeError as exc:
        raise SchemaError(f"Table '{name}' is not iterable", table=name) from exc
    for row in rows:
        if not isinstance(row, Mapping):
            raise SchemaError(f"Table '{name}' contains a non-mapping row: {row!r}", table=name)
    return pd.DataFrame.from_records(rows)


def _resolve_columns(df: pd.DataFrame, aliases: Mapping[str, Sequence[str]]) -> pd.DataFrame:
    """
    Build a frame holding exactly the canonical columns, picking the first alias present.
    """
    lookup = {str(column).strip().casefold(): column for column in df.columns}
    resolved: Dict[str, pd.Series] = {}
    for canonical, candidates in aliases.items():
        source = None
        for candidate in candidates:
            if candidate in df.columns:
                source = candidate
                break
            folded = lookup.get(candidate.casefold())
            if folded is not None:
                source = folded
                break
        if source is None:
            resolved[canonical] = pd.Series([""] * len(df), index=df.index, dtype=object)
        else:
            resolved[canonical] = df[source]
    return pd.DataFrame(resolved, index=df.index)


def _text_columns(df: pd.DataFrame, columns: Iterable[str]) -> pd.DataFrame:
    for column in columns:
        df[column] = df[column].map(clean_text)
    return df


def normalise_matches(table: TableLike) -> Tuple[Match, ...]:
    df = _frame(table, "matches")
    if df.empty:
        return ()
    df = _resolve_columns(df, MATCH_COLUMNS)
    df = _text_columns(
        df, ("match_id", "season", "competition", "home_team", "away_team", "team", "opponent", "venue", "result")
    )
    records: List[Match] = []
    for row in df.itertuples(index=False):
        home, away = row.home_team, row.away_team
        if not home and not away and (row.team or row.opponent):
            # Club-perspective sheets only name "our" side and the opponent.
            if row.venue.upper().startswith("A"):
                home, away = row.opponent, row.team
            else:
                home, away = row.team, row.opponent
        records.append(
            Match(
                match_id=row.match_id,
                date=_parse_date(row.date),
                season=row.season,
                competition=row.competition,
                home_team=home,
                away_team=away,
                result=row.result.upper(),
            )
        )
    return tuple(records)


def normalise_lineups(table: TableLike) -> Tuple[LineupAppearance, ...]:
    df = _frame(table, "lineups")
    if df.empty:
        return ()
    df = _resolve_columns(df, LINEUP_COLUMNS)
    df = _text_columns(df, ("player", "match_id", "team"))
    df["minutes"] = _leading_ints(df["minutes"])
    return tuple(
        LineupAppearance(player=row.player, match_id=row.match_id, team=row.team, minutes=int(row.minutes))
        for row in df.itertuples(index=False)
    )


def normalise_actions(table: TableLike) -> Tuple[ActionEvent, ...]:
    df = _frame(table, "actions")
    if df.empty:
        return ()
    df = _resolve_columns(df, ACTION_COLUMNS)
    df = _text_columns(df, ("player", "match_id", "team", "kind", "subtype", "minute"))
    records: List[ActionEvent] = []
    skipped = 0
    for row in df.itertuples(index=False):
        kind = action_kind(row.kind, row.subtype)
        if kind is None:
            skipped += 1
            continue
        records.append(
            ActionEvent(
                player=row.player,
                match_id=row.match_id,
                kind=kind,
                team=row.team,
                minute=row.minute or None,
            )
        )
    if skipped:
        LOGGER.debug("Dropped %s action rows with unknown kind codes", skipped)
    return tuple(records)


def normalise_goalkeepers(table: TableLike) -> Tuple[GoalkeeperAppearance, ...]:
    df = _frame(table, "goalkeepers")
    if df.empty:
        return ()
    df = _resolve_columns(df, GOALKEEPER_COLUMNS)
    df = _text_columns(df, ("player", "match_id", "team", "role"))
    df["substitution_minute"] = _leading_ints(df["substitution_minute"])
    df["goals_conceded"] = _leading_ints(df["goals_conceded"])
    return tuple(
        GoalkeeperAppearance(
            player=row.player,
            match_id=row.match_id,
            team=row.team,
            role=keeper_role(row.role),
            substitution_minute=int(row.substitution_minute),
            goals_conceded=int(row.goals_conceded),
        )
        for row in df.itertuples(index=False)
    )


def normalise_tables(
    matches: TableLike = None,
    lineups: TableLike = None,
    actions: TableLike = None,
    goalkeepers: TableLike = None,
) -> EventTables:
    """
    Normalise the four source tables into an immutable :class:`EventTables` snapshot.
    """
    tables = EventTables(
        matches=normalise_matches(matches),
        lineups=normalise_lineups(lineups),
        actions=normalise_actions(actions),
        goalkeepers=normalise_goalkeepers(goalkeepers),
    )
    LOGGER.debug(
        "Normalised %s matches, %s lineup rows, %s actions, %s goalkeeper rows",
        len(tables.matches),
        len(tables.lineups),
        len(tables.actions),
        len(tables.goalkeepers),
    )
    return tables


def tables_from_mapping(raw: Mapping[str, TableLike]) -> EventTables:
    """
    Normalise a ``{table name: rows}`` mapping as handed over by a data-access layer.
    """
    resolved: Dict[str, TableLike] = {}
    for name, keys in _TABLE_KEYS.items():
        for key in keys:
            if key in raw:
                resolved[name] = raw[key]
                break
    return normalise_tables(**resolved)


def read_tables_from_directory(directory: Union[str, Path]) -> EventTables:
    """
    Load ``matches.csv``, ``lineups.csv``, ``actions.csv`` and ``goalkeepers.csv``.

    Missing files are treated as empty tables.
    """
    base = Path(directory)
    frames: Dict[str, TableLike] = {}
    for name, filename in TABLE_FILES.items():
        path = base / filename
        if not path.exists():
            LOGGER.warning("Table file %s not found; treating '%s' as empty.", path, name)
            continue
        frames[name] = pd.read_csv(path, dtype=str, encoding="utf-8")
    return normalise_tables(**frames)
