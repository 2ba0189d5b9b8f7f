#!/usr/bin/env python
"""
CLI entrypoint to compute player or goalkeeper statistics from CSV tables.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import date
from typing import Any, Dict, List

from statspace.analytics.filters import MatchFilter
from statspace.config import EngineSettings
from statspace.exceptions import StatsEngineError
from statspace.services.schema import read_tables_from_directory
from statspace.services.stats_engine import StatsEngine


LOGGER = logging.getLogger(__name__)


def _parse_multi(values: List[str] | None) -> List[str]:
    if not values:
        return []
    parsed: List[str] = []
    for value in values:
        for token in value.split(","):
            token = token.strip()
            if token:
                parsed.append(token)
    return parsed


def _parse_date(value: str | None) -> date | None:
    if not value:
        return None
    return date.fromisoformat(value)


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Compute filtered player or goalkeeper statistics from match event tables.",
    )
    parser.add_argument(
        "--data-dir",
        required=True,
        help="Directory holding matches.csv, lineups.csv, actions.csv and goalkeepers.csv.",
    )
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--player", help="Player to compute the stat vector for.")
    target.add_argument("--goalkeeper", help="Goalkeeper to compute goalkeeper statistics for.")
    parser.add_argument("--season", action="append", help="Season label(s); repeat or comma separate.")
    parser.add_argument("--competition", action="append", help="Competition name(s); repeat or comma separate.")
    parser.add_argument("--opponent", action="append", help="Opponent team(s); repeat or comma separate.")
    parser.add_argument("--result", action="append", help="Result code(s), e.g. W, D, L.")
    parser.add_argument("--team", action="append", help="Restrict rows to these teams.")
    parser.add_argument("--date-from", help="Earliest match date (YYYY-MM-DD).")
    parser.add_argument("--date-to", help="Latest match date (YYYY-MM-DD).")
    parser.add_argument(
        "--group-by",
        help="Split player or goalkeeper statistics by competition, season or opponent.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (DEBUG, INFO, WARNING, ERROR).",
    )
    return parser


def _player_payload(engine: StatsEngine, args: argparse.Namespace, match_filter: MatchFilter) -> Dict[str, Any]:
    team_scope = _parse_multi(args.team)
    payload: Dict[str, Any] = {
        "player": args.player,
        "filter": match_filter.to_dict(),
        "stats": engine.player_stats(args.player, match_filter, team_scope).to_dict(),
    }
    if args.group_by:
        grouped = engine.player_stats_by(args.player, args.group_by, match_filter, team_scope)
        payload["group_by"] = args.group_by
        payload["groups"] = [{"value": value, "stats": stats.to_dict()} for value, stats in grouped]
    return payload


def _goalkeeper_payload(engine: StatsEngine, args: argparse.Namespace, match_filter: MatchFilter) -> Dict[str, Any]:
    team_scope = _parse_multi(args.team)
    payload: Dict[str, Any] = {
        "goalkeeper": args.goalkeeper,
        "filter": match_filter.to_dict(),
        "stats": engine.goalkeeper_stats(args.goalkeeper, match_filter, team_scope).to_dict(),
        "scorers": [record.to_dict() for record in engine.scorers_against(args.goalkeeper, match_filter, team_scope)],
    }
    if args.group_by:
        grouped = engine.goalkeeper_stats_by(args.goalkeeper, args.group_by, match_filter, team_scope)
        payload["group_by"] = args.group_by
        payload["groups"] = [{"value": value, "stats": stats.to_dict()} for value, stats in grouped]
    return payload


def main(argv: List[str] | None = None) -> int:
    parser = build_argument_parser()
    args = parser.parse_args(argv)

    level = getattr(logging, str(args.log_level).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        match_filter = MatchFilter(
            seasons=tuple(_parse_multi(args.season)),
            competitions=tuple(_parse_multi(args.competition)),
            opponents=tuple(_parse_multi(args.opponent)),
            results=tuple(_parse_multi(args.result)),
            date_from=_parse_date(args.date_from),
            date_to=_parse_date(args.date_to),
        )
        LOGGER.info("Loading tables from %s", args.data_dir)
        tables = read_tables_from_directory(args.data_dir)
        engine = StatsEngine(tables, settings=EngineSettings.from_env())
        if args.player:
            payload = _player_payload(engine, args, match_filter)
        else:
            payload = _goalkeeper_payload(engine, args, match_filter)
    except (StatsEngineError, OSError, ValueError) as exc:
        LOGGER.error("Statistics computation failed: %s", exc, exc_info=level <= logging.DEBUG)
        return 1

    print(json.dumps(payload, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
