from __future__ import annotations

import asyncio

import pytest

from statspace.analytics.filters import MatchFilter
from statspace.config import EngineSettings
from statspace.exceptions import UnsupportedDimensionError
from statspace.models import EventTables, GoalkeeperStats, LineupAppearance, Match, StatVector
from statspace.services import stats_engine
from statspace.services.stats_engine import StatsEngine


@pytest.fixture
def engine(player_tables):
    return StatsEngine(player_tables, competition_priority=("League", "Cup"))


def test_player_stats_through_filters(engine):
    stats = engine.player_stats("Salah", MatchFilter(seasons=("2023-24",)))
    assert (stats.matches_played, stats.total_goals, stats.goals_and_assists) == (2, 3, 4)
    assert engine.player_stats("Salah", MatchFilter(results=("D",))).penalty_goals == 1
    assert engine.player_stats("Kahraba", team_scope="Zamalek").total_goals == 1
    assert engine.player_stats("") == StatVector()


def test_player_stats_are_memoised(engine, monkeypatch):
    calls = []
    original = stats_engine.compute_stats

    def counting(*args, **kwargs):
        calls.append(args[0])
        return original(*args, **kwargs)

    monkeypatch.setattr(stats_engine, "compute_stats", counting)
    first = engine.player_stats("Salah", MatchFilter(seasons=("2023-24", "2022-23")))
    second = engine.player_stats("Salah", MatchFilter(seasons=("2022-23", "2023-24")))
    assert first == second
    assert calls == ["Salah"]


def test_player_stats_by_dimension(engine):
    grouped = engine.player_stats_by("Salah", "competition")
    assert [label for label, _stats in grouped] == ["League", "Cup"]
    with pytest.raises(UnsupportedDimensionError):
        engine.player_stats_by("Salah", "referee")


def test_refresh_disposes_previous_index_and_clears_cache(engine):
    old_indices = engine.indices
    assert engine.player_stats("Salah").matches_played == 3

    tables = EventTables(
        matches=(Match("N1", season="2024-25"),),
        lineups=(LineupAppearance("Salah", "N1", "Ahly", 30),),
    )
    engine.refresh(tables)

    assert old_indices.disposed
    assert old_indices.matches_by_id == {}
    assert engine.indices is not old_indices
    assert engine.player_stats("Salah").matches_played == 1
    assert engine.candidate_match_ids() == {"N1"}


def test_goalkeeper_views(keeper_tables):
    engine = StatsEngine(keeper_tables, competition_priority=())
    stats = engine.goalkeeper_stats("Shenawy", MatchFilter(competitions=("League",)))
    assert stats.matches_played == 2
    assert stats.clean_sheets == 1
    assert engine.goalkeeper_stats("") == GoalkeeperStats()
    assert [record.scorer for record in engine.scorers_against("Sobhy")] == ["Zizo"]
    assert engine.goalkeepers() == ["Awad", "Shenawy", "Sobhy"]


def test_roster_inline_and_async_agree(engine):
    match_filter = MatchFilter(seasons=("2023-24",))
    inline = engine.roster_stats(match_filter=match_filter)
    response = asyncio.run(engine.roster_stats_async(match_filter=match_filter))

    assert set(inline) == {"Kahraba", "Salah"}
    assert response is not None
    assert response.stats == inline
    assert engine.batch.accept(response)


def test_engine_without_tables_is_total():
    engine = StatsEngine(competition_priority=())
    assert engine.player_stats("Salah") == StatVector()
    assert engine.player_stats_by("Salah", "season") == []
    assert engine.players() == []
    assert engine.candidate_match_ids() == frozenset()


def test_from_settings_persists_results(tmp_path, player_tables, monkeypatch):
    monkeypatch.setenv("STATSPACE_CACHE_DIR", str(tmp_path / "cache"))
    monkeypatch.setenv("STATSPACE_COMPETITION_CONFIG", str(tmp_path / "missing.yml"))
    engine = StatsEngine.from_settings(player_tables)
    engine.player_stats("Salah")
    assert len(list((tmp_path / "cache").glob("*.json"))) == 1

    settings = EngineSettings(cache_dir=str(tmp_path / "cache"), competition_config=str(tmp_path / "missing.yml"))
    restarted = StatsEngine.from_settings(player_tables, settings)
    assert len(list((tmp_path / "cache").glob("*.json"))) == 1
    assert len(restarted.cache) == 0
    reloaded = StatsEngine.from_settings(None, settings)
    # No tables loaded: the value can only come from the persisted entry.
    assert reloaded.player_stats("Salah").matches_played == 3


def test_refresh_after_restart_clears_persisted_results(tmp_path, player_tables):
    settings = EngineSettings(cache_dir=str(tmp_path / "cache"), competition_config=str(tmp_path / "missing.yml"))
    StatsEngine.from_settings(player_tables, settings).player_stats("Salah")

    engine = StatsEngine.from_settings(player_tables, settings)
    engine.refresh(EventTables(matches=(Match("N1"),), lineups=(LineupAppearance("Salah", "N1", "Ahly", 30),)))
    assert list((tmp_path / "cache").glob("*.json")) == []
    assert engine.player_stats("Salah").matches_played == 1


@pytest.mark.parametrize("placeholder", [["All"], "All", [""], ["All", "  "]])
def test_placeholder_team_scope_matches_unscoped(engine, placeholder):
    scoped = engine.player_stats("Salah", team_scope=placeholder)
    assert scoped.matches_played == 3
    assert engine.player_stats("Salah") == scoped
    assert engine.goalkeeper_stats("Salah", team_scope=placeholder) == GoalkeeperStats()


def test_padded_team_scope_is_computed_like_the_plain_name(player_tables):
    engine = StatsEngine(player_tables, competition_priority=())
    padded = engine.player_stats("Kahraba", team_scope=[" Zamalek "])
    assert padded.total_goals == 1
    assert engine.player_stats("Kahraba", team_scope="Zamalek") == padded

    grouped = engine.player_stats_by("Kahraba", "season", team_scope=[" Zamalek"])
    assert [(label, stats.total_goals) for label, stats in grouped] == [("2022-23", 1)]


def test_goalkeeper_stats_by_dimension(keeper_tables):
    engine = StatsEngine(keeper_tables, competition_priority=("League", "Cup"))
    grouped = engine.goalkeeper_stats_by("Shenawy", "competition")
    assert [(label, stats.matches_played) for label, stats in grouped] == [("League", 2), ("Cup", 1)]
    assert engine.goalkeeper_stats_by("Shenawy", "opponent", team_scope=["All"]) == [
        ("Zamalek", engine.goalkeeper_stats("Shenawy"))
    ]
    assert engine.goalkeeper_stats_by("", "season") == []
    with pytest.raises(UnsupportedDimensionError):
        engine.goalkeeper_stats_by("Shenawy", "referee")


def test_cached_lists_are_not_shared_with_callers(engine):
    first = engine.player_stats_by("Salah", "season")
    first.clear()
    assert [label for label, _stats in engine.player_stats_by("Salah", "season")] == ["2023-24", "2022-23"]
