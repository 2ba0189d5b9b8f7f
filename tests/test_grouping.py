from __future__ import annotations

import pytest

from statspace.analytics.grouping import (
    GroupDimension,
    competition_rank,
    compute_grouped,
    order_competitions,
    order_seasons,
)
from statspace.exceptions import UnsupportedDimensionError
from statspace.indexes.event_index import build_indices


def test_order_seasons_latest_first_with_undated_last():
    labels = ["2021-22", "Archive", "2023", "Friendlies", "2022-23", "Season 2023 B"]
    assert order_seasons(labels) == ["Season 2023 B", "2023", "2022-23", "2021-22", "Friendlies", "Archive"]


def test_competition_rank_exact_then_contained():
    priority = ("League", "Cup")
    assert competition_rank("League", priority) == 0
    assert competition_rank("Egypt Cup 2023", priority) == 1
    assert competition_rank("Super Cup", ("Super Cup", "Cup")) == 0
    assert competition_rank("Friendly", priority) == 2


def test_order_competitions_unranked_alphabetical_after_ranked():
    names = ["Zonal", "Cup", "Alpha", "League"]
    assert order_competitions(names, ("League", "Cup")) == ["League", "Cup", "Alpha", "Zonal"]
    assert order_competitions(names) == ["Alpha", "Cup", "League", "Zonal"]


@pytest.mark.parametrize("use_index", [False, True])
def test_group_by_season_drops_zero_vectors(player_tables, use_index):
    indices = build_indices(player_tables) if use_index else None
    grouped = compute_grouped("Salah", "season", None, player_tables.match_ids, player_tables, indices)

    assert [label for label, _stats in grouped] == ["2023-24", "2022-23"]
    assert all(not stats.is_zero() for _label, stats in grouped)
    latest = dict(grouped)["2023-24"]
    assert (latest.matches_played, latest.total_goals, latest.brace) == (2, 3, 1)
    assert dict(grouped)["2022-23"].penalty_goals == 1


@pytest.mark.parametrize(
    "priority, expected",
    [((), ["Cup", "League"]), (("League",), ["League", "Cup"]), (("Cup", "League"), ["Cup", "League"])],
)
def test_group_by_competition_follows_priority(player_tables, priority, expected):
    grouped = compute_grouped(
        "Salah", GroupDimension.COMPETITION, None, player_tables.match_ids, player_tables,
        competition_priority=priority,
    )
    assert [label for label, _stats in grouped] == expected
    assert dict(grouped)["League"].matches_played == 2


@pytest.mark.parametrize("use_index", [False, True])
def test_group_by_opponent_from_entity_perspective(player_tables, use_index):
    indices = build_indices(player_tables) if use_index else None

    salah = compute_grouped("Salah", "opponent", None, player_tables.match_ids, player_tables, indices)
    assert [(label, stats.goals_and_assists) for label, stats in salah] == [("Zamalek", 4), ("Pyramids", 1)]

    kahraba = compute_grouped("Kahraba", "opponent", None, player_tables.match_ids, player_tables, indices)
    # Tied contributions fall back to the opponent name.
    assert [(label, stats.goals_and_assists) for label, stats in kahraba] == [("Ahly", 1), ("Zamalek", 1)]


def test_group_by_respects_candidates_and_team_scope(player_tables):
    grouped = compute_grouped("Kahraba", "season", {"Ahly"}, player_tables.match_ids, player_tables)
    assert [label for label, _stats in grouped] == ["2023-24"]
    assert compute_grouped("Salah", "season", None, {"M4"}, player_tables) == []


def test_unsupported_dimension_raises(player_tables):
    with pytest.raises(UnsupportedDimensionError):
        compute_grouped("Salah", "venue", None, player_tables.match_ids, player_tables)
    with pytest.raises(ValueError):
        compute_grouped("", "weekday", None, player_tables.match_ids, player_tables)


def test_empty_entity_or_tables_yield_no_groups(player_tables):
    assert compute_grouped("", "season", None, player_tables.match_ids, player_tables) == []
    assert compute_grouped("Salah", "season", None, player_tables.match_ids, None) == []
