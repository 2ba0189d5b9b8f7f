from __future__ import annotations

from datetime import date

import pytest

from statspace import config
from statspace.models import (
    ActionEvent,
    ActionKind,
    EventTables,
    GoalkeeperAppearance,
    KeeperRole,
    LineupAppearance,
    Match,
)


@pytest.fixture(autouse=True)
def _skip_dotenv(monkeypatch):
    monkeypatch.setattr(config, "_ENV_LOADED", True)


@pytest.fixture
def player_tables() -> EventTables:
    matches = (
        Match("M1", date(2023, 8, 10), "2023-24", "League", "Ahly", "Zamalek", "W"),
        Match("M2", date(2023, 9, 1), "2023-24", "Cup", "Pyramids", "Ahly", "W"),
        Match("M3", date(2022, 10, 1), "2022-23", "League", "Ahly", "Zamalek", "D"),
        Match("M4", None, "Friendlies", "Friendly", "Ahly", "Masry", "L"),
    )
    lineups = (
        LineupAppearance("Salah", "M1", "Ahly", 90),
        LineupAppearance("Salah", "M2", "Ahly", 90),
        LineupAppearance("Salah", "M3", "Ahly", 45),
        LineupAppearance("Salah", "M99", "Ahly", 90),
        LineupAppearance("Kahraba", "M1", "Ahly", 60),
        LineupAppearance("Kahraba", "M3", "Zamalek", 90),
        LineupAppearance("", "M1", "Ahly", 90),
    )
    actions = (
        ActionEvent("Salah", "M1", ActionKind.GOAL, "Ahly", "10"),
        ActionEvent("Salah", "M1", ActionKind.GOAL, "Ahly", "30"),
        ActionEvent("Salah", "M1", ActionKind.ASSIST, "Ahly", "50"),
        ActionEvent("Salah", "M2", ActionKind.GOAL, "Ahly", "20"),
        ActionEvent("Salah", "M2", ActionKind.PENALTY_MISSED, "Ahly", "70"),
        ActionEvent("Salah", "M3", ActionKind.PENALTY_GOAL, "Ahly", "45+1"),
        ActionEvent("Salah", "M99", ActionKind.GOAL, "Ahly", "5"),
        ActionEvent("Kahraba", "M1", ActionKind.ASSIST, "Ahly", "30"),
        ActionEvent("Kahraba", "M3", ActionKind.GOAL, "Zamalek", "12"),
    )
    return EventTables(matches=matches, lineups=lineups, actions=actions)


@pytest.fixture
def keeper_tables() -> EventTables:
    matches = (
        Match("G1", date(2023, 1, 1), "2022-23", "League", "Ahly", "Zamalek", "L"),
        Match("G2", date(2023, 2, 1), "2022-23", "League", "Ahly", "Zamalek", "W"),
        Match("G3", date(2023, 3, 1), "2022-23", "Cup", "Zamalek", "Ahly", "D"),
    )
    lineups = (
        LineupAppearance("Shenawy", "G1", "Ahly", 55),
        LineupAppearance("Shenawy", "G2", "Ahly", 90),
        LineupAppearance("Shenawy", "G3", "Ahly", 70),
        LineupAppearance("Sobhy", "G1", "Ahly", 35),
        LineupAppearance("Sobhy", "G3", "Ahly", 20),
        LineupAppearance("Awad", "G1", "Zamalek", 90),
        LineupAppearance("Awad", "G2", "Zamalek", 90),
    )
    actions = (
        ActionEvent("Zizo", "G1", ActionKind.GOAL, "Zamalek", "60"),
        ActionEvent("Zizo", "G1", ActionKind.GOAL, "Zamalek", "60"),
        ActionEvent("Zizo", "G1", ActionKind.PENALTY_GOAL, "Zamalek", "50"),
        ActionEvent("Salah", "G2", ActionKind.GOAL, "Ahly", "10"),
        ActionEvent("Salah", "G2", ActionKind.FREE_KICK_GOAL, "Ahly", "20"),
        ActionEvent("Zizo", "G3", ActionKind.GOAL, "Zamalek", "80"),
        ActionEvent("Zizo", "G3", ActionKind.ASSIST, "Zamalek", "85"),
    )
    goalkeepers = (
        GoalkeeperAppearance("Shenawy", "G1", "Ahly", KeeperRole.STARTER, 55, 1),
        GoalkeeperAppearance("Sobhy", "G1", "Ahly", KeeperRole.SUBSTITUTE, 55, 1),
        GoalkeeperAppearance("Awad", "G1", "Zamalek", KeeperRole.STARTER, 0, 0),
        GoalkeeperAppearance("Shenawy", "G2", "Ahly", KeeperRole.STARTER, 0, 0),
        GoalkeeperAppearance("Awad", "G2", "Zamalek", KeeperRole.STARTER, 0, 2),
        GoalkeeperAppearance("Shenawy", "G3", "Ahly", KeeperRole.STARTER, 0, 0),
        GoalkeeperAppearance("Sobhy", "G3", "Ahly", KeeperRole.SUBSTITUTE, 70, 1),
    )
    return EventTables(matches=matches, lineups=lineups, actions=actions, goalkeepers=goalkeepers)
