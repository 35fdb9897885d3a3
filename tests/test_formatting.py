import pytest

from team_scanner.directory.formatting import (
    UNRANKED,
    describe_stats,
    describe_team,
    format_rank,
    format_stat_line,
    ordinal,
    overlay_label,
)
from team_scanner.directory.schemas import QuickStatsPayload, TeamPayload
from team_scanner.utils.types import StatLine, TeamInfo


@pytest.mark.parametrize(
    ("n", "expected"),
    [(1, "1st"), (2, "2nd"), (3, "3rd"), (4, "4th"), (11, "11th"), (12, "12th"), (13, "13th"),
     (21, "21st"), (102, "102nd"), (111, "111th")],
)
def test_ordinal(n, expected):
    assert ordinal(n) == expected


def test_rank_zero_means_unranked():
    assert format_rank(0) == UNRANKED
    assert format_rank(None) == UNRANKED
    assert format_stat_line(StatLine(value=42.125, rank=3)) == "42.12 (3rd)"
    assert format_stat_line(StatLine(value=1.0)) == "1.00 (unranked)"


def test_overlay_label_prefers_team_name():
    team = TeamInfo(number="254", name="WPI Robotics")
    assert overlay_label("254", team) == "254\nWPI Robotics"
    assert overlay_label("254", None) == "254"


def test_describe_team_and_stats():
    team = TeamPayload.model_validate({"number": 16236, "name": "Gear Grinders", "city": "Austin", "state": ""}).to_team_info()
    assert team.number == "16236"
    assert team.state is None
    assert describe_team(team) == ["Team 16236: Gear Grinders", "Austin"]

    stats = QuickStatsPayload.model_validate({"tot": {"value": 88.5, "rank": 2}, "eg": {"value": 10, "rank": -1}})
    lines = describe_stats(stats.to_quick_stats())
    assert lines == [
        "Total OPR: 88.50 (2nd)",
        "Auto: 0.00 (unranked)",
        "TeleOp: 0.00 (unranked)",
        "Endgame: 10.00 (unranked)",
    ]
    assert describe_stats(None) == ["No stats available for this team."]
