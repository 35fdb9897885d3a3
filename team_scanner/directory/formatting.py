from __future__ import annotations

from team_scanner.utils.types import QuickStats, StatLine, TeamInfo

UNRANKED = "unranked"

STAT_LABELS = (
    ("total", "Total OPR"),
    ("auto", "Auto"),
    ("driver_controlled", "TeleOp"),
    ("endgame", "Endgame"),
)


def ordinal(n: int) -> str:
    suffixes = ("th", "st", "nd", "rd")
    v = n % 100
    if 11 <= v <= 13:
        return f"{n}th"
    return f"{n}{suffixes[n % 10] if n % 10 < 4 else 'th'}"


def format_rank(rank: int | None) -> str:
    if not rank or rank <= 0:
        return UNRANKED
    return ordinal(rank)


def format_stat_line(line: StatLine) -> str:
    return f"{line.value:.2f} ({format_rank(line.rank)})"


def overlay_label(detected_text: str, team: TeamInfo | None) -> str:
    if team is None:
        return detected_text
    return f"{team.number}\n{team.name}"


def describe_team(team: TeamInfo) -> list[str]:
    lines = [f"Team {team.number}: {team.name}"]
    if team.location:
        lines.append(team.location)
    return lines


def describe_stats(stats: QuickStats | None) -> list[str]:
    if stats is None:
        return ["No stats available for this team."]
    return [f"{label}: {format_stat_line(getattr(stats, attr))}" for attr, label in STAT_LABELS]
