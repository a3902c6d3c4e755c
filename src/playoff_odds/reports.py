from __future__ import annotations

from typing import Iterable, Sequence

import pandas as pd

from .score_model import MatchupProbability
from .simulator import TeamReport


def ordinal(n: int) -> str:
    if 11 <= n % 100 <= 13:
        return f"{n}th"
    suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def reports_to_frame(reports: Sequence[TeamReport], playoff_spots: int) -> pd.DataFrame:
    """One row per team, best expected place first, with a percentage column per place."""

    rows: list[dict[str, object]] = []
    for report in sorted(reports, key=lambda item: item.expected_place):
        row: dict[str, object] = {
            "team_id": report.id,
            "team": report.name or report.id,
            "manager": report.manager,
            "expected_place": round(report.expected_place, 2),
            "most_likely_place": report.most_likely_place,
        }
        for place, probability in enumerate(report.place_distribution, start=1):
            row[ordinal(place)] = round(probability * 100, 2)
        row["playoff_pct"] = round(sum(report.place_distribution[:playoff_spots]) * 100, 2)
        rows.append(row)
    return pd.DataFrame(rows)


def matchups_to_frame(weeks: Iterable[tuple[int, Sequence[MatchupProbability]]]) -> pd.DataFrame:
    rows = [
        {
            "week": week,
            "team_a": matchup.team_a,
            "team_b": matchup.team_b if not matchup.is_bye else "BYE",
            "win_prob_a": round(matchup.probability_a, 4),
            "win_prob_b": round(matchup.probability_b, 4),
        }
        for week, matchups in weeks
        for matchup in matchups
    ]
    return pd.DataFrame(rows, columns=["week", "team_a", "team_b", "win_prob_a", "win_prob_b"])
