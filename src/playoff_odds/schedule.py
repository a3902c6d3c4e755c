"""Remaining-season pairings: supplied schedules and the random fallback generator.

A week is a list of ``(team_a, team_b)`` pairings where ``team_b`` may be
``None``; that sentinel is a bye against a league-average scorer and never
appears in standings. The fallback generator pairs a fresh random permutation
of the league every week, so rematches are possible and the result is not a
round robin.
"""

from __future__ import annotations

import json
import logging
import random
from pathlib import Path
from typing import Any, Iterable, Optional, Sequence

import pandas as pd

LOGGER = logging.getLogger(__name__)

Pairing = tuple[str, Optional[str]]
ScheduleWeek = list[Pairing]
Schedule = list[ScheduleWeek]

SOURCE_SUPPLIED = "supplied"
SOURCE_GENERATED = "generated"


def generate_week(team_ids: Sequence[str], rng: random.Random) -> ScheduleWeek:
    shuffled = list(team_ids)
    rng.shuffle(shuffled)
    week: ScheduleWeek = [(shuffled[i], shuffled[i + 1]) for i in range(0, len(shuffled) - 1, 2)]
    if len(shuffled) % 2 == 1:
        week.append((shuffled[-1], None))
    return week


def generate_schedule(team_ids: Sequence[str], weeks: int, rng: random.Random) -> Schedule:
    return [generate_week(team_ids, rng) for _ in range(weeks)]


def _clean_id(value: Any) -> Optional[str]:
    if isinstance(value, (list, tuple, dict, set)):
        raise ValueError(f"Schedule pairing sides must be team ids, got: {value!r}")
    if value is None or pd.isna(value):
        return None
    text = str(value).strip()
    return text or None


def normalize_schedule(raw_weeks: Iterable[Iterable[Sequence[Any]]], team_ids: Iterable[str]) -> Schedule:
    """Restrict a supplied schedule to known teams.

    A side that is not in the standings becomes a bye; a pairing with no known
    side is dropped.
    """

    known = set(team_ids)
    schedule: Schedule = []
    for raw_week in raw_weeks:
        week: ScheduleWeek = []
        for pairing in raw_week or []:
            sides = list(pairing) + [None, None]
            team_a = _clean_id(sides[0])
            team_b = _clean_id(sides[1])
            a_in = team_a if team_a in known else None
            b_in = team_b if team_b in known else None
            if a_in and b_in:
                week.append((a_in, b_in))
            elif a_in or b_in:
                week.append((a_in or b_in, None))  # type: ignore[arg-type]
        schedule.append(week)
    return schedule


def resolve_schedule(
    supplied: Optional[Sequence[Sequence[Sequence[Any]]]],
    team_ids: Sequence[str],
    weeks: int,
    rng: random.Random,
) -> tuple[Schedule, str]:
    """Use the supplied schedule when it has any games, otherwise generate one."""

    if supplied is not None:
        normalized = normalize_schedule(supplied, team_ids)[:weeks]
        if any(normalized):
            normalized += [[] for _ in range(weeks - len(normalized))]
            LOGGER.debug("Using supplied schedule covering %d weeks", len(normalized))
            return normalized, SOURCE_SUPPLIED
        LOGGER.info("Supplied schedule has no usable games; generating a random schedule")

    schedule = generate_schedule(team_ids, weeks, rng)
    LOGGER.debug("Generated random schedule for %d weeks", weeks)
    return schedule, SOURCE_GENERATED


def load_schedule(path: Path) -> list[list[list[Optional[str]]]]:
    """Read a schedule from JSON (nested weeks) or CSV (``week,team_a,team_b``)."""

    if not path.exists():
        raise FileNotFoundError(f"Schedule file not found at {path}")

    if path.suffix.lower() == ".csv":
        df = pd.read_csv(path, dtype=str)
        missing = {"week", "team_a", "team_b"} - set(df.columns)
        if missing:
            raise ValueError(f"Schedule CSV {path} is missing columns: {sorted(missing)}")
        if df.empty:
            return []
        df["week"] = df["week"].astype(int)
        first_week = int(df["week"].min())
        last_week = int(df["week"].max())
        weeks: list[list[list[Optional[str]]]] = [[] for _ in range(last_week - first_week + 1)]
        for row in df.itertuples(index=False):
            weeks[int(row.week) - first_week].append([_clean_id(row.team_a), _clean_id(row.team_b)])
        return weeks

    payload = json.loads(path.read_text())
    if isinstance(payload, dict):
        payload = payload.get("weeks")
    if not isinstance(payload, list):
        raise ValueError(f"Schedule file {path} must contain a list of weeks")
    parsed: list[list[list[Optional[str]]]] = []
    for week in payload:
        if week is not None and not isinstance(week, list):
            raise ValueError(f"Schedule file {path} has a week that is not a list: {week!r}")
        pairings = []
        for pairing in week or []:
            if not isinstance(pairing, list) or not 1 <= len(pairing) <= 2:
                raise ValueError(f"Schedule file {path} has a malformed pairing: {pairing!r}")
            pairings.append([_clean_id(side) for side in pairing] + [None] * (2 - len(pairing)))
        parsed.append(pairings)
    return parsed


def schedule_to_payload(schedule: Schedule) -> list[list[list[Optional[str]]]]:
    return [[[team_a, team_b] for team_a, team_b in week] for week in schedule]
