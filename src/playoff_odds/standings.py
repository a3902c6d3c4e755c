"""Team records and standings snapshot loading."""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

import pandas as pd

LOGGER = logging.getLogger(__name__)

LAST_WEEK_KEYS = ("lastUpdatedWeek", "latestUpdatedWeek", "last_week")


class InvalidInputError(ValueError):
    """Raised when simulation inputs are rejected before any work begins."""


def _coerce_count(value: Any) -> int:
    if value is None or value == "":
        return 0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if number != number:  # NaN from pandas
        return 0
    if math.isinf(number):
        raise InvalidInputError(f"Record components must be finite, got: {value!r}")
    count = int(number)
    if count < 0:
        raise InvalidInputError(f"Record components must be non-negative, got: {value!r}")
    return count


def _coerce_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number:  # NaN from pandas
        return None
    if math.isinf(number):
        raise InvalidInputError(f"Point totals must be finite, got: {value!r}")
    return number


def parse_record(text: Optional[str]) -> tuple[int, int, int]:
    """Parse a ``W-L-T`` record string; missing or garbled parts count as zero."""

    if not text:
        return 0, 0, 0
    parts = [part.strip() for part in str(text).split("-")]
    parts += [""] * (3 - len(parts))
    wins, losses, ties = (_coerce_count(part) for part in parts[:3])
    return wins, losses, ties


def _first(entry: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in entry and entry[key] is not None:
            return entry[key]
    return None


@dataclass(frozen=True)
class TeamRecord:
    id: str
    name: str
    manager: str
    wins: int
    losses: int
    ties: int
    avg_points: float
    points_for: float

    @property
    def played(self) -> int:
        return self.wins + self.losses + self.ties

    @property
    def effective_avg_points(self) -> float:
        # No games played means there is no scoring history to sample from.
        return self.avg_points if self.played > 0 else 0.0

    @classmethod
    def from_entry(cls, entry: Mapping[str, Any]) -> "TeamRecord":
        team_id = _first(entry, "id", "team_id")
        if team_id is None or str(team_id).strip() == "":
            raise InvalidInputError(f"Team entry is missing an id: {dict(entry)!r}")

        record = _first(entry, "record")
        if record is not None:
            wins, losses, ties = parse_record(record)
        else:
            wins = _coerce_count(_first(entry, "wins"))
            losses = _coerce_count(_first(entry, "losses"))
            ties = _coerce_count(_first(entry, "ties"))

        points_for = _coerce_float(_first(entry, "pointsFor", "points_for")) or 0.0
        played = wins + losses + ties
        avg_points = _coerce_float(_first(entry, "avgPoints", "avg_points"))
        if avg_points is None:
            avg_points = points_for / played if played else 0.0

        return cls(
            id=str(team_id).strip(),
            name=str(_first(entry, "name", "team_name") or ""),
            manager=str(_first(entry, "manager", "owners") or ""),
            wins=wins,
            losses=losses,
            ties=ties,
            avg_points=avg_points,
            points_for=points_for,
        )


@dataclass(frozen=True)
class StandingsSnapshot:
    teams: list[TeamRecord]
    last_updated_week: Optional[int] = None

    def remaining_weeks(self, season_weeks: int) -> Optional[int]:
        if self.last_updated_week is None:
            return None
        return remaining_weeks_for(self.last_updated_week, season_weeks)


def remaining_weeks_for(last_updated_week: int, season_weeks: int) -> int:
    return max(0, season_weeks - int(last_updated_week))


def teams_from_entries(entries: Iterable[Mapping[str, Any]]) -> list[TeamRecord]:
    return [TeamRecord.from_entry(entry) for entry in entries]


def _last_week_from(payload: Mapping[str, Any]) -> Optional[int]:
    for key in LAST_WEEK_KEYS:
        value = payload.get(key)
        if value is not None and value != "":
            try:
                return int(value)
            except (TypeError, ValueError, OverflowError):
                raise ValueError(f"Expected integer week for '{key}', got: {value!r}") from None
    return None


def load_standings(path: Path) -> StandingsSnapshot:
    """Load a standings snapshot from JSON (store document or bare list) or CSV."""

    if not path.exists():
        raise FileNotFoundError(f"Standings file not found at {path}")

    if path.suffix.lower() == ".csv":
        df = pd.read_csv(path, dtype=str)
        df = df.astype(object).where(pd.notna(df), None)
        entries = df.to_dict(orient="records")
        snapshot = StandingsSnapshot(teams=teams_from_entries(entries))
    else:
        payload = json.loads(path.read_text())
        if isinstance(payload, list):
            snapshot = StandingsSnapshot(teams=teams_from_entries(payload))
        elif isinstance(payload, dict):
            snapshot = StandingsSnapshot(
                teams=teams_from_entries(payload.get("teams") or []),
                last_updated_week=_last_week_from(payload),
            )
        else:
            raise ValueError(f"Unsupported standings payload in {path}")

    LOGGER.info(
        "Loaded %d teams from %s (last updated week: %s)",
        len(snapshot.teams),
        path,
        snapshot.last_updated_week,
    )
    return snapshot
