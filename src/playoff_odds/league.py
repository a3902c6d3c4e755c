from __future__ import annotations

import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yaml


def _optional_int(raw: dict[str, Any], key: str) -> Optional[int]:
    value = raw.get(key)
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValueError(f"League config field '{key}' must be an integer, got: {value!r}") from None


@dataclass(frozen=True)
class LeagueConfig:
    """Per-league overrides layered between environment settings and CLI flags."""

    season_weeks: Optional[int] = None
    playoff_spots: Optional[int] = None
    trials: Optional[int] = None
    score_std_dev: Optional[float] = None
    random_seed: Optional[int] = None

    @classmethod
    def load(cls, path: Path) -> "LeagueConfig":
        if not path.exists():
            raise FileNotFoundError(f"League config not found at {path}")

        raw = yaml.safe_load(path.read_text()) or {}
        if not isinstance(raw, dict):
            raise ValueError(f"League config at {path} must be a mapping")

        season_weeks = _optional_int(raw, "season_weeks")
        if season_weeks is not None and season_weeks <= 0:
            raise ValueError("season_weeks must be > 0")

        score_std_dev = raw.get("score_std_dev")
        if score_std_dev is not None:
            try:
                score_std_dev = float(score_std_dev)
            except (TypeError, ValueError):
                raise ValueError(
                    f"League config field 'score_std_dev' must be a number, got: {score_std_dev!r}"
                ) from None
            if not (math.isfinite(score_std_dev) and score_std_dev > 0):
                raise ValueError("score_std_dev must be a finite number > 0")

        return cls(
            season_weeks=season_weeks,
            playoff_spots=_optional_int(raw, "playoff_spots"),
            trials=_optional_int(raw, "trials"),
            score_std_dev=score_std_dev,
            random_seed=_optional_int(raw, "random_seed"),
        )
