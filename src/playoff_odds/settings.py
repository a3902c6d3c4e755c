from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

DEFAULT_SEASON_WEEKS = 14
DEFAULT_PLAYOFF_SPOTS = 6
DEFAULT_TRIALS = 2000


@dataclass
class AppSettings:
    """Application configuration sourced from environment variables."""

    data_root: Path
    log_level: str
    season_weeks: int = DEFAULT_SEASON_WEEKS
    playoff_spots: int = DEFAULT_PLAYOFF_SPOTS
    trials: int = DEFAULT_TRIALS

    @property
    def output_dir(self) -> Path:
        return self.data_root / "out" / "playoff_odds"


def _coerce_int(value: Optional[str], default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Expected integer-compatible value, got: {value!r}") from None


@lru_cache(maxsize=1)
def get_settings(env_path: Optional[Path | str] = None) -> AppSettings:
    """Load settings from `.env` (if present) and environment variables."""

    env_file = Path(env_path) if env_path else Path(".env")
    if env_file.exists():
        load_dotenv(env_file)

    data_root = Path(os.getenv("DATA_ROOT", "./data")).resolve()

    return AppSettings(
        data_root=data_root,
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        season_weeks=_coerce_int(os.getenv("SEASON_WEEKS"), DEFAULT_SEASON_WEEKS),
        playoff_spots=_coerce_int(os.getenv("PLAYOFF_SPOTS"), DEFAULT_PLAYOFF_SPOTS),
        trials=_coerce_int(os.getenv("PLAYOFF_TRIALS"), DEFAULT_TRIALS),
    )


def reset_settings_cache() -> None:
    """Clear cached settings, useful for tests."""

    get_settings.cache_clear()  # type: ignore[attr-defined]
