"""Monte Carlo playoff odds for head-to-head fantasy leagues."""

from .settings import AppSettings, get_settings, reset_settings_cache
from .simulator import (
    InvalidInputError,
    SimulationConfig,
    SimulationResult,
    TeamReport,
    simulate,
)
from .standings import TeamRecord

__all__ = [
    "AppSettings",
    "InvalidInputError",
    "SimulationConfig",
    "SimulationResult",
    "TeamRecord",
    "TeamReport",
    "get_settings",
    "reset_settings_cache",
    "simulate",
]
