from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Sequence

from .standings import InvalidInputError, TeamRecord

LOGGER = logging.getLogger(__name__)

SD_INFLATION = 1.5  # heuristic multiplier on the sample sd of team averages
MIN_STD_DEV = 6.0
SD_EPSILON = 1e-6

# Abramowitz & Stegun 7.1.26, max abs error ~1.5e-7
_ERF_P = 0.3275911
_ERF_A = (0.254829592, -0.284496736, 1.421413741, -1.453152027, 1.061405429)


@dataclass(frozen=True)
class ScoreDistribution:
    mean: float
    sd: float


@dataclass(frozen=True)
class ScoreModel:
    distributions: dict[str, ScoreDistribution]
    league_mean: float
    sd: float
    estimated: bool

    def for_team(self, team_id: Optional[str]) -> ScoreDistribution:
        """Distribution for a team; ``None`` is the league-average bye opponent."""

        if team_id is None:
            return ScoreDistribution(mean=self.league_mean, sd=self.sd)
        return self.distributions[team_id]


def league_mean(averages: Sequence[float]) -> float:
    if not averages:
        return 0.0
    return sum(averages) / len(averages)


def league_std_dev(averages: Sequence[float]) -> float:
    """Inflated sample standard deviation of team averages, floored at ``MIN_STD_DEV``."""

    if not averages:
        return MIN_STD_DEV
    mean = league_mean(averages)
    variance = sum((value - mean) ** 2 for value in averages) / max(1, len(averages) - 1)
    estimate = math.sqrt(variance) * SD_INFLATION
    if estimate < MIN_STD_DEV:
        LOGGER.debug("League sd estimate %.3f below floor; using %.1f", estimate, MIN_STD_DEV)
        return MIN_STD_DEV
    return estimate


def build_score_model(teams: Sequence[TeamRecord], score_std_dev: Optional[float] = None) -> ScoreModel:
    averages = [team.effective_avg_points for team in teams]
    if score_std_dev is not None:
        if not (math.isfinite(score_std_dev) and score_std_dev > 0):
            raise InvalidInputError(f"score_std_dev must be a finite number > 0, got: {score_std_dev!r}")
        sd = float(score_std_dev)
    else:
        sd = league_std_dev(averages)

    distributions = {
        team.id: ScoreDistribution(mean=average, sd=sd) for team, average in zip(teams, averages)
    }
    return ScoreModel(
        distributions=distributions,
        league_mean=league_mean(averages),
        sd=sd,
        estimated=score_std_dev is None,
    )


def erf(x: float) -> float:
    sign = 1.0 if x >= 0 else -1.0
    x = abs(x)
    t = 1.0 / (1.0 + _ERF_P * x)
    a1, a2, a3, a4, a5 = _ERF_A
    poly = ((((a5 * t + a4) * t + a3) * t + a2) * t + a1) * t
    return sign * (1.0 - poly * math.exp(-x * x))


def normal_cdf(z: float) -> float:
    return 0.5 * (1.0 + erf(z / math.sqrt(2)))


def win_probability(a: ScoreDistribution, b: ScoreDistribution) -> float:
    """Analytic probability that a score drawn from ``a`` beats one drawn from ``b``."""

    margin = a.mean - b.mean
    spread = math.sqrt(a.sd**2 + b.sd**2)
    if spread == 0:
        spread = SD_EPSILON
    return normal_cdf(margin / spread)


@dataclass(frozen=True)
class MatchupProbability:
    team_a: str
    team_b: Optional[str]
    probability_a: float

    @property
    def probability_b(self) -> float:
        return 1.0 - self.probability_a

    @property
    def is_bye(self) -> bool:
        return self.team_b is None


def matchup_probabilities(
    week: Sequence[tuple[str, Optional[str]]],
    model: ScoreModel,
) -> list[MatchupProbability]:
    return [
        MatchupProbability(
            team_a=team_a,
            team_b=team_b,
            probability_a=win_probability(model.for_team(team_a), model.for_team(team_b)),
        )
        for team_a, team_b in week
    ]
