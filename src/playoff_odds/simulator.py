from __future__ import annotations

import json
import logging
import math
import random
from concurrent.futures import ProcessPoolExecutor
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Sequence

from .schedule import Schedule, resolve_schedule, schedule_to_payload
from .score_model import build_score_model
from .settings import AppSettings, DEFAULT_PLAYOFF_SPOTS, DEFAULT_TRIALS
from .standings import InvalidInputError, TeamRecord

LOGGER = logging.getLogger(__name__)

DEFAULT_REMAINING_WEEKS = 6
NEAR_TIE_MARGIN = 0.5  # scores this close split the game as a half-win each
BYE_INDEX = -1


@dataclass(frozen=True)
class SimulationConfig:
    remaining_weeks: int = DEFAULT_REMAINING_WEEKS
    playoff_spots: int = DEFAULT_PLAYOFF_SPOTS
    trials: int = DEFAULT_TRIALS
    score_std_dev: Optional[float] = None
    random_seed: Optional[int] = None
    workers: int = 1


@dataclass
class TeamReport:
    id: str
    name: str
    manager: str
    playoff_probability: float
    expected_place: float
    most_likely_place: int
    place_distribution: list[float]


@dataclass
class SimulationResult:
    reports: list[TeamReport]
    config: SimulationConfig
    schedule: Schedule
    schedule_source: str
    score_std_dev: float
    league_mean: float
    generated_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def report_for(self, team_id: str) -> TeamReport:
        for report in self.reports:
            if report.id == team_id:
                return report
        raise KeyError(team_id)

    def to_dict(self) -> dict[str, object]:
        return {
            "generated_at": self.generated_at,
            "config": asdict(self.config),
            "score_std_dev": self.score_std_dev,
            "league_mean": self.league_mean,
            "schedule_source": self.schedule_source,
            "schedule": schedule_to_payload(self.schedule),
            "teams": [asdict(report) for report in self.reports],
        }


@dataclass(frozen=True)
class _SeasonPlan:
    """Per-run arrays indexed by stable team position."""

    base_wins: list[float]
    means: list[float]
    sds: list[float]
    projected_points: list[float]
    weeks: list[list[tuple[int, int]]]
    bye_mean: float
    bye_sd: float


def validate_inputs(teams: Sequence[TeamRecord], config: SimulationConfig) -> None:
    if not teams:
        raise InvalidInputError("At least one team is required")
    if config.trials < 1:
        raise InvalidInputError(f"trials must be >= 1, got: {config.trials}")
    if config.remaining_weeks < 0:
        raise InvalidInputError(f"remaining_weeks must be >= 0, got: {config.remaining_weeks}")
    if not 1 <= config.playoff_spots <= len(teams):
        raise InvalidInputError(
            f"playoff_spots must be between 1 and {len(teams)}, got: {config.playoff_spots}"
        )
    if config.workers < 1:
        raise InvalidInputError(f"workers must be >= 1, got: {config.workers}")
    sd = config.score_std_dev
    if sd is not None and not (math.isfinite(sd) and sd > 0):
        raise InvalidInputError(f"score_std_dev must be a finite number > 0, got: {sd}")

    seen: set[str] = set()
    for team in teams:
        if team.id in seen:
            raise InvalidInputError(f"Duplicate team id: {team.id}")
        seen.add(team.id)


def rank_order(sim_wins: Sequence[float], projected_points: Sequence[float]) -> list[int]:
    """Team indices best-first: wins, then projected points-for; residual ties keep input order."""

    return sorted(range(len(sim_wins)), key=lambda idx: (-sim_wins[idx], -projected_points[idx]))


def _run_trials(plan: _SeasonPlan, trials: int, rng: random.Random) -> list[list[int]]:
    team_count = len(plan.base_wins)
    place_counts = [[0] * team_count for _ in range(team_count)]
    sim_wins = [0.0] * team_count
    gauss = rng.gauss
    means = plan.means
    sds = plan.sds

    for _ in range(trials):
        sim_wins[:] = plan.base_wins
        for week in plan.weeks:
            for a, b in week:
                score_a = gauss(means[a], sds[a])
                if b == BYE_INDEX:
                    score_b = gauss(plan.bye_mean, plan.bye_sd)
                else:
                    score_b = gauss(means[b], sds[b])

                if score_a > score_b + NEAR_TIE_MARGIN:
                    sim_wins[a] += 1.0
                elif score_b > score_a + NEAR_TIE_MARGIN:
                    if b != BYE_INDEX:
                        sim_wins[b] += 1.0
                else:
                    sim_wins[a] += 0.5
                    if b != BYE_INDEX:
                        sim_wins[b] += 0.5

        for place, idx in enumerate(rank_order(sim_wins, plan.projected_points)):
            place_counts[idx][place] += 1

    return place_counts


def _run_trial_chunk(args: tuple[_SeasonPlan, int, int]) -> list[list[int]]:
    plan, trials, seed = args
    return _run_trials(plan, trials, random.Random(seed))


def _run_parallel(plan: _SeasonPlan, trials: int, workers: int, rng: random.Random) -> list[list[int]]:
    chunks = min(workers, trials)
    base, extra = divmod(trials, chunks)
    # Each chunk draws from its own generator seeded off the master stream.
    jobs = [(plan, base + (1 if i < extra else 0), rng.getrandbits(64)) for i in range(chunks)]

    team_count = len(plan.base_wins)
    totals = [[0] * team_count for _ in range(team_count)]
    with ProcessPoolExecutor(max_workers=chunks) as executor:
        for counts in executor.map(_run_trial_chunk, jobs):
            for idx, row in enumerate(counts):
                for place, count in enumerate(row):
                    totals[idx][place] += count
    return totals


def aggregate(
    teams: Sequence[TeamRecord],
    place_counts: Sequence[Sequence[int]],
    trials: int,
    playoff_spots: int,
) -> list[TeamReport]:
    """Turn per-team place tallies into probabilities and summary places."""

    trials_float = float(trials)
    reports: list[TeamReport] = []
    for team, counts in zip(teams, place_counts):
        distribution = [count / trials_float for count in counts]
        place_sum = sum((place + 1) * count for place, count in enumerate(counts))
        reports.append(
            TeamReport(
                id=team.id,
                name=team.name,
                manager=team.manager,
                playoff_probability=sum(distribution[:playoff_spots]),
                expected_place=place_sum / trials_float,
                most_likely_place=list(counts).index(max(counts)) + 1,
                place_distribution=distribution,
            )
        )
    return reports


def simulate(
    teams: Sequence[TeamRecord],
    config: Optional[SimulationConfig] = None,
    schedule: Optional[Sequence[Sequence[Sequence[object]]]] = None,
    rng: Optional[random.Random] = None,
) -> SimulationResult:
    """Project playoff odds by replaying the remaining weeks ``config.trials`` times.

    The schedule (supplied or generated) is fixed for the whole run; only the
    sampled weekly scores vary between trials.
    """

    config = config or SimulationConfig()
    validate_inputs(teams, config)
    rng = rng or random.Random(config.random_seed)

    model = build_score_model(teams, config.score_std_dev)
    team_ids = [team.id for team in teams]
    resolved, source = resolve_schedule(schedule, team_ids, config.remaining_weeks, rng)

    index = {team_id: idx for idx, team_id in enumerate(team_ids)}
    plan = _SeasonPlan(
        base_wins=[float(team.wins) for team in teams],
        means=[model.for_team(team_id).mean for team_id in team_ids],
        sds=[model.for_team(team_id).sd for team_id in team_ids],
        projected_points=[
            team.points_for + config.remaining_weeks * team.effective_avg_points for team in teams
        ],
        weeks=[
            [(index[a], BYE_INDEX if b is None else index[b]) for a, b in week] for week in resolved
        ],
        bye_mean=model.league_mean,
        bye_sd=model.sd,
    )

    if config.workers > 1 and config.trials > 1:
        place_counts = _run_parallel(plan, config.trials, config.workers, rng)
    else:
        place_counts = _run_trials(plan, config.trials, rng)

    reports = aggregate(teams, place_counts, config.trials, config.playoff_spots)
    reports.sort(key=lambda report: report.expected_place)

    LOGGER.info(
        "Simulated %d trials over %d weeks for %d teams (sd %.2f, %s schedule)",
        config.trials,
        config.remaining_weeks,
        len(teams),
        model.sd,
        source,
    )

    return SimulationResult(
        reports=reports,
        config=config,
        schedule=resolved,
        schedule_source=source,
        score_std_dev=model.sd,
        league_mean=model.league_mean,
    )


def write_result(result: SimulationResult, output_path: Path) -> Path:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps(result.to_dict(), indent=2))
    LOGGER.info("Wrote playoff odds for %d teams to %s", len(result.reports), output_path)
    return output_path


def default_simulation_output(settings: AppSettings) -> Path:
    return settings.output_dir / "playoff_odds.json"
