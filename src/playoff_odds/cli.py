from __future__ import annotations

import logging
import random
from pathlib import Path
from typing import Optional

import click

from .league import LeagueConfig
from .reports import matchups_to_frame, reports_to_frame
from .schedule import load_schedule, resolve_schedule
from .score_model import build_score_model, matchup_probabilities
from .settings import AppSettings, get_settings
from .simulator import (
    DEFAULT_REMAINING_WEEKS,
    SimulationConfig,
    default_simulation_output,
    simulate,
    write_result,
)
from .standings import InvalidInputError, StandingsSnapshot, load_standings

ENV_FILE_OPTION = click.option(
    "--env-file",
    type=click.Path(path_type=Path, dir_okay=False, exists=False, readable=True),
    default=".env",
    show_default=True,
    help="Path to the .env file to load.",
)


def _configure_logging(settings: AppSettings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _env_rows(settings: AppSettings) -> list[tuple[str, str]]:
    return [
        ("DATA_ROOT", str(settings.data_root)),
        ("LOG_LEVEL", settings.log_level),
        ("SEASON_WEEKS", str(settings.season_weeks)),
        ("PLAYOFF_SPOTS", str(settings.playoff_spots)),
        ("PLAYOFF_TRIALS", str(settings.trials)),
    ]


def _load_league_config(path: Optional[Path]) -> LeagueConfig:
    if path is None:
        return LeagueConfig()
    try:
        return LeagueConfig.load(path)
    except (FileNotFoundError, ValueError) as exc:
        raise click.BadParameter(str(exc), param_hint="--config") from exc


def _load_snapshot(path: Path) -> StandingsSnapshot:
    try:
        return load_standings(path)
    except (FileNotFoundError, ValueError) as exc:
        raise click.ClickException(f"Unable to load standings: {exc}") from exc


def _load_schedule_file(path: Optional[Path]):
    if path is None:
        return None
    try:
        return load_schedule(path)
    except (FileNotFoundError, ValueError) as exc:
        raise click.ClickException(f"Unable to load schedule: {exc}") from exc


def _resolve_remaining_weeks(
    explicit: Optional[int],
    snapshot: StandingsSnapshot,
    season_weeks: int,
) -> int:
    if explicit is not None:
        return explicit
    derived = snapshot.remaining_weeks(season_weeks)
    if derived is not None:
        return derived
    return DEFAULT_REMAINING_WEEKS


def _first_set(*values):
    for value in values:
        if value is not None:
            return value
    return None


@click.group()
def cli() -> None:
    """Fantasy league playoff odds CLI."""


@cli.command()
@ENV_FILE_OPTION
def env(env_file: Path) -> None:
    """Show the current environment configuration."""

    settings = get_settings(env_file)
    rows = _env_rows(settings)
    width = max(len(key) for key, _ in rows)
    for key, value in rows:
        click.echo(f"{key.ljust(width)} : {value}")


@cli.group()
def sim() -> None:
    """Monte Carlo projections."""


@sim.command("run")
@click.option(
    "--standings",
    "standings_path",
    type=click.Path(path_type=Path, dir_okay=False),
    required=True,
    help="Standings snapshot (JSON document or CSV).",
)
@click.option(
    "--schedule",
    "schedule_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Optional remaining-season schedule; a random one is generated otherwise.",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Optional league YAML config.",
)
@click.option(
    "--remaining-weeks",
    type=int,
    default=None,
    help="Weeks left to simulate (defaults to season length minus the snapshot's last week).",
)
@click.option("--playoff-spots", type=int, default=None, help="Number of places that qualify for the playoffs.")
@click.option("--trials", type=int, default=None, help="Number of Monte Carlo season completions.")
@click.option("--sd", "score_std_dev", type=float, default=None, help="Fixed weekly score standard deviation.")
@click.option("--random-seed", type=int, default=None, help="Optional seed for reproducibility.")
@click.option("--workers", type=int, default=1, show_default=True, help="Worker processes for trials.")
@click.option(
    "--output",
    type=click.Path(path_type=Path, dir_okay=False, writable=True),
    default=None,
    help="Optional explicit output JSON path.",
)
@ENV_FILE_OPTION
def sim_run(
    standings_path: Path,
    schedule_path: Optional[Path],
    config_path: Optional[Path],
    remaining_weeks: Optional[int],
    playoff_spots: Optional[int],
    trials: Optional[int],
    score_std_dev: Optional[float],
    random_seed: Optional[int],
    workers: int,
    output: Optional[Path],
    env_file: Path,
) -> None:
    """Simulate the rest of the season and report playoff odds."""

    settings = get_settings(env_file)
    _configure_logging(settings)
    league = _load_league_config(config_path)
    snapshot = _load_snapshot(standings_path)

    schedule = _load_schedule_file(schedule_path)

    season_weeks = _first_set(league.season_weeks, settings.season_weeks)
    config = SimulationConfig(
        remaining_weeks=_resolve_remaining_weeks(remaining_weeks, snapshot, season_weeks),
        playoff_spots=_first_set(playoff_spots, league.playoff_spots, settings.playoff_spots),
        trials=_first_set(trials, league.trials, settings.trials),
        score_std_dev=_first_set(score_std_dev, league.score_std_dev),
        random_seed=_first_set(random_seed, league.random_seed),
        workers=workers,
    )

    try:
        result = simulate(snapshot.teams, config, schedule=schedule)
    except InvalidInputError as exc:
        raise click.ClickException(str(exc)) from exc

    output_path = output or default_simulation_output(settings)
    path = write_result(result, output_path)

    frame = reports_to_frame(result.reports, config.playoff_spots)
    click.echo(frame.to_string(index=False))
    click.echo(
        f"Playoff odds → {path} ({config.trials} sims, {config.remaining_weeks} weeks, "
        f"{result.schedule_source} schedule, sd {result.score_std_dev:.2f})"
    )


@sim.command("matchups")
@click.option(
    "--standings",
    "standings_path",
    type=click.Path(path_type=Path, dir_okay=False),
    required=True,
    help="Standings snapshot (JSON document or CSV).",
)
@click.option(
    "--schedule",
    "schedule_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Optional remaining-season schedule; a random one is generated otherwise.",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Optional league YAML config.",
)
@click.option("--remaining-weeks", type=int, default=None, help="Weeks of matchups to show.")
@click.option("--sd", "score_std_dev", type=float, default=None, help="Fixed weekly score standard deviation.")
@click.option("--random-seed", type=int, default=None, help="Seed for the generated schedule.")
@ENV_FILE_OPTION
def sim_matchups(
    standings_path: Path,
    schedule_path: Optional[Path],
    config_path: Optional[Path],
    remaining_weeks: Optional[int],
    score_std_dev: Optional[float],
    random_seed: Optional[int],
    env_file: Path,
) -> None:
    """Show analytic win probabilities for each remaining matchup."""

    settings = get_settings(env_file)
    _configure_logging(settings)
    league = _load_league_config(config_path)
    snapshot = _load_snapshot(standings_path)
    if not snapshot.teams:
        raise click.ClickException("Standings contain no teams")

    season_weeks = _first_set(league.season_weeks, settings.season_weeks)
    weeks = _resolve_remaining_weeks(remaining_weeks, snapshot, season_weeks)
    if weeks < 0:
        raise click.BadParameter("must be >= 0", param_hint="--remaining-weeks")

    supplied = _load_schedule_file(schedule_path)
    try:
        model = build_score_model(snapshot.teams, _first_set(score_std_dev, league.score_std_dev))
    except InvalidInputError as exc:
        raise click.ClickException(str(exc)) from exc

    schedule, source = resolve_schedule(
        supplied,
        [team.id for team in snapshot.teams],
        weeks,
        random.Random(_first_set(random_seed, league.random_seed)),
    )

    first_week = (snapshot.last_updated_week or 0) + 1
    frame = matchups_to_frame(
        (first_week + offset, matchup_probabilities(week, model)) for offset, week in enumerate(schedule)
    )
    if frame.empty:
        click.echo("No remaining matchups.")
        return
    click.echo(frame.to_string(index=False))
    click.echo(f"{len(schedule)} weeks ({source} schedule, sd {model.sd:.2f})")
