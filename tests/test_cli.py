import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from playoff_odds.cli import cli
from playoff_odds.settings import reset_settings_cache


@pytest.fixture(autouse=True)
def fresh_settings():
    reset_settings_cache()
    yield
    reset_settings_cache()


@pytest.fixture()
def data_root(tmp_path: Path) -> Path:
    root = tmp_path / "data"
    root.mkdir()
    return root


@pytest.fixture()
def standings_path(tmp_path: Path) -> Path:
    path = tmp_path / "standings.json"
    path.write_text(
        json.dumps(
            {
                "lastUpdatedWeek": 12,
                "teams": [
                    {"id": "1", "name": "Alpha", "manager": "Alice", "record": "9-3-0", "pointsFor": 1500, "avgPoints": 125},
                    {"id": "2", "name": "Beta", "manager": "Bob", "record": "7-5-0", "pointsFor": 1380, "avgPoints": 115},
                    {"id": "3", "name": "Gamma", "manager": "Cara", "record": "5-7-0", "pointsFor": 1260, "avgPoints": 105},
                    {"id": "4", "name": "Delta", "manager": "Dev", "record": "3-9-0", "pointsFor": 1140, "avgPoints": 95},
                ],
            }
        )
    )
    return path


def test_sim_run_writes_default_output(data_root: Path, standings_path: Path, tmp_path: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(
        cli,
        [
            "sim",
            "run",
            "--standings",
            str(standings_path),
            "--playoff-spots",
            "2",
            "--trials",
            "200",
            "--random-seed",
            "4",
            "--env-file",
            str(tmp_path / "missing.env"),
        ],
        env={"DATA_ROOT": str(data_root), "SEASON_WEEKS": "14"},
    )
    assert result.exit_code == 0, result.output

    output_path = data_root / "out" / "playoff_odds" / "playoff_odds.json"
    assert output_path.exists()
    payload = json.loads(output_path.read_text())

    # 14-week season with week 12 complete
    assert payload["config"]["remaining_weeks"] == 2
    assert payload["config"]["playoff_spots"] == 2
    assert len(payload["schedule"]) == 2
    assert {team["id"] for team in payload["teams"]} == {"1", "2", "3", "4"}
    assert "Alpha" in result.output
    assert "playoff_pct" in result.output


def test_sim_run_uses_league_config_and_schedule(standings_path: Path, tmp_path: Path) -> None:
    config_path = tmp_path / "league.yaml"
    config_path.write_text("playoff_spots: 3\ntrials: 50\nscore_std_dev: 12.0\nrandom_seed: 10\n")
    schedule_path = tmp_path / "schedule.json"
    schedule_path.write_text(json.dumps([[["1", "2"], ["3", "4"]], [["1", "3"], ["2", "4"]]]))
    output_path = tmp_path / "odds.json"

    runner = CliRunner()
    result = runner.invoke(
        cli,
        [
            "sim",
            "run",
            "--standings",
            str(standings_path),
            "--schedule",
            str(schedule_path),
            "--config",
            str(config_path),
            "--output",
            str(output_path),
            "--env-file",
            str(tmp_path / "missing.env"),
        ],
        env={"DATA_ROOT": str(tmp_path / "data")},
    )
    assert result.exit_code == 0, result.output

    payload = json.loads(output_path.read_text())
    assert payload["config"]["trials"] == 50
    assert payload["config"]["playoff_spots"] == 3
    assert payload["score_std_dev"] == 12.0
    assert payload["schedule_source"] == "supplied"
    assert payload["schedule"] == [[["1", "2"], ["3", "4"]], [["1", "3"], ["2", "4"]]]


def test_sim_run_rejects_invalid_playoff_spots(standings_path: Path, tmp_path: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(
        cli,
        [
            "sim",
            "run",
            "--standings",
            str(standings_path),
            "--playoff-spots",
            "9",
            "--env-file",
            str(tmp_path / "missing.env"),
        ],
        env={"DATA_ROOT": str(tmp_path / "data")},
    )

    assert result.exit_code != 0
    assert "playoff_spots must be between 1 and 4" in result.output
    assert not (tmp_path / "data" / "out").exists()


def test_sim_run_reports_missing_standings(tmp_path: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(
        cli,
        ["sim", "run", "--standings", str(tmp_path / "absent.json"), "--env-file", str(tmp_path / "missing.env")],
        env={"DATA_ROOT": str(tmp_path / "data")},
    )

    assert result.exit_code != 0
    assert "Unable to load standings" in result.output


def test_sim_matchups_prints_win_probabilities(standings_path: Path, tmp_path: Path) -> None:
    schedule_path = tmp_path / "schedule.json"
    schedule_path.write_text(json.dumps([[["1", "4"], ["2", "99"]]]))

    runner = CliRunner()
    result = runner.invoke(
        cli,
        [
            "sim",
            "matchups",
            "--standings",
            str(standings_path),
            "--schedule",
            str(schedule_path),
            "--remaining-weeks",
            "1",
            "--sd",
            "15",
            "--env-file",
            str(tmp_path / "missing.env"),
        ],
        env={"DATA_ROOT": str(tmp_path / "data")},
    )

    assert result.exit_code == 0, result.output
    assert "BYE" in result.output
    assert "win_prob_a" in result.output
    assert "supplied schedule" in result.output


def test_env_command_lists_settings(tmp_path: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(
        cli,
        ["env", "--env-file", str(tmp_path / "missing.env")],
        env={"DATA_ROOT": str(tmp_path / "data"), "PLAYOFF_SPOTS": "4"},
    )

    assert result.exit_code == 0, result.output
    assert "PLAYOFF_SPOTS" in result.output
    assert "SEASON_WEEKS" in result.output
    assert ": 4" in result.output


def test_sim_run_rejects_nan_sd(standings_path: Path, tmp_path: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(
        cli,
        [
            "sim",
            "run",
            "--standings",
            str(standings_path),
            "--playoff-spots",
            "2",
            "--sd",
            "nan",
            "--env-file",
            str(tmp_path / "missing.env"),
        ],
        env={"DATA_ROOT": str(tmp_path / "data")},
    )

    assert result.exit_code != 0
    assert "score_std_dev must be a finite number" in result.output
    assert not (tmp_path / "data" / "out").exists()


def test_sim_matchups_uses_league_config_season_length(standings_path: Path, tmp_path: Path) -> None:
    config_path = tmp_path / "league.yaml"
    config_path.write_text("season_weeks: 13\nscore_std_dev: 20\nrandom_seed: 3\n")

    runner = CliRunner()
    result = runner.invoke(
        cli,
        [
            "sim",
            "matchups",
            "--standings",
            str(standings_path),
            "--config",
            str(config_path),
            "--env-file",
            str(tmp_path / "missing.env"),
        ],
        env={"DATA_ROOT": str(tmp_path / "data"), "SEASON_WEEKS": "14"},
    )

    assert result.exit_code == 0, result.output
    # week 12 complete in a 13-week season leaves only week 13
    assert "1 weeks (generated schedule, sd 20.00)" in result.output


def test_sim_run_reports_malformed_schedule(standings_path: Path, tmp_path: Path) -> None:
    schedule_path = tmp_path / "schedule.json"
    schedule_path.write_text(json.dumps([[[["1", "2"], "3"]]]))

    runner = CliRunner()
    result = runner.invoke(
        cli,
        [
            "sim",
            "run",
            "--standings",
            str(standings_path),
            "--schedule",
            str(schedule_path),
            "--playoff-spots",
            "2",
            "--env-file",
            str(tmp_path / "missing.env"),
        ],
        env={"DATA_ROOT": str(tmp_path / "data")},
    )

    assert result.exit_code != 0
    assert "Unable to load schedule" in result.output
