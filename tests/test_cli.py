"""
Tests for the Click CLI.

Inputs are written as GeoPackages to a temporary directory and the commands
are driven through Click's CliRunner.
"""

import os
from pathlib import Path

import click
import pandas as pd
import pytest
import yaml
from click.testing import CliRunner
from shapely.geometry import Polygon

from holc_maps.ops import run_pipeline
from holc_maps.ops.run_pipeline import ConfigOverride, cli, log_level_for, setup_logging


@pytest.fixture(autouse=True)
def no_stderr_logging(monkeypatch):
    """Keep loguru away from CliRunner's captured streams."""
    monkeypatch.setattr(run_pipeline, "setup_logging", lambda **kwargs: None)


@pytest.fixture
def project(tmp_path: Path, block_groups, zones, birds) -> Path:
    """A project directory with three GeoPackage inputs and a config.yaml."""
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    block_groups.to_file(data_dir / "ejscreen.gpkg", driver="GPKG")
    zones.to_file(data_dir / "holc.gpkg", driver="GPKG")
    birds.to_file(data_dir / "birds.gpkg", driver="GPKG")

    config = {
        "project_name": "CLI Test",
        "input_files": {
            "ejscreen": "data/ejscreen.gpkg",
            "holc": "data/holc.gpkg",
            "birds": "data/birds.gpkg",
        },
        "analysis": {
            "state": "California",
            "county": "Los Angeles County",
            "year": 2022,
            "indicators": ["P_PM25"],
        },
        "system": {"target_crs": "EPSG:3310"},
        "directories": {"output": "output"},
    }
    (tmp_path / "config.yaml").write_text(yaml.safe_dump(config))
    return tmp_path


def invoke(project: Path, *args: str):
    runner = CliRunner()
    return runner.invoke(cli, ["--config", str(project / "config.yaml"), *args])


class TestConfigOverride:
    """Test KEY=VALUE parsing."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("analysis.year=2021", ("analysis.year", 2021)),
            ("system.target_crs=EPSG:3310", ("system.target_crs", "EPSG:3310")),
            ("analysis.county=Los Angeles County", ("analysis.county", "Los Angeles County")),
            ("analysis.year=null", ("analysis.year", None)),
            ("flag=true", ("flag", True)),
            ("ratio=0.5", ("ratio", 0.5)),
            ("analysis.indicators=P_PM25,LOWINCPCT", ("analysis.indicators", ["P_PM25", "LOWINCPCT"])),
        ],
    )
    def test_parses_values(self, raw, expected) -> None:
        assert ConfigOverride().convert(raw, None, None) == expected

    def test_rejects_missing_equals(self) -> None:
        with pytest.raises(click.BadParameter):
            ConfigOverride().convert("analysis.year", None, None)


class TestRunCommand:
    """Test the run command end to end."""

    def test_writes_outputs(self, project: Path) -> None:
        out = project / "results"

        result = invoke(project, "run", "--output-dir", str(out))

        assert result.exit_code == 0, result.output
        for name in [
            "ejscreen_by_grade.csv",
            "birds_by_grade.csv",
            "holc_equity_report.md",
            "mean_P_PM25_by_grade.png",
            "birds_percent_by_grade.png",
        ]:
            assert (out / name).exists(), name

        ejscreen = pd.read_csv(out / "ejscreen_by_grade.csv")
        assert ejscreen["grade"].tolist() == ["A", "B"]
        assert ejscreen["mean_P_PM25"].tolist() == [50.0, 50.0]

        birds = pd.read_csv(out / "birds_by_grade.csv")
        assert birds["grade"].tolist() == ["C"]
        assert birds["percent"].tolist() == [100.0]

        report = (out / "holc_equity_report.md").read_text()
        assert "All datasets share the same CRS" in report

    def test_default_command_runs_pipeline(self, project: Path) -> None:
        result = invoke(project)

        assert result.exit_code == 0, result.output
        assert (project / "output" / "holc_equity_report.md").exists()

    def test_config_override(self, project: Path) -> None:
        out = project / "results"

        result = invoke(project, "--config-override", "analysis.year=1999", "run", "--output-dir", str(out))

        assert result.exit_code == 0, result.output
        birds = pd.read_csv(out / "birds_by_grade.csv")
        assert len(birds) == 0

    def test_dry_run_writes_nothing(self, project: Path) -> None:
        result = invoke(project, "run", "--dry-run")

        assert result.exit_code == 0, result.output
        assert not (project / "output").exists()

    def test_geometry_error_exits_nonzero(self, project: Path, zones) -> None:
        broken = zones.copy()
        broken.loc[0, "geometry"] = Polygon([(0, 0), (5, 0), (10, 0), (0, 0)])
        broken.to_file(project / "data" / "holc.gpkg", driver="GPKG")

        result = invoke(project, "run")

        assert result.exit_code == 1
        assert not (project / "output" / "holc_equity_report.md").exists()

    def test_missing_input_exits_nonzero(self, project: Path) -> None:
        (project / "data" / "birds.gpkg").unlink()

        result = invoke(project, "run")

        assert result.exit_code == 1

    def test_bad_override_is_usage_error(self, project: Path) -> None:
        result = invoke(project, "--config-override", "no-equals-sign", "run")

        assert result.exit_code == 2


class TestCheckCrsCommand:
    """Test the check-crs command."""

    def test_all_match(self, project: Path) -> None:
        result = invoke(project, "check-crs")

        assert result.exit_code == 0, result.output
        assert "All datasets share the same CRS" in result.output

    def test_mismatch(self, project: Path, birds) -> None:
        birds.to_crs("EPSG:4326").to_file(project / "data" / "birds.gpkg", driver="GPKG")

        result = invoke(project, "check-crs")

        assert result.exit_code == 1
        assert "ejscreen vs holc: match" in result.output
        assert "holc vs birds: MISMATCH" in result.output


class TestSetupLogging:
    """Test level selection for the stderr sink."""

    @pytest.mark.parametrize(
        "verbose, trace, expected",
        [(False, False, "INFO"), (True, False, "DEBUG"), (False, True, "TRACE"), (True, True, "TRACE")],
    )
    def test_log_level_for(self, verbose, trace, expected) -> None:
        assert log_level_for(verbose, trace) == expected

    def test_exports_level(self, monkeypatch) -> None:
        monkeypatch.setenv("LOGURU_LEVEL", "INFO")

        setup_logging(verbose=True)

        assert os.environ["LOGURU_LEVEL"] == "DEBUG"
