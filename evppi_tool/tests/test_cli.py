"""CLI functionality tests.

Runs every command end to end through the Typer test runner.
"""

import json

import pytest
import yaml
from typer.testing import CliRunner

from evppi_tool.cli import app
from evppi_tool.core.logging_config import setup_logging


class TestCLI:
    """Test CLI command functionality."""

    @pytest.fixture
    def runner(self):
        """Create CLI test runner."""
        return CliRunner()

    @pytest.fixture
    def config_file(self, runner, tmp_path):
        """Default model configuration written by the template command."""
        path = tmp_path / "model.yaml"
        result = runner.invoke(app, ["template", str(path)])
        assert result.exit_code == 0
        return path

    def test_cli_help(self, runner):
        """Test CLI help command."""
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "EVPPI" in result.stdout
        assert "run" in result.stdout
        assert "validate" in result.stdout
        assert "template" in result.stdout

    def test_template_yaml(self, runner, tmp_path):
        """Test the template is a loadable YAML model configuration."""
        path = tmp_path / "model.yaml"

        result = runner.invoke(app, ["template", str(path)])

        assert result.exit_code == 0
        assert "Template written" in result.stdout
        data = yaml.safe_load(path.read_text())
        assert data['baseline_burden'] == 18530
        assert 'background_pm25' in data['parameters']

    def test_template_unsupported_format(self, runner, tmp_path):
        result = runner.invoke(app, ["template", str(tmp_path / "model.xlsx")])

        assert result.exit_code == 1

    def test_validate_valid_config(self, runner, config_file):
        result = runner.invoke(app, ["validate", str(config_file)])

        assert result.exit_code == 0
        assert "Configuration valid" in result.stdout
        assert "3 parameters" in result.stdout

    def test_validate_invalid_config(self, runner, tmp_path):
        """Test an invalid distribution is reported with a non-zero exit code."""
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({
            'baseline_burden': 100,
            'dose_response': {'type': 'linear', 'slope': 0.01},
            'parameters': {'background_pm25': {'type': 'lognormal', 'mean': -1.0, 'variance': 1.0}},
            'scenarios': [{'name': 'half', 'travel_multiplier': 0.5}],
        }))

        result = runner.invoke(app, ["validate", str(path)])

        assert result.exit_code == 1
        assert "Invalid configuration" in result.stdout

    def test_validate_missing_file(self, runner, tmp_path):
        result = runner.invoke(app, ["validate", str(tmp_path / "nope.yaml")])

        assert result.exit_code == 1

    def test_run_default_model(self, runner):
        """Test a run without a config file uses the stock model."""
        result = runner.invoke(app, ["run", "--samples", "1000", "--seed", "5"])

        assert result.exit_code == 0
        assert "EVPPI" in result.stdout
        assert "background_pm25" in result.stdout
        assert "travel_decrease" in result.stdout

    def test_run_with_exports(self, runner, config_file, tmp_path):
        """Test a run writes matrices and the EVPPI table."""
        output_dir = tmp_path / "out"

        result = runner.invoke(app, [
            "run",
            "--config", str(config_file),
            "--samples", "800",
            "--seed", "9",
            "--workers", "2",
            "--output", str(output_dir),
        ])

        assert result.exit_code == 0
        assert (output_dir / "samples.csv").exists()
        assert (output_dir / "outcomes.csv").exists()
        assert (output_dir / "evppi.csv").exists()

        payload = json.loads((output_dir / "evppi.json").read_text())
        assert payload['metadata']['n_samples'] == 800
        assert payload['metadata']['random_seed'] == 9
        assert payload['smoother'] == 'spline'

    def test_run_csv_only(self, runner, tmp_path):
        output_dir = tmp_path / "out"

        result = runner.invoke(app, [
            "run", "--samples", "500", "--seed", "1",
            "--smoother", "polynomial",
            "--output", str(output_dir), "--formats", "csv",
        ])

        assert result.exit_code == 0
        assert (output_dir / "evppi.csv").exists()
        assert not (output_dir / "evppi.json").exists()

    def test_run_log_file(self, runner, tmp_path):
        """Test the run log is written as JSON lines with run context."""
        log_file = tmp_path / "logs" / "run.jsonl"

        result = runner.invoke(app, ["run", "--samples", "500", "--seed", "2", "--log-file", str(log_file)])
        setup_logging("WARNING")

        assert result.exit_code == 0
        records = [json.loads(line) for line in log_file.read_text().splitlines()]
        sampler = [r for r in records if r.get("component") == "sampler"]
        assert any("draws/s" in r["message"] for r in sampler)
        assert all(r["n_samples"] == 500 for r in sampler)
        assert any(r.get("component") == "evppi" and "cells/s" in r["message"] for r in records)

    def test_run_unknown_smoother(self, runner):
        result = runner.invoke(app, ["run", "--samples", "100", "--smoother", "loess"])

        assert result.exit_code == 1
        assert "Unknown smoother" in result.stdout

    def test_run_missing_config(self, runner, tmp_path):
        result = runner.invoke(app, ["run", "--config", str(tmp_path / "missing.json")])

        assert result.exit_code == 1
        assert "Error" in result.stdout
