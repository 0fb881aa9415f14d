"""Tests for the Monte Carlo driver.

Validates matrix shapes, row alignment and seeded reproducibility.
"""

import numpy as np
import pytest

from evppi_tool.core.data_models import Parameter, default_model_config
from evppi_tool.core.exceptions import ConfigurationError, ForwardModelDomainError, InvalidParameterError
from evppi_tool.core.forward_model import HealthImpactModel
from evppi_tool.core.sampler import MonteCarloDriver, chunk_bounds, spawn_random_states


@pytest.fixture
def model_config():
    return default_model_config()


@pytest.fixture
def model(model_config):
    return HealthImpactModel(model_config.scenario_constants())


def run(model, model_config, n_samples=1000, **kwargs):
    driver = MonteCarloDriver(model, **kwargs)
    return driver.run(n_samples, model_config.parameters)


class TestChunking:
    """Test row chunking and random stream creation."""

    def test_chunk_bounds_cover_all_rows(self):
        """Test chunks are contiguous and cover every row once."""
        bounds = chunk_bounds(10, 4)

        assert bounds == [(0, 4), (4, 8), (8, 10)]

    def test_single_chunk(self):
        assert chunk_bounds(3, 2000) == [(0, 3)]

    def test_streams_are_independent(self):
        """Test spawned streams produce different draws."""
        first, second = spawn_random_states(1, 2)

        assert not np.array_equal(first.random_sample(10), second.random_sample(10))

    def test_streams_are_reproducible(self):
        a = spawn_random_states(5, 3)
        b = spawn_random_states(5, 3)

        for rs_a, rs_b in zip(a, b):
            np.testing.assert_array_equal(rs_a.random_sample(5), rs_b.random_sample(5))


class TestMonteCarloDriver:
    """Test the Monte Carlo run."""

    def test_matrix_shapes(self, model, model_config):
        """Test one row per draw, one column per parameter and scenario."""
        results = run(model, model_config, n_samples=1000, random_seed=1)

        assert results.sample_matrix.shape == (1000, 3)
        assert results.outcome_matrix.shape == (1000, 3)
        assert results.n_samples == 1000
        assert results.parameter_names == ['background_pm25', 'car_fraction', 'dose_response_scale']
        assert results.scenario_names == ['baseline', 'travel_decrease', 'travel_increase']
        assert results.baseline_scenarios == ['baseline']

    def test_rows_are_aligned(self, model, model_config):
        """Test each outcome row is the model evaluated at the same sample row."""
        results = run(model, model_config, n_samples=500, random_seed=3)

        draw = {name: results.parameter_values(name) for name in results.parameter_names}
        expected = model.evaluate_scenarios(draw)

        np.testing.assert_allclose(results.outcome_matrix, expected, rtol=1e-12)

    def test_baseline_column_is_constant(self, model, model_config):
        """Test D == 1 gives the baseline burden on every draw."""
        results = run(model, model_config, n_samples=200, random_seed=4)

        assert np.all(results.outcome_values('baseline') == 18530)

    def test_samples_follow_distributions(self, model, model_config):
        """Test sampled columns match the configured moments."""
        results = run(model, model_config, n_samples=20000, random_seed=5)

        assert abs(results.parameter_values('background_pm25').mean() - 10.0) < 0.1
        assert abs(results.parameter_values('car_fraction').mean() - 0.3) < 0.01
        assert abs(results.parameter_values('dose_response_scale').mean() - 1.2) < 0.01

    def test_same_seed_same_results(self, model, model_config):
        """Test reproducibility with a fixed seed."""
        first = run(model, model_config, random_seed=42)
        second = run(model, model_config, random_seed=42)

        np.testing.assert_array_equal(first.sample_matrix, second.sample_matrix)
        np.testing.assert_array_equal(first.outcome_matrix, second.outcome_matrix)

    def test_different_seed_different_results(self, model, model_config):
        first = run(model, model_config, random_seed=42)
        second = run(model, model_config, random_seed=43)

        assert not np.array_equal(first.sample_matrix, second.sample_matrix)

    def test_worker_count_does_not_change_results(self, model, model_config):
        """Test threaded runs reproduce the single-threaded draws."""
        serial = run(model, model_config, n_samples=1000, random_seed=7, chunk_size=128)
        threaded = run(model, model_config, n_samples=1000, random_seed=7,
                       chunk_size=128, n_workers=4)

        np.testing.assert_array_equal(serial.sample_matrix, threaded.sample_matrix)
        np.testing.assert_array_equal(serial.outcome_matrix, threaded.outcome_matrix)

    def test_matrices_are_read_only(self, model, model_config):
        results = run(model, model_config, n_samples=10, random_seed=1)

        with pytest.raises(ValueError):
            results.sample_matrix[0, 0] = 0.0
        with pytest.raises(ValueError):
            results.outcome_matrix[0, 0] = 0.0

    def test_single_sample(self, model, model_config):
        results = run(model, model_config, n_samples=1, random_seed=1)

        assert results.sample_matrix.shape == (1, 3)

    def test_scenario_subset(self, model, model_config):
        """Test only the requested scenarios are evaluated."""
        driver = MonteCarloDriver(model, random_seed=1)
        results = driver.run(100, model_config.parameters, model_config.scenarios[1:2])

        assert results.scenario_names == ['travel_decrease']
        assert results.baseline_scenarios == []
        assert results.outcome_matrix.shape == (100, 1)

    def test_extra_parameter_is_sampled(self, model, model_config):
        """Test parameters the model does not use still get a column."""
        parameters = list(model_config.parameters) + [
            Parameter(name="unused", distribution={'type': 'uniform', 'low': 0.0, 'high': 1.0})
        ]
        results = MonteCarloDriver(model, random_seed=1).run(100, parameters)

        assert results.parameter_names[-1] == 'unused'
        assert np.all((results.parameter_values('unused') >= 0) & (results.parameter_values('unused') < 1))


class TestDriverErrors:
    """Test invalid runs are rejected."""

    @pytest.mark.parametrize("n_samples", [0, -5, 2.5])
    def test_invalid_sample_count(self, model, model_config, n_samples):
        with pytest.raises(InvalidParameterError):
            run(model, model_config, n_samples=n_samples)

    def test_invalid_worker_count(self, model):
        with pytest.raises(InvalidParameterError):
            MonteCarloDriver(model, n_workers=0)

    def test_missing_model_parameter(self, model, model_config):
        """Test a model input without a distribution is reported before sampling."""
        parameters = [p for p in model_config.parameters if p.name != 'car_fraction']

        with pytest.raises(ConfigurationError, match="car_fraction"):
            MonteCarloDriver(model, random_seed=1).run(100, parameters)

    def test_duplicate_parameter_names(self, model, model_config):
        parameters = list(model_config.parameters) + [model_config.parameters[0]]

        with pytest.raises(ConfigurationError):
            MonteCarloDriver(model, random_seed=1).run(100, parameters)

    def test_domain_error_aborts_run(self, model, model_config):
        """Test a negative concentration draw stops the run."""
        parameters = [
            Parameter(name="background_pm25", distribution={'type': 'normal', 'mean': -5.0, 'stdev': 1.0}),
            *model_config.parameters[1:],
        ]

        with pytest.raises(ForwardModelDomainError):
            MonteCarloDriver(model, random_seed=1).run(100, parameters)

    def test_domain_error_aborts_threaded_run(self, model, model_config):
        parameters = [
            Parameter(name="background_pm25", distribution={'type': 'normal', 'mean': -5.0, 'stdev': 1.0}),
            *model_config.parameters[1:],
        ]

        with pytest.raises(ForwardModelDomainError):
            MonteCarloDriver(model, random_seed=1, n_workers=2, chunk_size=10).run(100, parameters)


class TestDriverLogging:
    """Test run progress reporting."""

    def test_completion_reports_throughput(self, model, model_config, package_log):
        run(model, model_config, n_samples=2000, random_seed=1)

        messages = [r.getMessage() for r in package_log.records if r.name == "evppi_tool.core.sampler"]
        assert any(m.startswith("Completed 2,000 draws in") and "draws/s" in m for m in messages)
