"""Tests for the health-impact forward model."""

import numpy as np
import pytest

from evppi_tool.core.data_models import Scenario, ScenarioConstants
from evppi_tool.core.dose_response import LinearDoseResponse, LogLinearDoseResponse, create_dose_response
from evppi_tool.core.exceptions import ConfigurationError, ForwardModelDomainError
from evppi_tool.core.forward_model import (
    HealthImpactModel,
    health_burden,
    relative_risks,
    scenario_concentration,
)


@pytest.fixture
def constants():
    """Baseline burden of 18,530 with a linear dose-response."""
    return ScenarioConstants(
        baseline_burden=18530,
        dose_response={'type': 'linear', 'slope': 0.01},
        scenarios=[
            Scenario(name="baseline", travel_multiplier=1.0, is_baseline=True),
            Scenario(name="decrease", travel_multiplier=0.5),
            Scenario(name="increase", travel_multiplier=1.5),
        ],
    )


@pytest.fixture
def model(constants):
    return HealthImpactModel(constants)


class TestWorkedExample:
    """Hand-computed values for x1=10, x2=0.3, x3=1.2, D=0.5."""

    def test_scenario_concentration(self):
        assert scenario_concentration(10.0, 0.3, 0.5) == pytest.approx(8.5)

    def test_relative_risks(self):
        risks = relative_risks(10.0, 0.3, 1.2, 0.5, LinearDoseResponse(slope=0.01))

        assert risks.pm25_scenario == pytest.approx(8.5)
        assert risks.baseline_rr == pytest.approx(1.02)
        assert risks.scenario_rr == pytest.approx(1.017)

    def test_health_burden(self):
        y = health_burden(10.0, 0.3, 1.2, 0.5, 18530, LinearDoseResponse(slope=0.01))

        assert y == pytest.approx(18530 * 1.017 / 1.02)
        assert y == pytest.approx(18475.5, abs=0.1)

    def test_model_evaluate(self, model, constants):
        draw = {'background_pm25': 10.0, 'car_fraction': 0.3, 'dose_response_scale': 1.2}

        y = model.evaluate(draw, constants.scenarios[1])

        assert isinstance(y, float)
        assert y == pytest.approx(18475.5, abs=0.1)


class TestModelProperties:
    """Structural properties of the model."""

    @pytest.fixture
    def draws(self):
        rs = np.random.RandomState(42)
        return {
            'background_pm25': rs.lognormal(2.3, 0.2, 1000),
            'car_fraction': rs.beta(3, 7, 1000),
            'dose_response_scale': rs.lognormal(0.18, 0.08, 1000),
        }

    def test_unit_multiplier_returns_baseline_burden(self, model, constants, draws):
        """D == 1 leaves exposure unchanged, so every outcome is the baseline burden."""
        y = model.evaluate(draws, constants.scenarios[0])

        assert np.all(y == 18530)

    def test_baseline_rr_uses_background_concentration(self):
        """R0 depends on x1 only, not on the scenario concentration."""
        dose_response = LinearDoseResponse(slope=0.01)

        low = relative_risks(10.0, 0.3, 1.2, 0.2, dose_response)
        high = relative_risks(10.0, 0.3, 1.2, 1.8, dose_response)

        assert low.baseline_rr == high.baseline_rr
        assert low.scenario_rr < high.scenario_rr

    def test_scenarios_share_the_draw(self, model, draws):
        """All scenario columns come from the same parameter draw."""
        outcomes = model.evaluate_scenarios(draws)

        assert outcomes.shape == (1000, 3)
        # With x3 > 1 a travel decrease lowers and an increase raises the burden
        above_one = draws['dose_response_scale'] > 1
        assert np.all(outcomes[above_one, 1] < outcomes[above_one, 0])
        assert np.all(outcomes[above_one, 2] > outcomes[above_one, 0])

    def test_scalar_draw_gives_vector_of_scenarios(self, model):
        draw = {'background_pm25': 12.0, 'car_fraction': 0.4, 'dose_response_scale': 1.1}

        assert model(draw).shape == (3,)

    def test_vectorized_matches_scalar(self, model, constants, draws):
        vector = model.evaluate(draws, constants.scenarios[1])
        scalar = [
            model.evaluate({k: v[i] for k, v in draws.items()}, constants.scenarios[1])
            for i in range(10)
        ]

        np.testing.assert_allclose(vector[:10], scalar, rtol=1e-15)

    def test_log_linear_dose_response(self):
        """f(0) = 0 gives unit relative risk at zero exposure."""
        dose_response = LogLinearDoseResponse(coefficient=0.05)
        risks = relative_risks(0.0, 0.3, 1.5, 0.5, dose_response)

        assert risks.baseline_rr == 1.0
        assert risks.scenario_rr == 1.0


class TestDomainErrors:
    """Out-of-domain inputs abort evaluation."""

    def test_negative_concentration(self, model, constants):
        draw = {'background_pm25': -1.0, 'car_fraction': 0.3, 'dose_response_scale': 1.2}

        with pytest.raises(ForwardModelDomainError):
            model.evaluate(draw, constants.scenarios[1])

    def test_negative_scenario_concentration(self, model):
        """A car fraction above one can push the scenario concentration below zero."""
        scenario = Scenario(name="no_cars", travel_multiplier=0.0)
        draw = {'background_pm25': 10.0, 'car_fraction': 1.5, 'dose_response_scale': 1.2}

        with pytest.raises(ForwardModelDomainError):
            model.evaluate(draw, scenario)

    def test_non_finite_input(self, model, constants):
        draw = {'background_pm25': 10.0, 'car_fraction': np.nan, 'dose_response_scale': 1.2}

        with pytest.raises(ForwardModelDomainError):
            model.evaluate(draw, constants.scenarios[1])

    def test_zero_baseline_relative_risk(self):
        with pytest.raises(ForwardModelDomainError, match="Baseline relative risk"):
            relative_risks(10.0, 0.3, 0.0, 0.5, LinearDoseResponse(slope=0.1))

    def test_custom_dose_response_error_is_wrapped(self):
        def failing(concentration):
            raise ValueError("outside calibrated range")

        with pytest.raises(ForwardModelDomainError, match="outside calibrated range"):
            relative_risks(10.0, 0.3, 1.2, 0.5, failing)

    def test_missing_parameter_in_draw(self, model, constants):
        with pytest.raises(ConfigurationError):
            model.evaluate({'background_pm25': 10.0}, constants.scenarios[1])

    def test_invalid_roles(self, constants):
        with pytest.raises(ConfigurationError):
            HealthImpactModel(constants, {'background_pm25': 'pm'})

    def test_custom_roles(self, constants):
        model = HealthImpactModel(constants, {
            'background_pm25': 'pm', 'car_fraction': 'cars', 'dose_response_scale': 'rr',
        })

        y = model.evaluate({'pm': 10.0, 'cars': 0.3, 'rr': 1.2}, constants.scenarios[1])

        assert y == pytest.approx(18475.5, abs=0.1)
        assert model.required_parameters == ['pm', 'cars', 'rr']


class TestDoseResponseFactory:
    """Building dose-response functions from configuration."""

    def test_linear(self):
        f = create_dose_response({'type': 'linear', 'slope': 0.02})

        assert f(0.0) == 0.0
        assert f(10.0) == pytest.approx(0.2)
        np.testing.assert_allclose(f(np.array([1.0, 2.0])), [0.02, 0.04])

    def test_callable_passthrough(self):
        def f(c):
            return 0.01 * c

        assert create_dose_response(f) is f

    def test_unknown_type(self):
        with pytest.raises(ConfigurationError):
            create_dose_response({'type': 'spline'})

    def test_negative_slope(self):
        with pytest.raises(ConfigurationError):
            create_dose_response({'type': 'linear', 'slope': -0.01})
