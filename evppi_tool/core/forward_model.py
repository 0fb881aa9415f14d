"""Health-impact forward model.

Maps one draw of the uncertain inputs (background PM2.5 concentration,
car-attributable fraction of PM2.5, dose-response scaling factor) and a
scenario's travel multiplier D to the scenario disease burden:

    pm25_scenario = x1 * (x2 * D + 1 - x2)
    R0 = 1 + (x3 - 1) * f(x1)
    R  = 1 + (x3 - 1) * f(pm25_scenario)
    y  = baseline_burden * R / R0

The baseline relative risk R0 is evaluated at the unscaled background
concentration x1 while R uses the scenario concentration. All functions are
pure and accept scalars or equally shaped numpy arrays.
"""

from typing import Dict, List, Mapping, NamedTuple, Optional, Sequence, Union

import numpy as np

from .data_models import DEFAULT_PARAMETER_ROLES, Scenario, ScenarioConstants
from .dose_response import DoseResponseFunction
from .exceptions import ConfigurationError, EVPPIToolError, ForwardModelDomainError

ArrayLike = Union[float, np.ndarray]


class RelativeRisks(NamedTuple):
    """Intermediate quantities of one forward-model evaluation."""
    pm25_scenario: ArrayLike
    baseline_rr: ArrayLike
    scenario_rr: ArrayLike


def _call_dose_response(dose_response: DoseResponseFunction, concentration: ArrayLike) -> np.ndarray:
    try:
        return np.asarray(dose_response(concentration), dtype=float)
    except EVPPIToolError:
        raise
    except (ValueError, ArithmeticError, TypeError) as e:
        raise ForwardModelDomainError(
            f"Dose-response function failed: {e}",
            cause=e,
        ) from e


def scenario_concentration(background_pm25: ArrayLike, car_fraction: ArrayLike,
                           travel_multiplier: float) -> ArrayLike:
    """PM2.5 concentration once car travel is scaled by ``travel_multiplier``.

    Written as x1 * (1 + x2 * (D - 1)), equal to x1 * (x2 * D + 1 - x2), so
    that D == 1 returns the background concentration exactly.
    """
    return background_pm25 * (1 + car_fraction * (travel_multiplier - 1))


def relative_risks(background_pm25: ArrayLike, car_fraction: ArrayLike,
                   dose_response_scale: ArrayLike, travel_multiplier: float,
                   dose_response: DoseResponseFunction) -> RelativeRisks:
    """Baseline and scenario relative risks for one or many draws."""
    x1 = np.asarray(background_pm25, dtype=float)
    x2 = np.asarray(car_fraction, dtype=float)
    x3 = np.asarray(dose_response_scale, dtype=float)

    for name, values in (("background_pm25", x1), ("car_fraction", x2),
                         ("dose_response_scale", x3)):
        if not np.all(np.isfinite(values)):
            raise ForwardModelDomainError(
                f"Non-finite value for model input '{name}'",
                context={'parameter': name},
            )

    pm25 = scenario_concentration(x1, x2, travel_multiplier)
    r0 = 1 + (x3 - 1) * _call_dose_response(dose_response, x1)
    r = 1 + (x3 - 1) * _call_dose_response(dose_response, pm25)

    if np.any(r0 == 0):
        raise ForwardModelDomainError(
            "Baseline relative risk is zero; outcome ratio is undefined",
            context={'travel_multiplier': travel_multiplier},
        )

    if pm25.ndim == 0:
        return RelativeRisks(float(pm25), float(r0), float(r))
    return RelativeRisks(pm25, r0, r)


def health_burden(background_pm25: ArrayLike, car_fraction: ArrayLike,
                  dose_response_scale: ArrayLike, travel_multiplier: float,
                  baseline_burden: float, dose_response: DoseResponseFunction) -> ArrayLike:
    """Scenario disease burden ``baseline_burden * R / R0``."""
    risks = relative_risks(background_pm25, car_fraction, dose_response_scale,
                           travel_multiplier, dose_response)
    return baseline_burden * (risks.scenario_rr / risks.baseline_rr)


class HealthImpactModel:
    """Forward model bound to a fixed set of scenario constants.

    Parameter draws are passed as a mapping from parameter name to value(s);
    ``parameter_roles`` says which parameter plays which input role.
    """

    def __init__(self,
                 constants: ScenarioConstants,
                 parameter_roles: Optional[Mapping[str, str]] = None) -> None:
        self.constants: ScenarioConstants = constants
        self.parameter_roles: Dict[str, str] = dict(parameter_roles or DEFAULT_PARAMETER_ROLES)

        unknown = set(self.parameter_roles) - set(DEFAULT_PARAMETER_ROLES)
        missing = set(DEFAULT_PARAMETER_ROLES) - set(self.parameter_roles)
        if unknown or missing:
            raise ConfigurationError(
                f"Parameter roles must be exactly {sorted(DEFAULT_PARAMETER_ROLES)}; "
                f"missing {sorted(missing)}, unknown {sorted(unknown)}",
                config_key="parameter_roles",
                config_value=self.parameter_roles,
            )

    @property
    def scenarios(self) -> List[Scenario]:
        return list(self.constants.scenarios)

    @property
    def required_parameters(self) -> List[str]:
        return [self.parameter_roles[role] for role in DEFAULT_PARAMETER_ROLES]

    def check_parameters(self, parameter_names: Sequence[str]) -> None:
        """Raise ConfigurationError if a parameter needed by the model is absent."""
        missing = [name for name in self.required_parameters if name not in parameter_names]
        if missing:
            raise ConfigurationError(
                f"Model requires parameters that were not supplied: {missing}",
                config_key="parameters",
                config_value=list(parameter_names),
            )

    def _inputs(self, draw: Mapping[str, ArrayLike]):
        try:
            return (draw[self.parameter_roles["background_pm25"]],
                    draw[self.parameter_roles["car_fraction"]],
                    draw[self.parameter_roles["dose_response_scale"]])
        except KeyError as e:
            raise ConfigurationError(
                f"Draw is missing model parameter {e.args[0]!r}",
                config_key="parameters",
                config_value=sorted(draw),
            ) from e

    def evaluate(self, draw: Mapping[str, ArrayLike], scenario: Scenario) -> ArrayLike:
        """Outcome of one scenario for a draw (scalar or vector of draws)."""
        x1, x2, x3 = self._inputs(draw)
        return health_burden(x1, x2, x3, scenario.travel_multiplier,
                             self.constants.baseline_burden, self.constants.dose_response)

    def evaluate_scenarios(self, draw: Mapping[str, ArrayLike]) -> np.ndarray:
        """Outcomes of every scenario for the same draw.

        Returns:
            Array of shape ``(n_draws, n_scenarios)``, or ``(n_scenarios,)``
            for a scalar draw
        """
        columns = [np.asarray(self.evaluate(draw, scenario), dtype=float)
                   for scenario in self.constants.scenarios]
        return np.stack(columns, axis=-1)

    def __call__(self, draw: Mapping[str, ArrayLike]) -> np.ndarray:
        return self.evaluate_scenarios(draw)
