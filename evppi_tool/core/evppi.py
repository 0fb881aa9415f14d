"""Single-parameter EVPPI by nonparametric regression.

For a scenario outcome y and a parameter x, E[Var(y | x)] is approximated by
the mean squared residual of a smooth regression of y on x. The EVPPI of x is
the share of Var(y) that disappears once x is known:

    EVPPI = 100 * (Var(y) - mean((y - g(x))^2)) / Var(y)

Every (parameter, scenario) cell is independent. A cell whose regression
fails is reported as missing without affecting the others; a scenario whose
outcome has no variance cannot be decomposed at all.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .exceptions import ConfigurationError, DegenerateVarianceError, RegressionFailureError
from .logging_config import get_logger
from .performance import PerformanceTimer, fast_mean_squared_residual, fast_sample_variance
from .smoothers import Smoother, SmoothingSplineSmoother
from ..reporting.results import EVPPIResult, SimulationResults

logger = get_logger(__name__)


def outcome_variance(y: np.ndarray, scenario: str = "") -> float:
    """Sample variance of an outcome column.

    Raises:
        DegenerateVarianceError: If the column has fewer than two values or
            all values are identical
    """
    y = np.asarray(y, dtype=float)
    if y.size < 2:
        raise DegenerateVarianceError(
            f"Scenario '{scenario}' has {y.size} sample(s); at least two are needed "
            f"to estimate outcome variance",
            scenarios=[scenario],
        )
    variance = fast_sample_variance(y)
    if np.all(y == y[0]) or variance <= 0:
        raise DegenerateVarianceError(
            f"Scenario '{scenario}' outcome has zero variance",
            scenarios=[scenario],
        )
    return variance


class EVPPIEstimator:
    """Estimates single-parameter EVPPI for every parameter and scenario."""

    def __init__(self, smoother: Optional[Smoother] = None, n_workers: int = 1) -> None:
        """Initialize estimator.

        Args:
            smoother: Regression strategy; defaults to a GCV smoothing spline
            n_workers: Number of threads estimating cells concurrently
        """
        if n_workers < 1:
            raise ValueError(f"n_workers must be at least 1, got {n_workers}")
        self.smoother: Smoother = smoother or SmoothingSplineSmoother()
        self.n_workers = n_workers

    def estimate_cell(self,
                      x: np.ndarray,
                      y: np.ndarray,
                      var_y: Optional[float] = None,
                      parameter: str = "",
                      scenario: str = "") -> float:
        """EVPPI percentage of one parameter for one scenario.

        Args:
            x: Parameter draws
            y: Outcome values aligned with ``x``
            var_y: Precomputed sample variance of ``y``
            parameter: Parameter name, for error reporting
            scenario: Scenario name, for error reporting

        Returns:
            Percentage of Var(y) explained by ``x``; not clipped to [0, 100]

        Raises:
            DegenerateVarianceError: If ``y`` has no variance
            RegressionFailureError: If the smoother cannot be fitted
        """
        if var_y is None:
            var_y = outcome_variance(y, scenario)

        try:
            fitted = np.asarray(self.smoother.fit(x, y), dtype=float)
        except (ValueError, ArithmeticError, np.linalg.LinAlgError) as e:
            raise RegressionFailureError(
                f"{self.smoother.name} regression of '{scenario}' on '{parameter}' failed: {e}",
                parameter=parameter,
                scenario=scenario,
                cause=e,
            ) from e

        if fitted.shape != np.shape(y) or not np.all(np.isfinite(fitted)):
            raise RegressionFailureError(
                f"{self.smoother.name} regression of '{scenario}' on '{parameter}' "
                f"returned invalid fitted values",
                parameter=parameter,
                scenario=scenario,
            )

        residual_var = fast_mean_squared_residual(y, fitted)
        return 100.0 * (var_y - residual_var) / var_y

    def _estimate_task(self, x, y, var_y, parameter, scenario) -> Tuple[str, str, float, Optional[str]]:
        try:
            value = self.estimate_cell(x, y, var_y, parameter, scenario)
        except RegressionFailureError as e:
            logger.warning(
                f"EVPPI cell ({parameter}, {scenario}) not estimated: {e.message}",
                extra={'component': 'evppi', 'parameter': parameter, 'scenario': scenario}
            )
            return parameter, scenario, np.nan, e.message
        return parameter, scenario, value, None

    def estimate(self,
                 results: SimulationResults,
                 scenarios: Optional[Sequence[str]] = None,
                 parameters: Optional[Sequence[str]] = None) -> EVPPIResult:
        """EVPPI table for a completed Monte Carlo run.

        Args:
            results: Sample and outcome matrices
            scenarios: Scenario columns to analyse; defaults to every
                non-baseline scenario
            parameters: Parameter columns to analyse; defaults to all

        Returns:
            EVPPIResult with failed cells as NaN and listed in ``failures``

        Raises:
            ConfigurationError: If a requested column does not exist or no
                scenario is left to analyse
            DegenerateVarianceError: If every requested scenario has zero
                outcome variance
        """
        scenarios = list(scenarios) if scenarios is not None else results.estimable_scenarios
        parameters = list(parameters) if parameters is not None else list(results.parameter_names)

        unknown = ([s for s in scenarios if s not in results.scenario_names]
                   + [p for p in parameters if p not in results.parameter_names])
        if unknown:
            raise ConfigurationError(f"Unknown scenario or parameter names: {unknown}",
                                     config_key="evppi", config_value=unknown)
        if not scenarios:
            raise ConfigurationError("No non-baseline scenario to estimate EVPPI for",
                                     config_key="scenarios", config_value=results.scenario_names)

        variances: Dict[str, float] = {}
        degenerate: Dict[str, str] = {}
        for scenario in scenarios:
            try:
                variances[scenario] = outcome_variance(results.outcome_values(scenario), scenario)
            except DegenerateVarianceError as e:
                degenerate[scenario] = e.message
                logger.warning(e.message, extra={'component': 'evppi', 'scenario': scenario})
            else:
                logger.debug(f"Scenario '{scenario}' outcome variance {variances[scenario]:.6g}",
                             extra={'component': 'evppi', 'scenario': scenario})

        if len(degenerate) == len(scenarios):
            raise DegenerateVarianceError(
                f"No outcome variance to decompose in scenario(s) {list(degenerate)}",
                scenarios=list(degenerate),
            )

        estimable = [s for s in scenarios if s in variances]
        tasks = [
            (results.parameter_values(p), results.outcome_values(s), variances[s], p, s)
            for s in estimable for p in parameters
        ]

        with PerformanceTimer("evppi") as timer:
            if self.n_workers == 1 or len(tasks) == 1:
                outputs = [self._estimate_task(*task) for task in tasks]
            else:
                with ThreadPoolExecutor(max_workers=min(self.n_workers, len(tasks))) as executor:
                    outputs = list(executor.map(lambda task: self._estimate_task(*task), tasks))

        values = pd.DataFrame(np.nan, index=pd.Index(parameters, name="parameter"),
                              columns=pd.Index(estimable, name="scenario"), dtype=float)
        failures: Dict[Tuple[str, str], str] = {}
        for parameter, scenario, value, error in outputs:
            values.loc[parameter, scenario] = value
            if error is not None:
                failures[(parameter, scenario)] = error

        metrics = timer.metrics(iterations=len(tasks))
        logger.info(
            f"Estimated {len(tasks) - len(failures)} of {len(tasks)} EVPPI cells "
            f"with {self.smoother.name} smoother in {metrics.summary('cells')}",
            extra={'component': 'evppi', 'operation': 'estimate', 'n_samples': results.n_samples}
        )

        return EVPPIResult(
            values=values,
            failures=failures,
            degenerate_scenarios=degenerate,
            outcome_variance=variances,
            smoother=self.smoother.name,
            n_samples=results.n_samples,
        )

    def estimate_scenario(self, results: SimulationResults, scenario: str) -> pd.Series:
        """EVPPI of every parameter for one scenario.

        Raises:
            DegenerateVarianceError: If the scenario outcome has zero variance
        """
        return self.estimate(results, [scenario]).values[scenario]


def estimate_evppi(results: SimulationResults,
                   smoother: Optional[Smoother] = None,
                   scenarios: Optional[List[str]] = None,
                   n_workers: int = 1) -> EVPPIResult:
    """Convenience wrapper around ``EVPPIEstimator.estimate``."""
    return EVPPIEstimator(smoother, n_workers=n_workers).estimate(results, scenarios)
