"""End-to-end EVPPI analysis.

Sampling runs to completion before estimation starts: the forward model is
evaluated over all Monte Carlo draws first, then every (parameter, scenario)
cell is estimated from the finished matrices.
"""

from typing import Any, Dict, Optional, Tuple, Union

from .core.data_models import ModelConfig, SimulationConfig
from .core.evppi import EVPPIEstimator
from .core.forward_model import HealthImpactModel
from .core.logging_config import log_performance
from .core.sampler import MonteCarloDriver
from .core.smoothers import Smoother, get_smoother
from .io.config_loader import build_model_config
from .reporting.results import EVPPIResult, SimulationResults


def run_monte_carlo(model_config: ModelConfig,
                    simulation: Optional[SimulationConfig] = None) -> SimulationResults:
    """Sample every parameter and evaluate every scenario of ``model_config``."""
    simulation = simulation or model_config.simulation
    model = HealthImpactModel(model_config.scenario_constants(), model_config.parameter_roles)
    driver = MonteCarloDriver.from_config(model, simulation)
    return driver.run(simulation.n_samples, model_config.parameters, model_config.scenarios)


@log_performance
def run_analysis(model_config: Union[ModelConfig, Dict[str, Any]],
                 simulation: Optional[SimulationConfig] = None,
                 smoother: Optional[Union[Smoother, str]] = None) -> Tuple[SimulationResults, EVPPIResult]:
    """Run the Monte Carlo simulation and estimate EVPPI for every scenario.

    Args:
        model_config: Model configuration, or a mapping validated into one
        simulation: Overrides ``model_config.simulation`` when given
        smoother: Smoother instance or name; defaults to the smoothing spline

    Returns:
        Tuple of (SimulationResults, EVPPIResult)
    """
    if isinstance(model_config, dict):
        model_config = build_model_config(model_config)
    simulation = simulation or model_config.simulation
    if isinstance(smoother, str):
        smoother = get_smoother(smoother)

    results = run_monte_carlo(model_config, simulation)
    evppi = EVPPIEstimator(smoother, n_workers=simulation.n_workers).estimate(results)
    return results, evppi
