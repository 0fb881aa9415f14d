"""EVPPI Tool for health-impact scenario models.

Monte Carlo simulation of a PM2.5 health-impact model and single-parameter
Expected Value of Perfect Partial Information (EVPPI) estimation by
nonparametric regression.
"""

__version__ = "1.0.0"
__author__ = "Health Impact Modeling Team"

# Core functionality
from .core.distributions import create_distribution
from .core.data_models import (
    Parameter, Scenario, ScenarioConstants, SimulationConfig, ModelConfig,
    default_model_config,
)
from .core.forward_model import HealthImpactModel
from .core.sampler import MonteCarloDriver
from .core.evppi import EVPPIEstimator, estimate_evppi
from .analysis import run_analysis

# Results
from .reporting.results import SimulationResults, EVPPIResult

# Exception handling
from .core.exceptions import (
    EVPPIToolError,
    InvalidParameterError,
    ForwardModelDomainError,
    DegenerateVarianceError,
    RegressionFailureError,
    ConfigurationError,
)

# Logging configuration
from .core.logging_config import setup_logging, get_logger

__all__ = [
    # Core functionality
    "create_distribution",
    "Parameter",
    "Scenario",
    "ScenarioConstants",
    "SimulationConfig",
    "ModelConfig",
    "default_model_config",
    "HealthImpactModel",
    "MonteCarloDriver",
    "EVPPIEstimator",
    "estimate_evppi",
    "run_analysis",
    # Results
    "SimulationResults",
    "EVPPIResult",
    # Exception handling
    "EVPPIToolError",
    "InvalidParameterError",
    "ForwardModelDomainError",
    "DegenerateVarianceError",
    "RegressionFailureError",
    "ConfigurationError",
    # Logging
    "setup_logging",
    "get_logger",
]
