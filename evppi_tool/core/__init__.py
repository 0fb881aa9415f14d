"""Sampling and EVPPI estimation engine."""

# Model inputs
from .distributions import (
    DistributionType, BaseDistribution, LognormalDistribution, BetaDistribution,
    UniformDistribution, NormalDistribution, TriangularDistribution,
    create_distribution, describe_distribution,
)
from .dose_response import LinearDoseResponse, LogLinearDoseResponse, create_dose_response
from .data_models import (
    Parameter, Scenario, ScenarioConstants, SimulationConfig, ModelConfig,
    DEFAULT_PARAMETER_ROLES, default_model_config,
)

# Simulation
from .forward_model import HealthImpactModel, health_burden, relative_risks, scenario_concentration
from .sampler import MonteCarloDriver, spawn_random_states

# Estimation
from .smoothers import Smoother, SmoothingSplineSmoother, PolynomialSmoother, get_smoother
from .evppi import EVPPIEstimator, estimate_evppi, outcome_variance

# Exception handling and logging
from .exceptions import (
    EVPPIToolError, ValidationError, InvalidParameterError, ComputationError,
    ForwardModelDomainError, DegenerateVarianceError, RegressionFailureError,
    ConfigurationError, ConfigFileError,
)
from .logging_config import setup_logging, get_logger

__all__ = [
    # Model inputs
    'DistributionType', 'BaseDistribution', 'LognormalDistribution', 'BetaDistribution',
    'UniformDistribution', 'NormalDistribution', 'TriangularDistribution',
    'create_distribution', 'describe_distribution',
    'LinearDoseResponse', 'LogLinearDoseResponse', 'create_dose_response',
    'Parameter', 'Scenario', 'ScenarioConstants', 'SimulationConfig', 'ModelConfig',
    'DEFAULT_PARAMETER_ROLES', 'default_model_config',

    # Simulation
    'HealthImpactModel', 'health_burden', 'relative_risks', 'scenario_concentration',
    'MonteCarloDriver', 'spawn_random_states',

    # Estimation
    'Smoother', 'SmoothingSplineSmoother', 'PolynomialSmoother', 'get_smoother',
    'EVPPIEstimator', 'estimate_evppi', 'outcome_variance',

    # Exception handling and logging
    'EVPPIToolError', 'ValidationError', 'InvalidParameterError', 'ComputationError',
    'ForwardModelDomainError', 'DegenerateVarianceError', 'RegressionFailureError',
    'ConfigurationError', 'ConfigFileError',
    'setup_logging', 'get_logger',
]
