"""Probability distributions for uncertain model parameters.

Each family is a frozen pydantic model tagged by its ``type`` field, so a
parameter's distribution can be written as a plain mapping in a configuration
file and validated into a concrete variant. Sampling always goes through an
explicitly passed ``numpy.random.RandomState``; densities come from
``scipy.stats`` and are only used for diagnostics.
"""

import math
from enum import Enum
from typing import Annotated, Any, Dict, Literal, Optional, Tuple, Union

import numpy as np
from scipy import stats
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator
from pydantic import ValidationError as PydanticValidationError

from .exceptions import InvalidParameterError


class DistributionType(str, Enum):
    """Supported distribution types."""

    LOGNORMAL = "lognormal"
    BETA = "beta"
    UNIFORM = "uniform"
    NORMAL = "normal"
    TRIANGULAR = "triangular"


def _require_finite(dist_type: str, **values: float) -> None:
    for name, value in values.items():
        if not math.isfinite(value):
            raise InvalidParameterError(
                f"{dist_type} parameter '{name}' must be finite, got {value}",
                distribution_type=dist_type,
                parameter_name=name,
                parameter_value=value,
            )


class BaseDistribution(BaseModel):
    """Common behaviour of all univariate distributions."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: str

    def frozen(self):
        """Return the equivalent frozen ``scipy.stats`` distribution."""
        raise NotImplementedError

    def sample(self, random_state: np.random.RandomState,
               size: Optional[int] = None) -> Union[float, np.ndarray]:
        """Draw from the distribution.

        Args:
            random_state: Random number generator owned by the caller
            size: Number of draws, or None for a single scalar draw

        Returns:
            A float when ``size`` is None, otherwise an array of draws
        """
        raise NotImplementedError

    def density(self, x: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
        """Probability density at ``x``."""
        result = self.frozen().pdf(x)
        return float(result) if np.ndim(result) == 0 else result

    def mean(self) -> float:
        return float(self.frozen().mean())

    def variance(self) -> float:
        return float(self.frozen().var())

    def support(self) -> Tuple[float, float]:
        lower, upper = self.frozen().support()
        return float(lower), float(upper)


class LognormalDistribution(BaseDistribution):
    """Log-normal distribution parameterized on the natural scale.

    ``mean`` and ``variance`` describe the distribution of X itself, not of
    ln(X). They are converted to the log-scale location and scale before
    sampling.
    """

    type: Literal["lognormal"] = "lognormal"
    mean_: float = Field(..., alias="mean", description="Mean of X (natural scale)")
    variance_: float = Field(..., alias="variance", description="Variance of X (natural scale)")

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    @model_validator(mode="after")
    def _check_parameters(self):
        _require_finite("lognormal", mean=self.mean_, variance=self.variance_)
        if self.mean_ <= 0:
            raise InvalidParameterError(
                f"Lognormal mean must be positive, got {self.mean_}",
                distribution_type="lognormal",
                parameter_name="mean",
                parameter_value=self.mean_,
            )
        if self.variance_ < 0:
            raise InvalidParameterError(
                f"Lognormal variance must be non-negative, got {self.variance_}",
                distribution_type="lognormal",
                parameter_name="variance",
                parameter_value=self.variance_,
            )
        return self

    @property
    def log_parameters(self) -> Tuple[float, float]:
        """Location and scale (mu_log, sigma_log) of ln(X)."""
        m, v = self.mean_, self.variance_
        mu_log = math.log(m ** 2 / math.sqrt(v + m ** 2))
        sigma_log = math.sqrt(math.log(1 + v / m ** 2))
        return mu_log, sigma_log

    def frozen(self):
        mu_log, sigma_log = self.log_parameters
        return stats.lognorm(s=sigma_log, scale=math.exp(mu_log))

    def sample(self, random_state, size=None):
        mu_log, sigma_log = self.log_parameters
        if sigma_log == 0.0:
            # Point mass at the mean
            return self.mean_ if size is None else np.full(size, self.mean_)
        return random_state.lognormal(mu_log, sigma_log, size)

    def density(self, x):
        if self.variance_ == 0.0:
            result = np.where(np.asarray(x) == self.mean_, np.inf, 0.0)
            return float(result) if np.ndim(result) == 0 else result
        return super().density(x)

    def mean(self) -> float:
        return self.mean_

    def variance(self) -> float:
        return self.variance_

    def support(self) -> Tuple[float, float]:
        return 0.0, math.inf


class BetaDistribution(BaseDistribution):
    """Beta distribution on (0, 1)."""

    type: Literal["beta"] = "beta"
    alpha: float = Field(..., description="First shape parameter")
    beta: float = Field(..., description="Second shape parameter")

    @model_validator(mode="after")
    def _check_parameters(self):
        _require_finite("beta", alpha=self.alpha, beta=self.beta)
        for name in ("alpha", "beta"):
            value = getattr(self, name)
            if value <= 0:
                raise InvalidParameterError(
                    f"Beta {name} must be positive, got {value}",
                    distribution_type="beta",
                    parameter_name=name,
                    parameter_value=value,
                )
        return self

    def frozen(self):
        return stats.beta(self.alpha, self.beta)

    def sample(self, random_state, size=None):
        return random_state.beta(self.alpha, self.beta, size)


class UniformDistribution(BaseDistribution):
    """Uniform distribution on [low, high)."""

    type: Literal["uniform"] = "uniform"
    low: float
    high: float

    @model_validator(mode="after")
    def _check_parameters(self):
        _require_finite("uniform", low=self.low, high=self.high)
        if self.high <= self.low:
            raise InvalidParameterError(
                f"Uniform high {self.high} must be greater than low {self.low}",
                distribution_type="uniform",
                parameter_name="high",
                parameter_value=self.high,
            )
        return self

    def frozen(self):
        return stats.uniform(loc=self.low, scale=self.high - self.low)

    def sample(self, random_state, size=None):
        return random_state.uniform(self.low, self.high, size)


class NormalDistribution(BaseDistribution):
    """Normal distribution."""

    type: Literal["normal"] = "normal"
    mean_: float = Field(..., alias="mean")
    stdev: float

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    @model_validator(mode="after")
    def _check_parameters(self):
        _require_finite("normal", mean=self.mean_, stdev=self.stdev)
        if self.stdev <= 0:
            raise InvalidParameterError(
                f"Normal standard deviation must be positive, got {self.stdev}",
                distribution_type="normal",
                parameter_name="stdev",
                parameter_value=self.stdev,
            )
        return self

    def frozen(self):
        return stats.norm(loc=self.mean_, scale=self.stdev)

    def sample(self, random_state, size=None):
        return random_state.normal(self.mean_, self.stdev, size)

    def mean(self) -> float:
        return self.mean_

    def variance(self) -> float:
        return self.stdev ** 2


class TriangularDistribution(BaseDistribution):
    """Triangular distribution."""

    type: Literal["triangular"] = "triangular"
    low: float
    mode: float
    high: float

    @model_validator(mode="after")
    def _check_parameters(self):
        _require_finite("triangular", low=self.low, mode=self.mode, high=self.high)
        if self.high <= self.low:
            raise InvalidParameterError(
                f"Triangular high {self.high} must be greater than low {self.low}",
                distribution_type="triangular",
                parameter_name="high",
                parameter_value=self.high,
            )
        if not (self.low <= self.mode <= self.high):
            raise InvalidParameterError(
                f"Mode {self.mode} must be between low {self.low} and high {self.high}",
                distribution_type="triangular",
                parameter_name="mode",
                parameter_value=self.mode,
            )
        return self

    def frozen(self):
        # Scipy triangular uses (high - low) scale and (mode - low) / (high - low) shape
        c = (self.mode - self.low) / (self.high - self.low)
        return stats.triang(c, loc=self.low, scale=self.high - self.low)

    def sample(self, random_state, size=None):
        return random_state.triangular(self.low, self.mode, self.high, size)


Distribution = Annotated[
    Union[
        LognormalDistribution,
        BetaDistribution,
        UniformDistribution,
        NormalDistribution,
        TriangularDistribution,
    ],
    Field(discriminator="type"),
]

_distribution_adapter = TypeAdapter(Distribution)


def create_distribution(config: Union[Dict[str, Any], BaseDistribution]) -> BaseDistribution:
    """Build a distribution variant from a configuration mapping.

    Args:
        config: Mapping with a ``type`` key and the family's parameters, or
            an already constructed distribution

    Returns:
        Concrete distribution instance

    Raises:
        InvalidParameterError: If the type is unknown or parameters are malformed
    """
    if isinstance(config, BaseDistribution):
        return config
    if not isinstance(config, dict):
        raise InvalidParameterError(
            f"Distribution configuration must be a mapping, got {type(config).__name__}",
            parameter_value=config,
        )

    dist_type = str(config.get("type", "")).lower()
    if dist_type not in {t.value for t in DistributionType}:
        raise InvalidParameterError(
            f"Unknown distribution type: {config.get('type')!r}",
            distribution_type=dist_type or None,
            parameter_name="type",
            parameter_value=config.get("type"),
        )

    try:
        return _distribution_adapter.validate_python({**config, "type": dist_type})
    except PydanticValidationError as e:
        raise InvalidParameterError(
            f"Invalid {dist_type} distribution parameters: {e.errors()[0]['msg']}",
            distribution_type=dist_type,
            parameter_value=config,
            cause=e,
        ) from e


def describe_distribution(distribution: BaseDistribution) -> Dict[str, Any]:
    """Plain mapping of a distribution's configuration and moments."""
    description = distribution.model_dump(by_alias=True)
    description["expected_value"] = distribution.mean()
    description["expected_variance"] = distribution.variance()
    return description
