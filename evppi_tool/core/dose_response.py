"""Dose-response functions mapping PM2.5 concentration to a relative-risk contribution.

The forward model only needs a callable ``f(concentration) -> contribution``
with ``f(0) == 0`` that is monotone in the concentration. The classes here are
the stock shapes; any callable with that contract can be used instead.
"""

from typing import Any, Callable, Dict, Literal, Union

import numpy as np
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from .exceptions import ConfigurationError, ForwardModelDomainError

DoseResponseFunction = Callable[[Union[float, np.ndarray]], Union[float, np.ndarray]]


def _check_concentration(concentration) -> np.ndarray:
    values = np.asarray(concentration, dtype=float)
    if not np.all(np.isfinite(values)):
        raise ForwardModelDomainError(
            "Dose-response evaluated at a non-finite concentration",
            context={'concentration': concentration if values.ndim == 0 else None},
        )
    if np.any(values < 0):
        raise ForwardModelDomainError(
            f"Dose-response evaluated at a negative concentration (min {values.min():.6g})",
            context={'min_concentration': float(values.min())},
        )
    return values


def _as_output(result: np.ndarray):
    return float(result) if result.ndim == 0 else result


class LinearDoseResponse(BaseModel):
    """``f(c) = slope * c``."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: Literal["linear"] = "linear"
    slope: float = Field(..., ge=0, description="Contribution per unit concentration")

    def __call__(self, concentration):
        values = _check_concentration(concentration)
        return _as_output(self.slope * values)


class LogLinearDoseResponse(BaseModel):
    """``f(c) = coefficient * ln(1 + c)``, flattening at high exposure."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: Literal["log_linear"] = "log_linear"
    coefficient: float = Field(..., ge=0)

    def __call__(self, concentration):
        values = _check_concentration(concentration)
        return _as_output(self.coefficient * np.log1p(values))


_DOSE_RESPONSE_TYPES = {
    "linear": LinearDoseResponse,
    "log_linear": LogLinearDoseResponse,
}


def create_dose_response(config: Union[Dict[str, Any], DoseResponseFunction]) -> DoseResponseFunction:
    """Build a dose-response function from a configuration mapping.

    Args:
        config: Mapping such as ``{"type": "linear", "slope": 0.01}``, or a
            callable which is returned unchanged

    Returns:
        Dose-response callable

    Raises:
        ConfigurationError: If the type is unknown or its parameters are invalid
    """
    if callable(config) and not isinstance(config, dict):
        return config
    if not isinstance(config, dict):
        raise ConfigurationError(
            "Dose-response configuration must be a mapping or a callable",
            config_key="dose_response",
            config_value=config,
        )

    dr_type = config.get("type", "linear")
    model_cls = _DOSE_RESPONSE_TYPES.get(dr_type)
    if model_cls is None:
        raise ConfigurationError(
            f"Unknown dose-response type: {dr_type!r}. "
            f"Expected one of {sorted(_DOSE_RESPONSE_TYPES)}",
            config_key="dose_response.type",
            config_value=dr_type,
        )

    try:
        return model_cls(**{**config, "type": dr_type})
    except PydanticValidationError as e:
        raise ConfigurationError(
            f"Invalid {dr_type} dose-response parameters: {e.errors()[0]['msg']}",
            config_key="dose_response",
            config_value=config,
            cause=e,
        ) from e


def describe_dose_response(function: DoseResponseFunction) -> Dict[str, Any]:
    """Configuration mapping for a stock dose-response, or its name for custom callables."""
    if isinstance(function, BaseModel):
        return function.model_dump()
    return {"type": "custom", "name": getattr(function, "__name__", repr(function))}
