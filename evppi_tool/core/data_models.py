"""Pydantic data models for the health-impact EVPPI analysis.

Covers the uncertain parameters, the scenarios and their fixed constants,
and the Monte Carlo run configuration.
"""

from collections import Counter
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator

from .distributions import BaseDistribution, create_distribution
from .dose_response import DoseResponseFunction, create_dose_response, describe_dose_response
from .exceptions import ConfigurationError

# Parameter names of the three model inputs, keyed by their role in the model
DEFAULT_PARAMETER_ROLES: Dict[str, str] = {
    "background_pm25": "background_pm25",
    "car_fraction": "car_fraction",
    "dose_response_scale": "dose_response_scale",
}


class Parameter(BaseModel):
    """An uncertain model input with its own distribution."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str = Field(..., min_length=1, description="Parameter identifier")
    distribution: BaseDistribution = Field(..., description="Sampling distribution")
    description: Optional[str] = Field(None, description="Human-readable description")
    units: Optional[str] = Field(None, description="Units of measure")

    @field_validator("distribution", mode="before")
    @classmethod
    def build_distribution(cls, v):
        return create_distribution(v)

    @field_serializer("distribution")
    def serialize_distribution(self, distribution: BaseDistribution):
        return distribution.model_dump(by_alias=True)

    def sample(self, random_state, size: Optional[int] = None):
        return self.distribution.sample(random_state, size)


class Scenario(BaseModel):
    """Alternative travel condition applied to the car-attributable exposure."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    travel_multiplier: float = Field(..., ge=0, description="Multiplier D on car travel")
    is_baseline: bool = Field(False, description="Excluded from EVPPI estimation")
    description: Optional[str] = None


def _check_unique(names: List[str], what: str) -> None:
    duplicates = sorted(name for name, count in Counter(names).items() if count > 1)
    if duplicates:
        raise ConfigurationError(
            f"Duplicate {what} names: {duplicates}",
            config_key=what,
            config_value=duplicates,
        )


class ScenarioConstants(BaseModel):
    """Fixed, externally supplied values shared by every draw of a run."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    baseline_burden: float = Field(..., gt=0, description="Baseline disease burden")
    scenarios: List[Scenario] = Field(..., min_length=1)
    dose_response: Any = Field(..., description="Dose-response function f(pm25)")

    @field_validator("dose_response", mode="before")
    @classmethod
    def build_dose_response(cls, v):
        return create_dose_response(v)

    @field_validator("scenarios")
    @classmethod
    def validate_unique_scenarios(cls, v):
        _check_unique([s.name for s in v], "scenario")
        return v

    @field_serializer("dose_response")
    def serialize_dose_response(self, function: DoseResponseFunction):
        return describe_dose_response(function)

    @property
    def scenario_names(self) -> List[str]:
        return [s.name for s in self.scenarios]


class SimulationConfig(BaseModel):
    """Monte Carlo run configuration."""

    model_config = ConfigDict(frozen=True)

    n_samples: int = Field(10000, ge=1, le=10_000_000)
    random_seed: Optional[int] = Field(20240101, ge=0)
    n_workers: int = Field(1, ge=1, description="Threads used for sampling and estimation")
    chunk_size: int = Field(2000, ge=1, description="Rows drawn from one random stream")


class ModelConfig(BaseModel):
    """Complete description of one analysis: constants, parameters and run settings."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    baseline_burden: float = Field(..., gt=0)
    dose_response: Any = Field(...)
    parameters: List[Parameter] = Field(..., min_length=1)
    scenarios: List[Scenario] = Field(..., min_length=1)
    parameter_roles: Dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_PARAMETER_ROLES))
    simulation: SimulationConfig = Field(default_factory=SimulationConfig)

    @field_validator("dose_response", mode="before")
    @classmethod
    def build_dose_response(cls, v):
        return create_dose_response(v)

    @field_validator("parameters", mode="before")
    @classmethod
    def parameters_from_mapping(cls, v):
        # Accept {name: distribution} as well as a list of parameter records
        if isinstance(v, dict):
            records = []
            for name, spec in v.items():
                if isinstance(spec, dict) and "distribution" in spec:
                    records.append({"name": name, **spec})
                else:
                    records.append({"name": name, "distribution": spec})
            return records
        return v

    @model_validator(mode="after")
    def validate_names(self):
        _check_unique([p.name for p in self.parameters], "parameter")
        _check_unique([s.name for s in self.scenarios], "scenario")
        missing = sorted(set(self.parameter_roles.values()) - {p.name for p in self.parameters})
        if missing:
            raise ConfigurationError(
                f"Parameters required by the model are not defined: {missing}",
                config_key="parameter_roles",
                config_value=self.parameter_roles,
            )
        return self

    @field_serializer("dose_response")
    def serialize_dose_response(self, function: DoseResponseFunction):
        return describe_dose_response(function)

    def scenario_constants(self) -> ScenarioConstants:
        return ScenarioConstants(
            baseline_burden=self.baseline_burden,
            scenarios=self.scenarios,
            dose_response=self.dose_response,
        )


def default_model_config() -> ModelConfig:
    """Stock three-parameter PM2.5 model with a decrease and an increase scenario."""
    return ModelConfig(
        baseline_burden=18530,
        dose_response={"type": "linear", "slope": 0.01},
        parameters=[
            Parameter(
                name="background_pm25",
                distribution={"type": "lognormal", "mean": 10.0, "variance": 4.0},
                description="Background PM2.5 concentration",
                units="ug/m3",
            ),
            Parameter(
                name="car_fraction",
                distribution={"type": "beta", "alpha": 3.0, "beta": 7.0},
                description="Fraction of PM2.5 attributable to car travel",
            ),
            Parameter(
                name="dose_response_scale",
                distribution={"type": "lognormal", "mean": 1.2, "variance": 0.01},
                description="Relative risk scaling of the dose-response curve",
            ),
        ],
        scenarios=[
            Scenario(name="baseline", travel_multiplier=1.0, is_baseline=True),
            Scenario(name="travel_decrease", travel_multiplier=0.5,
                     description="Car travel halved"),
            Scenario(name="travel_increase", travel_multiplier=1.5,
                     description="Car travel up by half"),
        ],
    )
