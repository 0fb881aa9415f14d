"""Result containers handed to the reporting layer.

``SimulationResults`` holds the row-aligned sample and outcome matrices of a
Monte Carlo run; ``EVPPIResult`` holds the parameter-by-scenario table of
EVPPI percentages together with the cells that could not be estimated.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

SUMMARY_PERCENTILES = [2.5, 50, 97.5]


def _percentile_label(p: float) -> str:
    return f"P{p:g}"


@dataclass
class SimulationResults:
    """Sample and outcome matrices of one Monte Carlo run.

    Row ``i`` of ``sample_matrix`` and row ``i`` of ``outcome_matrix`` come
    from the same draw. Both arrays are read-only once constructed.
    """
    parameter_names: List[str]
    scenario_names: List[str]
    sample_matrix: np.ndarray  # Shape: (n_samples, n_parameters)
    outcome_matrix: np.ndarray  # Shape: (n_samples, n_scenarios)
    baseline_scenarios: List[str] = field(default_factory=list)
    random_seed: Optional[int] = None
    elapsed_seconds: float = 0.0

    def __post_init__(self):
        if self.sample_matrix.ndim != 2 or self.outcome_matrix.ndim != 2:
            raise ValueError("Sample and outcome matrices must be two-dimensional")
        if self.sample_matrix.shape[0] != self.outcome_matrix.shape[0]:
            raise ValueError(
                f"Row count mismatch: {self.sample_matrix.shape[0]} samples vs "
                f"{self.outcome_matrix.shape[0]} outcomes"
            )
        if self.sample_matrix.shape[1] != len(self.parameter_names):
            raise ValueError("Sample matrix columns do not match parameter names")
        if self.outcome_matrix.shape[1] != len(self.scenario_names):
            raise ValueError("Outcome matrix columns do not match scenario names")

        self.sample_matrix.flags.writeable = False
        self.outcome_matrix.flags.writeable = False

    @property
    def n_samples(self) -> int:
        return self.sample_matrix.shape[0]

    @property
    def estimable_scenarios(self) -> List[str]:
        """Scenario columns that take part in EVPPI estimation."""
        return [s for s in self.scenario_names if s not in self.baseline_scenarios]

    def parameter_values(self, name: str) -> np.ndarray:
        return self.sample_matrix[:, self.parameter_names.index(name)]

    def outcome_values(self, name: str) -> np.ndarray:
        return self.outcome_matrix[:, self.scenario_names.index(name)]

    def to_frames(self) -> Tuple[pd.DataFrame, pd.DataFrame]:
        """Sample and outcome matrices as labelled DataFrames sharing a draw index."""
        index = pd.RangeIndex(self.n_samples, name="draw")
        samples = pd.DataFrame(self.sample_matrix, columns=self.parameter_names, index=index)
        outcomes = pd.DataFrame(self.outcome_matrix, columns=self.scenario_names, index=index)
        return samples, outcomes

    def summary(self) -> Dict[str, pd.DataFrame]:
        """Descriptive statistics of every parameter and scenario outcome."""
        samples, outcomes = self.to_frames()

        def describe(frame: pd.DataFrame) -> pd.DataFrame:
            stats = pd.DataFrame({
                'mean': frame.mean(),
                'std': frame.std(ddof=1),
            })
            for p in SUMMARY_PERCENTILES:
                stats[_percentile_label(p)] = frame.quantile(p / 100)
            return stats

        return {'parameters': describe(samples), 'outcomes': describe(outcomes)}

    def metadata(self) -> Dict[str, Any]:
        return {
            'n_samples': self.n_samples,
            'parameters': list(self.parameter_names),
            'scenarios': list(self.scenario_names),
            'baseline_scenarios': list(self.baseline_scenarios),
            'random_seed': self.random_seed,
            'elapsed_seconds': self.elapsed_seconds,
        }


@dataclass
class EVPPIResult:
    """EVPPI percentages for every (parameter, scenario) cell.

    Cells whose regression failed hold NaN in ``values`` and are listed in
    ``failures``; scenarios with no outcome variance are listed in
    ``degenerate_scenarios`` and do not appear as columns.
    """
    values: pd.DataFrame  # index: parameters, columns: scenarios
    failures: Dict[Tuple[str, str], str] = field(default_factory=dict)
    degenerate_scenarios: Dict[str, str] = field(default_factory=dict)
    outcome_variance: Dict[str, float] = field(default_factory=dict)
    smoother: str = ""
    n_samples: int = 0

    @property
    def parameters(self) -> List[str]:
        return list(self.values.index)

    @property
    def scenarios(self) -> List[str]:
        return list(self.values.columns)

    @property
    def is_complete(self) -> bool:
        return not self.failures and not self.degenerate_scenarios

    def get(self, parameter: str, scenario: str) -> float:
        return float(self.values.loc[parameter, scenario])

    def to_frame(self) -> pd.DataFrame:
        return self.values.copy()

    def ranked(self, scenario: str) -> pd.Series:
        """Parameters ordered by decreasing EVPPI for one scenario; failed cells last."""
        if scenario not in self.values.columns:
            raise KeyError(f"No EVPPI estimates for scenario '{scenario}'")
        return self.values[scenario].sort_values(ascending=False, na_position="last")

    def to_dict(self) -> Dict[str, Any]:
        """Plain mapping with NaN cells reported as None."""
        table = {
            scenario: {
                parameter: (None if np.isnan(v) else float(v))
                for parameter, v in self.values[scenario].items()
            }
            for scenario in self.values.columns
        }
        return {
            'evppi': table,
            'failures': [
                {'parameter': p, 'scenario': s, 'error': message}
                for (p, s), message in self.failures.items()
            ],
            'degenerate_scenarios': dict(self.degenerate_scenarios),
            'outcome_variance': {k: float(v) for k, v in self.outcome_variance.items()},
            'smoother': self.smoother,
            'n_samples': self.n_samples,
        }

    def summary_table(self) -> str:
        """Text table of the EVPPI percentages."""
        lines = ["EVPPI (% of outcome variance)"]
        lines.append("=" * 30)
        if self.values.empty:
            lines.append("No estimable scenarios")
        else:
            lines.append(self.values.to_string(float_format=lambda v: f"{v:6.2f}", na_rep="failed"))
        for scenario, reason in self.degenerate_scenarios.items():
            lines.append(f"{scenario}: not estimated ({reason})")
        return "\n".join(lines)
