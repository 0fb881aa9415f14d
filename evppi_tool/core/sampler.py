"""Monte Carlo driver for the health-impact model.

Draws i.i.d. parameter vectors, evaluates the forward model for every
scenario on the same draw, and fills a samples-by-parameters matrix and a
samples-by-scenarios outcome matrix.

Rows are split into fixed-size chunks. Each chunk draws from its own
``RandomState`` spawned from a single ``SeedSequence``, so a run is fully
determined by the seed and the chunk size, whatever the number of workers.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .data_models import Parameter, Scenario, SimulationConfig
from .exceptions import ConfigurationError, ForwardModelDomainError, InvalidParameterError
from .forward_model import HealthImpactModel
from .logging_config import get_logger
from .performance import PerformanceTimer
from ..reporting.results import SimulationResults

logger = get_logger(__name__)


def spawn_random_states(random_seed: Optional[int], n_streams: int) -> List[np.random.RandomState]:
    """Independent random streams derived from one seed.

    Args:
        random_seed: Root seed, or None for fresh OS entropy
        n_streams: Number of streams to create

    Returns:
        List of RandomState instances, one per stream
    """
    children = np.random.SeedSequence(random_seed).spawn(n_streams)
    return [np.random.RandomState(np.random.MT19937(child)) for child in children]


def chunk_bounds(n_samples: int, chunk_size: int) -> List[Tuple[int, int]]:
    """Half-open row ranges covering ``n_samples`` rows."""
    return [(start, min(start + chunk_size, n_samples))
            for start in range(0, n_samples, chunk_size)]


class MonteCarloDriver:
    """Runs the forward model over i.i.d. parameter draws."""

    def __init__(self,
                 model: HealthImpactModel,
                 random_seed: Optional[int] = None,
                 n_workers: int = 1,
                 chunk_size: int = 2000) -> None:
        """Initialize driver.

        Args:
            model: Forward model bound to the scenario constants
            random_seed: Seed for reproducible runs
            n_workers: Number of threads drawing chunks concurrently
            chunk_size: Rows drawn from one random stream
        """
        if n_workers < 1:
            raise InvalidParameterError("n_workers must be at least 1",
                                        parameter_name="n_workers", parameter_value=n_workers)
        if chunk_size < 1:
            raise InvalidParameterError("chunk_size must be at least 1",
                                        parameter_name="chunk_size", parameter_value=chunk_size)

        self.model = model
        self.random_seed = random_seed
        self.n_workers = n_workers
        self.chunk_size = chunk_size

    @classmethod
    def from_config(cls, model: HealthImpactModel, config: SimulationConfig) -> "MonteCarloDriver":
        return cls(model, random_seed=config.random_seed,
                   n_workers=config.n_workers, chunk_size=config.chunk_size)

    def _validate(self, n_samples: int, parameters: Sequence[Parameter],
                  scenarios: Sequence[Scenario]) -> None:
        if isinstance(n_samples, bool) or int(n_samples) != n_samples or n_samples < 1:
            raise InvalidParameterError(
                f"n_samples must be a positive integer, got {n_samples!r}",
                parameter_name="n_samples",
                parameter_value=n_samples,
            )
        if not parameters:
            raise ConfigurationError("At least one parameter is required", config_key="parameters")
        if not scenarios:
            raise ConfigurationError("At least one scenario is required", config_key="scenarios")

        for what, names in (("parameter", [p.name for p in parameters]),
                            ("scenario", [s.name for s in scenarios])):
            if len(set(names)) != len(names):
                raise ConfigurationError(f"Duplicate {what} names: {names}",
                                         config_key=what, config_value=names)

        self.model.check_parameters([p.name for p in parameters])

    def _fill_chunk(self,
                    bounds: Tuple[int, int],
                    random_state: np.random.RandomState,
                    parameters: Sequence[Parameter],
                    scenarios: Sequence[Scenario],
                    sample_matrix: np.ndarray,
                    outcome_matrix: np.ndarray) -> None:
        start, stop = bounds
        size = stop - start

        # One column per parameter, drawn in parameter order from this chunk's stream
        draw = {}
        for j, parameter in enumerate(parameters):
            values = np.asarray(parameter.sample(random_state, size), dtype=float)
            sample_matrix[start:stop, j] = values
            draw[parameter.name] = values

        for k, scenario in enumerate(scenarios):
            outcome = np.asarray(self.model.evaluate(draw, scenario), dtype=float)
            if not np.all(np.isfinite(outcome)):
                bad_row = start + int(np.argmin(np.isfinite(outcome)))
                raise ForwardModelDomainError(
                    f"Non-finite outcome for scenario '{scenario.name}' at row {bad_row}",
                    context={'scenario': scenario.name, 'row': bad_row},
                )
            outcome_matrix[start:stop, k] = outcome

    def run(self,
            n_samples: int,
            parameters: Sequence[Parameter],
            scenarios: Optional[Sequence[Scenario]] = None) -> SimulationResults:
        """Draw ``n_samples`` parameter vectors and evaluate every scenario.

        Args:
            n_samples: Number of Monte Carlo draws
            parameters: Uncertain parameters, one matrix column each
            scenarios: Scenarios to evaluate; defaults to the model's scenarios

        Returns:
            SimulationResults holding the row-aligned sample and outcome matrices

        Raises:
            InvalidParameterError: If ``n_samples`` is not a positive integer
            ConfigurationError: If parameters or scenarios are missing or duplicated
            ForwardModelDomainError: If the model is evaluated outside its domain
        """
        parameters = list(parameters)
        scenarios = list(scenarios) if scenarios is not None else self.model.scenarios
        self._validate(n_samples, parameters, scenarios)
        n_samples = int(n_samples)

        sample_matrix = np.empty((n_samples, len(parameters)), dtype=float)
        outcome_matrix = np.empty((n_samples, len(scenarios)), dtype=float)

        chunks = chunk_bounds(n_samples, self.chunk_size)
        random_states = spawn_random_states(self.random_seed, len(chunks))

        logger.info(
            f"Running {n_samples:,} Monte Carlo draws over {len(parameters)} parameters "
            f"and {len(scenarios)} scenarios ({len(chunks)} chunks, {self.n_workers} workers)",
            extra={'component': 'sampler', 'operation': 'run', 'n_samples': n_samples}
        )

        with PerformanceTimer("monte_carlo") as timer:
            if self.n_workers == 1 or len(chunks) == 1:
                for bounds, rs in zip(chunks, random_states):
                    self._fill_chunk(bounds, rs, parameters, scenarios,
                                     sample_matrix, outcome_matrix)
            else:
                with ThreadPoolExecutor(max_workers=min(self.n_workers, len(chunks))) as executor:
                    futures = [
                        executor.submit(self._fill_chunk, bounds, rs, parameters, scenarios,
                                        sample_matrix, outcome_matrix)
                        for bounds, rs in zip(chunks, random_states)
                    ]
                    # Surface the first failure; the partially filled matrices are discarded
                    for future in futures:
                        future.result()

        metrics = timer.metrics(iterations=n_samples)
        logger.info(
            f"Completed {n_samples:,} draws in {metrics.summary('draws')}",
            extra={'component': 'sampler', 'operation': 'run', 'n_samples': n_samples}
        )

        return SimulationResults(
            parameter_names=[p.name for p in parameters],
            scenario_names=[s.name for s in scenarios],
            baseline_scenarios=[s.name for s in scenarios if s.is_baseline],
            sample_matrix=sample_matrix,
            outcome_matrix=outcome_matrix,
            random_seed=self.random_seed,
            elapsed_seconds=timer.duration,
        )
