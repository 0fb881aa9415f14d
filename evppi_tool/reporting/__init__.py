"""Result containers for the reporting layer."""

from .results import SimulationResults, EVPPIResult

__all__ = ['SimulationResults', 'EVPPIResult']
