"""Export sample matrices and EVPPI tables for the reporting layer."""

import json
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import numpy as np

from ..core.logging_config import get_logger
from ..reporting.results import EVPPIResult, SimulationResults

logger = get_logger(__name__)

SUPPORTED_FORMATS = ("csv", "json")


class JSONEncoder(json.JSONEncoder):
    """JSON encoder for numpy arrays and scalars."""

    def default(self, obj):
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        elif isinstance(obj, np.integer):
            return int(obj)
        elif isinstance(obj, np.floating):
            return None if np.isnan(obj) else float(obj)
        elif isinstance(obj, (datetime, date)):
            return obj.isoformat()
        return super().default(obj)


def export_matrices_csv(results: SimulationResults, output_dir: Union[str, Path]) -> List[Path]:
    """Write ``samples.csv`` and ``outcomes.csv`` sharing a ``draw`` index column."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    samples, outcomes = results.to_frames()
    samples_path = output_dir / "samples.csv"
    outcomes_path = output_dir / "outcomes.csv"
    samples.to_csv(samples_path)
    outcomes.to_csv(outcomes_path)
    return [samples_path, outcomes_path]


def export_evppi_csv(evppi: EVPPIResult, file_path: Union[str, Path]) -> Path:
    """Write the EVPPI table; failed cells are left empty."""
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    evppi.to_frame().to_csv(file_path, na_rep="")
    return file_path


def export_evppi_json(evppi: EVPPIResult,
                      file_path: Union[str, Path],
                      results: Optional[SimulationResults] = None,
                      extra_metadata: Optional[Dict[str, Any]] = None) -> Path:
    """Write the EVPPI table, failures and run metadata as JSON."""
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    metadata: Dict[str, Any] = {"export_timestamp": datetime.now().isoformat()}
    if results is not None:
        metadata.update(results.metadata())
    if extra_metadata:
        metadata.update(extra_metadata)

    payload = {"metadata": metadata, **evppi.to_dict()}
    with open(file_path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, cls=JSONEncoder)
    return file_path


def export_results(results: SimulationResults,
                   evppi: Optional[EVPPIResult],
                   output_dir: Union[str, Path],
                   formats: Iterable[str] = SUPPORTED_FORMATS,
                   extra_metadata: Optional[Dict[str, Any]] = None) -> List[Path]:
    """Export matrices and EVPPI results in the requested formats.

    Args:
        results: Monte Carlo sample and outcome matrices
        evppi: EVPPI table, or None to export the matrices only
        output_dir: Target directory, created if needed
        formats: Any of "csv" and "json"
        extra_metadata: Additional fields for the JSON metadata block

    Returns:
        Paths of the files written
    """
    formats = [f.strip().lower() for f in formats]
    unknown = sorted(set(formats) - set(SUPPORTED_FORMATS))
    if unknown:
        raise ValueError(f"Unsupported export format(s): {unknown}")

    output_dir = Path(output_dir)
    written: List[Path] = []

    if "csv" in formats:
        written.extend(export_matrices_csv(results, output_dir))
        if evppi is not None:
            written.append(export_evppi_csv(evppi, output_dir / "evppi.csv"))

    if "json" in formats and evppi is not None:
        written.append(export_evppi_json(evppi, output_dir / "evppi.json", results, extra_metadata))

    logger.info(f"Exported {len(written)} file(s) to {output_dir}",
                extra={'component': 'io', 'operation': 'export'})
    return written
