"""Configuration loading and result export."""

from .config_loader import load_model_config, save_model_config, build_model_config, read_config_file
from .exporters import export_results, export_matrices_csv, export_evppi_csv, export_evppi_json

__all__ = [
    'load_model_config', 'save_model_config', 'build_model_config', 'read_config_file',
    'export_results', 'export_matrices_csv', 'export_evppi_csv', 'export_evppi_json',
]
