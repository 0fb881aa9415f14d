"""Load and save model configurations as JSON or YAML.

The files mirror ``ModelConfig``: ``baseline_burden``, ``dose_response``,
``parameters`` (name -> distribution), ``scenarios`` and ``simulation``.
"""

import json
from pathlib import Path
from typing import Any, Dict, Union

import yaml
from pydantic import ValidationError as PydanticValidationError

from ..core.data_models import ModelConfig
from ..core.exceptions import ConfigFileError, ConfigurationError

SUPPORTED_EXTENSIONS = {'.json', '.yaml', '.yml'}


def _format_pydantic_errors(error: PydanticValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get('loc', ()))
        parts.append(f"{location}: {item.get('msg')}" if location else item.get('msg', ''))
    return "; ".join(parts)


def read_config_file(file_path: Union[str, Path]) -> Dict[str, Any]:
    """Read a JSON or YAML configuration file into a plain mapping.

    Raises:
        ConfigFileError: If the file is missing, has an unsupported extension
            or cannot be parsed
    """
    path = Path(file_path)
    suffix = path.suffix.lower()

    if suffix not in SUPPORTED_EXTENSIONS:
        raise ConfigFileError(f"Unsupported config file format: {path.suffix}",
                              file_path=str(path), operation="format_detection")
    if not path.exists():
        raise ConfigFileError(f"Config file not found: {path}", file_path=str(path))

    try:
        with open(path, "r", encoding="utf-8") as f:
            if suffix == '.json':
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigFileError(f"Could not parse {path}: {e}", file_path=str(path),
                              operation="parse", cause=e) from e

    if not isinstance(data, dict):
        raise ConfigFileError(f"Config file {path} must contain a mapping at the top level",
                              file_path=str(path), operation="parse")
    return data


def build_model_config(data: Dict[str, Any]) -> ModelConfig:
    """Validate a configuration mapping into a ModelConfig.

    Raises:
        InvalidParameterError: If a distribution is malformed
        ConfigurationError: If any other field is missing or invalid
    """
    try:
        return ModelConfig(**data)
    except PydanticValidationError as e:
        raise ConfigurationError(
            f"Invalid model configuration: {_format_pydantic_errors(e)}",
            config_value=None,
            cause=e,
        ) from e


def load_model_config(file_path: Union[str, Path]) -> ModelConfig:
    """Read and validate a model configuration file."""
    return build_model_config(read_config_file(file_path))


def save_model_config(config: ModelConfig, file_path: Union[str, Path]) -> Path:
    """Write a model configuration as JSON or YAML, chosen by file extension."""
    path = Path(file_path)
    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_EXTENSIONS:
        raise ConfigFileError(f"Unsupported config file format: {path.suffix}",
                              file_path=str(path), operation="write")

    data = config.model_dump(mode="json")
    # Parameters are written as a name -> definition mapping
    data['parameters'] = {
        p.pop('name'): p for p in data['parameters']
    }

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        if suffix == '.json':
            json.dump(data, f, indent=2)
        else:
            yaml.safe_dump(data, f, sort_keys=False)
    return path
