"""YAML configuration loading.

Used by [Brotr.from_yaml()][feedbrotr.core.brotr.Brotr.from_yaml],
[BaseService.from_yaml()][feedbrotr.core.base_service.BaseService.from_yaml]
and the CLI to read configuration files. Only ``yaml.safe_load`` is used, so
YAML tags cannot instantiate arbitrary Python objects.

Examples:
    ```python
    from feedbrotr.core.yaml import load_yaml

    config = load_yaml("config/services/ingestor.yaml")
    ```
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigurationError


def load_yaml(config_path: str | Path) -> dict[str, Any]:
    """Load and parse a YAML configuration file into a dictionary.

    Args:
        config_path: Path to the YAML file (absolute or relative).

    Returns:
        Parsed configuration as a nested dictionary, empty when the file
        holds no data.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigurationError: If the file is not valid YAML or its top level
            is not a mapping.

    Warning:
        The structure of the returned dictionary is not validated here.
        Callers pass it to a Pydantic model
        ([BrotrConfig][feedbrotr.core.brotr.BrotrConfig],
        [BaseServiceConfig][feedbrotr.core.base_service.BaseServiceConfig]).
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with path.open(encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Top level of {config_path} must be a mapping, got {type(data).__name__}"
        )
    return data
