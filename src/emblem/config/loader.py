"""Load ledger configuration from YAML.

The packaged ``defaults.yaml`` is used when no path is given. A document
must be a mapping of sections; an empty document yields the schema
defaults (which still require a ``protocol`` section).
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .schema import Config

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


def load_config(yaml_path: Optional[Union[str, Path]] = None) -> Config:
    """
    Load and validate configuration.

    Args:
        yaml_path: YAML file to read (packaged defaults when None)

    Returns:
        Validated Config

    Raises:
        ValueError: If the document is not a mapping
        pydantic.ValidationError: If a section fails validation
    """
    path = Path(yaml_path) if yaml_path is not None else DEFAULT_CONFIG_PATH
    with open(path, 'r') as f:
        data = yaml.safe_load(f)

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping of config sections, got {type(data).__name__}")

    config = config_from_dict(data)
    logger.debug(f"Loaded config {config.compute_hash()} from {path}")
    return config


def config_from_dict(data: Dict[str, Any]) -> Config:
    """Validate a configuration mapping (e.g. built in tests or by tooling)."""
    return Config.from_dict(data)
