"""Optional configuration file support (YAML or JSON)."""
from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Optional

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)

KNOWN_KEYS = ("cache", "repositories", "parallel", "max_iterations", "keep_optional", "offline")


def load_config(config_path: Optional[str]) -> Dict[str, Any]:
    """Load engine configuration from a YAML or JSON file.

    Args:
        config_path: Path to the file; ``None`` means no configuration.

    Returns:
        Mapping of recognised keys; unknown keys are logged and dropped.

    Raises:
        ConfigError: the file is missing, unreadable or not a mapping.
    """
    if not config_path:
        return {}
    if not os.path.isfile(config_path):
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            if config_path.endswith(".json"):
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to load config {config_path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config {config_path} must contain a mapping")

    config = {}
    for key, value in data.items():
        if key in KNOWN_KEYS:
            config[key] = value
        else:
            logger.warning("Ignoring unknown config key: %s", key)
    repos = config.get("repositories")
    if isinstance(repos, str):
        config["repositories"] = [r.strip() for r in repos.split(",") if r.strip()]
    logger.debug("Loaded config from %s: %s", config_path, sorted(config))
    return config
