"""
Configuration loader — reads box.yml into a BoxConfig.

box.yml is searched upward from the working directory so `box` works
from any subdirectory of a project.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from devbox.core.errors import ConfigError
from devbox.core.models.config import BoxConfig

logger = logging.getLogger(__name__)

# Default config filename
BOX_CONFIG_FILE = "box.yml"


def find_box_file(start_dir: Path | None = None) -> Path | None:
    """Search for box.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to box.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / BOX_CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def load_box_config(path: Path) -> BoxConfig:
    """Load and validate a box.yml file.

    Raises:
        ConfigError: If the file is missing or invalid.
    """
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading box config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        config = BoxConfig.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid box configuration: {e}") from e

    logger.info("Loaded box '%s' with %d packages", config.name, len(config.packages))
    return config


def write_box_config(config: BoxConfig, path: Path) -> None:
    """Serialize a BoxConfig back to YAML."""
    data = config.model_dump(mode="json", exclude_defaults=True)
    data["name"] = config.name
    path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
    logger.debug("Wrote box config to %s", path)
