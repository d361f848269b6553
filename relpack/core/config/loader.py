"""
packaging.yml → PackagingConfig.

The file is optional. Without it the default product (mesos, with its
python binding) is packaged under default metadata. Keys may sit at
the top level or under a ``package:`` mapping.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from relpack.core.models.packaging import PackagingConfig

logger = logging.getLogger(__name__)

PACKAGING_CONFIG_FILE = "packaging.yml"

_MAX_DEPTH = 20


class ConfigError(Exception):
    """packaging.yml is missing, unreadable or does not validate."""


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Nearest packaging.yml in ``start_dir`` (default cwd) or an ancestor."""
    here = (start_dir or Path.cwd()).resolve()
    for directory in [here, *here.parents][:_MAX_DEPTH]:
        candidate = directory / PACKAGING_CONFIG_FILE
        if candidate.is_file():
            return candidate
    return None


def load_config(path: Path | None = None, search: bool = True) -> PackagingConfig:
    """Read and validate packaging configuration.

    An explicit ``path`` must exist. With no path, the nearest
    packaging.yml is used when ``search`` is set; failing that, the
    defaults.

    Raises:
        ConfigError: explicit file missing, bad YAML, or invalid values.
    """
    if path is None and search:
        path = find_config_file()
    if path is None:
        logger.debug("No %s; packaging with defaults", PACKAGING_CONFIG_FILE)
        return PackagingConfig()

    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ConfigError(f"Config file not found: {path}") from None
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        document = yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(document, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(document).__name__}")

    section = document.get("package", document)
    try:
        config = PackagingConfig.model_validate(section)
    except ValidationError as e:
        raise ConfigError(f"Invalid packaging configuration in {path}: {e}") from e

    logger.info("Packaging '%s' with settings from %s", config.name, path)
    return config
