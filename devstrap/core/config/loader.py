"""
Configuration loader — reads config.yml into a DevstrapConfig.

Search order: explicit path, ``$DEVSTRAP_CONFIG``, then
``~/.config/devstrap/config.yml``. A missing file is not an error; the
defaults apply.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml

from devstrap.core.errors import ConfigError
from devstrap.core.models.config import DevstrapConfig

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "DEVSTRAP_CONFIG"
CONFIG_RELATIVE_PATH = Path(".config") / "devstrap" / "config.yml"


def find_config_file(home: Path | None = None) -> Path | None:
    """Locate the user's config file, or None if there isn't one."""
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()

    candidate = (home or Path.home()) / CONFIG_RELATIVE_PATH
    if candidate.is_file():
        return candidate
    return None


def load_config(
    path: Path | None = None,
    known_steps: list[str] | None = None,
) -> DevstrapConfig:
    """Load and validate configuration.

    Args:
        path: Explicit path to config.yml. If None, searches the defaults.
        known_steps: Step names ``skip`` entries are checked against.

    Returns:
        Validated DevstrapConfig (defaults when no file exists).

    Raises:
        ConfigError: If an explicit file is missing or any file is invalid.
    """
    explicit = path is not None
    if path is None:
        path = find_config_file()

    if path is None:
        logger.debug("No config file found, using defaults")
        return DevstrapConfig()

    if not path.is_file():
        if explicit or os.environ.get(CONFIG_ENV_VAR):
            raise ConfigError(f"Config file not found: {path}")
        return DevstrapConfig()

    logger.debug("Loading config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        config = DevstrapConfig.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid configuration: {e}") from e

    if known_steps is not None:
        unknown = [name for name in config.skip if name not in known_steps]
        if unknown:
            raise ConfigError(
                f"Unknown step(s) in skip: {', '.join(unknown)} "
                f"(known: {', '.join(known_steps)})"
            )

    logger.info("Loaded config from %s", path)
    return config
