"""YAML configuration for zman.

Example config.yaml:

    index_url: https://ziglang.org/download/index.json
    install_dir: ~/.local/share/zman
    link_dir: ~/.local/bin
    dropins: true
    timeout: 30

Every key is optional. Command-line flags take precedence over the file,
which takes precedence over platform defaults.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from zman.core.directory import (
    get_default_config_file,
    get_default_install_dir,
    get_default_link_dir,
)
from zman.core.exceptions import ConfigError
from zman.toolchain.index import DEFAULT_INDEX_URL

logger = logging.getLogger(__name__)


@dataclass
class ZmanConfig:
    """Resolved configuration values."""

    install_dir: Path
    link_dir: Path
    index_url: str = DEFAULT_INDEX_URL
    dropins: bool = True
    timeout: int = 30


_KNOWN_KEYS = {"index_url", "install_dir", "link_dir", "dropins", "timeout"}


def load_config(config_file: Optional[Path] = None) -> ZmanConfig:
    """
    Load configuration from a YAML file.

    Args:
        config_file: Explicit file; must exist. If None, the default
            location is used when present.

    Returns:
        ZmanConfig with defaults filled in

    Raises:
        ConfigError: If the file is missing (explicit only), malformed or invalid
    """
    required = config_file is not None
    path = Path(config_file) if config_file is not None else get_default_config_file()

    data = _read_yaml(path, required)
    return parse_config(data)


def parse_config(data: Dict[str, Any]) -> ZmanConfig:
    """
    Validate a configuration mapping and fill in defaults.

    Raises:
        ConfigError: On unknown keys or wrongly-typed values
    """
    unknown = set(data) - _KNOWN_KEYS
    if unknown:
        raise ConfigError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

    index_url = data.get("index_url", DEFAULT_INDEX_URL)
    if not isinstance(index_url, str) or not index_url:
        raise ConfigError("index_url must be a non-empty string")

    dropins = data.get("dropins", True)
    if not isinstance(dropins, bool):
        raise ConfigError("dropins must be true or false")

    timeout = data.get("timeout", 30)
    if isinstance(timeout, bool) or not isinstance(timeout, int) or timeout <= 0:
        raise ConfigError("timeout must be a positive integer")

    install_dir = _path_value(data, "install_dir")
    link_dir = _path_value(data, "link_dir")

    return ZmanConfig(
        install_dir=install_dir or get_default_install_dir(),
        link_dir=link_dir or get_default_link_dir(),
        index_url=index_url,
        dropins=dropins,
        timeout=timeout,
    )


def _path_value(data: Dict[str, Any], key: str) -> Optional[Path]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str) or not value:
        raise ConfigError(f"{key} must be a path string")
    return Path(value).expanduser()


def _read_yaml(config_file: Path, required: bool) -> Dict[str, Any]:
    if not config_file.exists():
        if required:
            raise ConfigError(f"Configuration file not found: {config_file}")
        logger.debug(f"Config file not found (optional): {config_file}")
        return {}

    logger.debug(f"Loading configuration from {config_file}")

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_file}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read {config_file}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration in {config_file} must be a mapping")
    return data
