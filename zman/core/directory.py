"""
Default directory locations for zman.

These are only consulted at the command-line boundary; the install pipeline
receives the resulting paths as plain configuration values.

Directory Structure:
    Install root (~/.local/share/zman/ or %LOCALAPPDATA%\\zman\\):
        - <version>/  : One extracted toolchain per release (e.g. 0.12.0/)
        - master/     : The most recently fetched development build

    Link directory (~/.local/bin/):
        - zig         : Symlink to <install root>/<version>/zig
        - zig-<tool>  : Optional drop-in shims (zig-cc, zig-c++, ...)
"""

import os
from pathlib import Path

from .exceptions import ConfigError

APP_NAME = "zman"


def get_default_install_dir() -> Path:
    """
    Get the platform-specific default install root.

    Returns:
        Path: The install root.
            - Windows: %LOCALAPPDATA%\\zman
            - Linux/macOS: $XDG_DATA_HOME/zman or ~/.local/share/zman

    Raises:
        ConfigError: If the Windows profile location cannot be determined
    """
    if os.name == "nt":
        local_app_data = os.environ.get("LOCALAPPDATA")
        if not local_app_data:
            raise ConfigError(
                "LOCALAPPDATA environment variable is not set. "
                "Cannot determine install directory, pass --install DIR."
            )
        return Path(local_app_data) / APP_NAME

    xdg_data = os.environ.get("XDG_DATA_HOME")
    if xdg_data:
        return Path(xdg_data) / APP_NAME
    return Path.home() / ".local" / "share" / APP_NAME


def get_default_link_dir() -> Path:
    """
    Get the default directory for the 'zig' symlink.

    Returns:
        Path: ~/.local/bin on every platform
    """
    return Path.home() / ".local" / "bin"


def get_default_config_file() -> Path:
    """
    Get the default configuration file location.

    Returns:
        Path: $XDG_CONFIG_HOME/zman/config.yaml or ~/.config/zman/config.yaml
    """
    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg_config) if xdg_config else Path.home() / ".config"
    return base / APP_NAME / "config.yaml"
