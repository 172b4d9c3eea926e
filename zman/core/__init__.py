"""
Core functionality for zman.

This package contains the foundational modules that the install pipeline
depends on.
"""

from .directory import (
    get_default_install_dir,
    get_default_link_dir,
    get_default_config_file,
)

from .platform import (
    TargetInfo,
    detect_target,
)

from .exceptions import (
    ZmanError,
    ConfigError,
    ConnectivityError,
    FormatError,
    VersionNotFoundError,
    InvalidVersionError,
    TargetUnsupportedError,
    UnsupportedPlatformError,
    TransferError,
    DownloadCancelledError,
    StorageError,
    ChecksumMismatchError,
    SymlinkPermissionError,
    InstallStage,
    InstallError,
)

__all__ = [
    "get_default_install_dir",
    "get_default_link_dir",
    "get_default_config_file",
    "TargetInfo",
    "detect_target",
    "ZmanError",
    "ConfigError",
    "ConnectivityError",
    "FormatError",
    "VersionNotFoundError",
    "InvalidVersionError",
    "TargetUnsupportedError",
    "UnsupportedPlatformError",
    "TransferError",
    "DownloadCancelledError",
    "StorageError",
    "ChecksumMismatchError",
    "SymlinkPermissionError",
    "InstallStage",
    "InstallError",
]
