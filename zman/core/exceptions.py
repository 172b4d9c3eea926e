"""
Centralized exception hierarchy for zman.

Every failure the install pipeline can produce maps onto one of these
classes so the command line can report the failing stage and version
with a single readable message.
"""

from enum import Enum
from typing import Optional


# ============================================================================
# Base Exceptions
# ============================================================================


class ZmanError(Exception):
    """Base exception for all zman errors."""

    pass


class ConfigError(ZmanError):
    """Configuration file parsing or validation error."""

    pass


# ============================================================================
# Release Index Exceptions
# ============================================================================


class ConnectivityError(ZmanError):
    """Raised when the index or archive host cannot be reached."""

    pass


class FormatError(ZmanError):
    """Raised when the release index or an archive has an unexpected layout."""

    pass


class VersionNotFoundError(ZmanError):
    """Raised when a version specifier matches nothing in the index."""

    pass


class InvalidVersionError(VersionNotFoundError):
    """Specifier is neither 'latest', 'master' nor a semantic version."""

    pass


class TargetUnsupportedError(ZmanError):
    """Raised when a version exists but has no build for the target."""

    def __init__(self, version: str, target: str):
        self.version = version
        self.target = target
        super().__init__(f"Zig {version} has no build available for {target}")


class UnsupportedPlatformError(ZmanError):
    """Raised when the running operating system has no Zig builds at all."""

    def __init__(self, system: str):
        self.system = system
        super().__init__(
            f"Unsupported operating system: {system}. "
            "Zig publishes builds for linux, macos, windows and the BSDs"
        )


# ============================================================================
# Transfer and Storage Exceptions
# ============================================================================


class TransferError(ZmanError):
    """Raised when a download answers with a non-success status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class DownloadCancelledError(TransferError):
    """Raised when a download is cancelled between chunks."""

    pass


class StorageError(ZmanError):
    """Raised when a local filesystem operation fails."""

    pass


class ChecksumMismatchError(ZmanError):
    """Raised when a downloaded file does not match its expected digest."""

    def __init__(self, expected: str, actual: str, file_name: str = ""):
        self.expected = expected
        self.actual = actual
        subject = f" for {file_name}" if file_name else ""
        super().__init__(
            f"Checksum mismatch{subject}: expected {expected}, got {actual}"
        )


class SymlinkPermissionError(ZmanError):
    """Raised when the default symlink cannot be created for lack of permission."""

    pass


# ============================================================================
# Pipeline Exceptions
# ============================================================================


class InstallStage(Enum):
    """Stages of the install pipeline, used to label failures."""

    RESOLVING = "resolving"
    DOWNLOADING = "downloading"
    VERIFYING = "verifying"
    EXTRACTING = "extracting"
    LINKING = "linking"


_STAGE_DESCRIPTIONS = {
    InstallStage.RESOLVING: "Resolving version",
    InstallStage.DOWNLOADING: "Downloading",
    InstallStage.VERIFYING: "Checksum verification",
    InstallStage.EXTRACTING: "Extracting",
    InstallStage.LINKING: "Linking",
}


class InstallError(ZmanError):
    """Wraps a stage failure with the stage and version it happened in."""

    def __init__(self, stage: InstallStage, version: str, cause: Exception):
        self.stage = stage
        self.version = version
        self.cause = cause
        super().__init__(
            f"{_STAGE_DESCRIPTIONS[stage]} failed for Zig {version}: {cause}"
        )
