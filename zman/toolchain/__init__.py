"""
Toolchain management module for zman.

This module provides functionality for:
- Version specifier parsing and semantic version comparison
- Release index lookup
- Archive extraction into install directories
- Default symlink and drop-in shim management
- Install orchestration
"""

from zman.toolchain.version import (
    SemanticVersion,
    SpecifierKind,
    VersionSpecifier,
)
from zman.toolchain.index import (
    ReleaseArtifact,
    ReleaseEntry,
    ReleaseIndex,
    ResolvedRelease,
    VersionIndex,
)
from zman.toolchain.extractor import extract_and_install
from zman.toolchain.linking import LinkManager, LinkResult
from zman.toolchain.installer import (
    InstallOrchestrator,
    InstallResult,
    InstallState,
)
from zman.toolchain.installed import InstalledVersion, list_installed

__all__ = [
    # Versions
    "SemanticVersion",
    "SpecifierKind",
    "VersionSpecifier",
    # Index
    "ReleaseArtifact",
    "ReleaseEntry",
    "ReleaseIndex",
    "ResolvedRelease",
    "VersionIndex",
    # Extraction
    "extract_and_install",
    # Linking
    "LinkManager",
    "LinkResult",
    # Orchestration
    "InstallOrchestrator",
    "InstallResult",
    "InstallState",
    "InstalledVersion",
    "list_installed",
]
