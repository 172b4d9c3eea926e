"""
Enumeration of installed versions.

An installed version is a directory directly under the install root that
contains the 'zig' binary. Directories left behind by an interrupted install
do not contain it and are not reported.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from zman.toolchain.linking import LINK_NAME
from zman.toolchain.version import MASTER, SemanticVersion

logger = logging.getLogger(__name__)


@dataclass
class InstalledVersion:
    """An installed toolchain."""

    name: str
    """Directory name ("0.12.0" or "master")"""

    path: Path
    """Install directory"""

    is_default: bool = False
    """Whether the default 'zig' symlink points into this directory"""


def list_installed(
    install_root: Path, default_target: Optional[Path] = None
) -> List[InstalledVersion]:
    """
    List installed versions, oldest release first and master last.

    Args:
        install_root: Directory holding one subdirectory per version
        default_target: Where the default 'zig' symlink points, if known

    Returns:
        Installed versions
    """
    install_root = Path(install_root)
    if not install_root.is_dir():
        logger.debug(f"Install root does not exist: {install_root}")
        return []

    default_dir = None
    if default_target is not None:
        default_dir = Path(default_target).parent.absolute()

    installed = []
    for entry in install_root.iterdir():
        if not entry.is_dir() or not (entry / LINK_NAME).exists():
            continue
        installed.append(
            InstalledVersion(
                name=entry.name,
                path=entry,
                is_default=default_dir is not None
                and entry.absolute() == default_dir,
            )
        )

    return sorted(installed, key=lambda v: _sort_key(v.name))


def _sort_key(name: str) -> tuple:
    if name == MASTER:
        return (2, (), name)
    parsed = SemanticVersion.parse(name)
    if parsed is None:
        return (1, (), name)
    return (0, parsed.sort_key(), name)
