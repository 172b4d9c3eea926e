"""
Archive extraction into a per-version install directory.

The archive is unpacked into a disposable staging directory first. Its single
top-level directory is then copied (not moved, staging and install may live on
different filesystems) into the install directory, overwriting existing files.
An install directory is only complete once this step returns.
"""

import logging
from pathlib import Path
from typing import Optional, Callable

from zman.core.exceptions import FormatError
from zman.core.filesystem import copy_tree, extract_archive

logger = logging.getLogger(__name__)


def extract_and_install(
    archive_path: Path,
    staging_dir: Path,
    install_dir: Path,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> Path:
    """
    Extract an archive to staging and copy its top-level directory to install_dir.

    Args:
        archive_path: Downloaded archive (.tar.xz, .tar.gz, .zip, ...)
        staging_dir: Fresh directory for extraction; never the install path
        install_dir: Final per-version install directory
        progress_callback: Optional extraction progress callback(current, total)

    Returns:
        install_dir

    Raises:
        FormatError: If the archive is empty or has an unexpected layout
        StorageError: If copying into install_dir fails
    """
    archive_path = Path(archive_path)
    staging_dir = Path(staging_dir)
    install_dir = Path(install_dir)

    logger.info("Extracting Zig...")
    extract_archive(archive_path, staging_dir, progress_callback)

    root = _find_toolchain_root(staging_dir)
    logger.debug(f"Archive root: {root.name}")

    logger.info("Installing Zig...")
    copied = copy_tree(root, install_dir)
    logger.debug(f"Copied {copied} files")

    logger.info(f"Installed to {install_dir}")
    return install_dir


def _find_toolchain_root(staging_dir: Path) -> Path:
    """
    Locate the single top-level directory of an extracted archive.

    Raises:
        FormatError: If nothing was extracted or the only entry is not a directory
    """
    entries = sorted(staging_dir.iterdir())
    if not entries:
        raise FormatError("Archive empty or unexpected layout")

    directories = [entry for entry in entries if entry.is_dir()]
    if len(directories) != 1:
        raise FormatError(
            "Archive empty or unexpected layout: expected one top-level "
            f"directory, found {len(directories)}"
        )

    if len(entries) > 1:
        logger.debug(f"Ignoring {len(entries) - 1} extra top-level file(s)")

    return directories[0]
