"""
File system utilities for zman.

Covers what the install pipeline needs on disk:
- Unpacking release archives (tar.xz, tar.gz, tar.bz2, zip) after checking
  every member path
- Copying an unpacked toolchain over an install directory
- Removing directory trees, including read-only files on Windows
- Process-scoped temporary directories
"""

import gzip
import logging
import lzma
import os
import shutil
import stat
import sys
import tarfile
import tempfile
import zipfile
import zlib
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, Optional, Union

from .exceptions import FormatError, StorageError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


# ============================================================================
# Error Handling
# ============================================================================


class FilesystemError(StorageError):
    """A local file operation failed."""

    pass


class ArchiveExtractionError(FormatError):
    """An archive could not be unpacked."""

    pass


class UnsupportedArchiveFormat(ArchiveExtractionError):
    """The archive's file name has no known extension."""

    pass


class InsecureArchiveError(ArchiveExtractionError):
    """An archive member would land outside the extraction directory."""

    pass


# ============================================================================
# Archive Extraction
# ============================================================================

# Suffix -> tarfile mode, or None for zip. Checked in order.
_ARCHIVE_FORMATS = (
    (".zip", None),
    (".tar.xz", "r:xz"),
    (".txz", "r:xz"),
    (".tar.gz", "r:gz"),
    (".tgz", "r:gz"),
    (".tar.bz2", "r:bz2"),
    (".tbz2", "r:bz2"),
)

# Decompressor failures; gzip reports bad streams as an OSError subclass
_CORRUPT_ARCHIVE_ERRORS = (
    tarfile.TarError,
    zipfile.BadZipFile,
    gzip.BadGzipFile,
    lzma.LZMAError,
    zlib.error,
    EOFError,
)


def _check_member(name: str, root: Path) -> None:
    if os.path.isabs(name) or name.startswith(("/", "\\")):
        raise InsecureArchiveError(f"Archive member '{name}' has an absolute path")

    if not (root / name).resolve().is_relative_to(root):
        raise InsecureArchiveError(
            f"Archive member '{name}' points outside the extraction directory"
        )


def _tar_mode(archive_name: str) -> Optional[str]:
    lowered = archive_name.lower()
    for suffix, mode in _ARCHIVE_FORMATS:
        if lowered.endswith(suffix):
            return mode
    raise UnsupportedArchiveFormat(
        f"Unsupported archive format: {archive_name}. "
        "Supported: .tar.xz, .tar.gz, .tar.bz2, .zip"
    )


def extract_archive(
    archive_path: PathLike,
    destination: PathLike,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> None:
    """
    Unpack an archive into destination.

    The format is chosen from the file name. Every member path is checked
    before anything is written.

    Args:
        archive_path: Release archive
        destination: Directory to unpack into (created if absent)
        progress_callback: Optional callback(members_done, members_total)

    Raises:
        UnsupportedArchiveFormat: If the extension is unknown
        InsecureArchiveError: If a member is absolute or escapes destination
        ArchiveExtractionError: If the archive is missing, corrupt or truncated
        FilesystemError: If writing the unpacked files fails
    """
    archive_path = Path(archive_path)
    destination = Path(destination)

    if not archive_path.is_file():
        raise ArchiveExtractionError(f"Archive not found: {archive_path}")

    mode = _tar_mode(archive_path.name)

    try:
        destination.mkdir(parents=True, exist_ok=True)
        root = destination.resolve()
        if mode is None:
            count = _unpack_zip(archive_path, root, progress_callback)
        else:
            count = _unpack_tar(archive_path, root, mode, progress_callback)
    except ArchiveExtractionError:
        raise
    except _CORRUPT_ARCHIVE_ERRORS as e:
        raise ArchiveExtractionError(f"Corrupt archive {archive_path.name}: {e}") from e
    except OSError as e:
        raise FilesystemError(f"Cannot unpack into {destination}: {e}") from e

    logger.debug(f"Unpacked {count} members from {archive_path.name}")


def _unpack_tar(
    archive_path: Path,
    root: Path,
    mode: str,
    progress_callback: Optional[Callable[[int, int], None]],
) -> int:
    with tarfile.open(archive_path, mode) as tar:
        members = tar.getmembers()
        for member in members:
            _check_member(member.name, root)

        # The data filter also rejects links that resolve outside root
        if hasattr(tarfile, "data_filter"):
            tar.extractall(root, filter="data")
        else:
            tar.extractall(root)

    if progress_callback:
        progress_callback(len(members), len(members))
    return len(members)


def _unpack_zip(
    archive_path: Path,
    root: Path,
    progress_callback: Optional[Callable[[int, int], None]],
) -> int:
    with zipfile.ZipFile(archive_path) as zf:
        infos = zf.infolist()
        for info in infos:
            _check_member(info.filename, root)

        for done, info in enumerate(infos, start=1):
            extracted = zf.extract(info, root)
            # ZipFile drops Unix permission bits; restore them so zig stays executable
            unix_mode = info.external_attr >> 16
            if unix_mode and not info.is_dir():
                os.chmod(extracted, stat.S_IMODE(unix_mode))
            if progress_callback:
                progress_callback(done, len(infos))

    return len(infos)


# ============================================================================
# Copy and Removal
# ============================================================================


def copy_tree(source: PathLike, destination: PathLike) -> int:
    """
    Copy a directory's contents over destination.

    Files present in both are replaced, files only present at destination are
    kept. Symlinks inside source are recreated rather than followed.

    Args:
        source: Unpacked toolchain directory
        destination: Install directory (created if absent)

    Returns:
        Number of files and links copied

    Raises:
        FilesystemError: If source is not a directory or a copy fails
    """
    source = Path(source)
    destination = Path(destination)

    if not source.is_dir():
        raise FilesystemError(f"Source is not a directory: {source}")

    copied = 0
    try:
        destination.mkdir(parents=True, exist_ok=True)
        for current, dirnames, filenames in os.walk(source):
            current = Path(current)
            target_dir = destination / current.relative_to(source)
            target_dir.mkdir(exist_ok=True)

            # os.walk lists symlinked directories as directories without descending
            linked_dirs = [d for d in dirnames if (current / d).is_symlink()]
            for name in sorted(filenames + linked_dirs):
                _copy_entry(current / name, target_dir / name)
                copied += 1
    except OSError as e:
        raise FilesystemError(f"Failed to copy {source} to {destination}: {e}") from e

    return copied


def _copy_entry(item: Path, target: Path) -> None:
    # Never write through a link left at the destination
    if target.is_symlink() or target.is_file():
        target.unlink()

    if item.is_symlink():
        os.symlink(os.readlink(item), target)
    else:
        shutil.copy2(item, target)


def remove_tree(path: PathLike) -> None:
    """
    Remove a directory tree. A missing path is not an error.

    Read-only entries (common in unpacked archives on Windows) are made
    writable and removed.

    Raises:
        FilesystemError: If path is not a directory or removal fails
    """
    path = Path(path)
    if not path.exists() and not path.is_symlink():
        return
    if not path.is_dir() or path.is_symlink():
        raise FilesystemError(f"Path is not a directory: {path}")

    def make_writable(func, failed_path, _):
        os.chmod(failed_path, stat.S_IWRITE)
        func(failed_path)

    try:
        if sys.version_info >= (3, 12):
            shutil.rmtree(path, onexc=make_writable)
        else:
            shutil.rmtree(path, onerror=make_writable)
    except OSError as e:
        raise FilesystemError(f"Failed to remove directory '{path}': {e}") from e


# ============================================================================
# Temporary Directory Management
# ============================================================================


@contextmanager
def temporary_directory(prefix: str = "zman_") -> Iterator[Path]:
    """
    Create a temporary directory that is removed when the block exits.

    Removal happens whether the block succeeded or raised.

    Example:
        >>> with temporary_directory() as tmp:
        ...     download_file(url, tmp / "zig.tar.xz")
    """
    temp_dir = Path(tempfile.mkdtemp(prefix=prefix))
    logger.debug(f"Created temporary directory {temp_dir}")

    try:
        yield temp_dir
    finally:
        remove_tree(temp_dir)
