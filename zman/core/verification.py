"""
Checksum verification for downloaded archives.

Files are streamed through SHA-256 in fixed-size blocks so memory use does not
depend on archive size. Digests are compared lower-cased and in constant time.
"""

import hashlib
import logging
import secrets
from pathlib import Path
from typing import Callable, Optional

from .exceptions import ChecksumMismatchError, StorageError

logger = logging.getLogger(__name__)

BLOCK_SIZE = 8192


def compute_sha256(
    file_path: Path,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> str:
    """
    Compute the SHA-256 digest of a file.

    Args:
        file_path: Path to file
        progress_callback: Optional progress callback (bytes_read, total_bytes)

    Returns:
        Lower-case hex digest

    Raises:
        StorageError: If the file cannot be read
    """
    file_path = Path(file_path)
    hasher = hashlib.sha256()

    try:
        file_size = file_path.stat().st_size
        bytes_read = 0
        with open(file_path, "rb") as f:
            while chunk := f.read(BLOCK_SIZE):
                hasher.update(chunk)
                bytes_read += len(chunk)

                if progress_callback:
                    progress_callback(bytes_read, file_size)
    except OSError as e:
        raise StorageError(f"Cannot read {file_path}: {e}") from e

    return hasher.hexdigest()


def verify_checksum(file_path: Path, expected_sha256: str) -> None:
    """
    Verify a file against its expected SHA-256 digest.

    Args:
        file_path: Path to file to verify
        expected_sha256: Expected digest as a hex string (any case)

    Raises:
        ChecksumMismatchError: If the digests differ
        StorageError: If the file cannot be read

    Example:
        >>> verify_checksum(Path('zig.tar.xz'), index_entry.shasum)
    """
    file_path = Path(file_path)
    expected = expected_sha256.strip().lower()
    actual = compute_sha256(file_path)

    if not _constant_time_compare(actual, expected):
        raise ChecksumMismatchError(expected, actual, file_path.name)

    logger.info("Checksum verified successfully")


def _constant_time_compare(a: str, b: str) -> bool:
    """Compare two digests without leaking timing information."""
    return secrets.compare_digest(a.encode("utf-8"), b.encode("utf-8"))
