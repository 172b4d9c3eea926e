"""
Archive downloads for zman.

A download writes straight to its destination path. When a previous attempt
left a partial file there, the transfer continues from its last byte with a
Range request. Servers that answer with the full body instead are handled by
starting over. Progress callbacks are throttled and a cancellation hook is
polled between chunks.
"""

import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

import requests
from requests.exceptions import ConnectionError, RequestException, Timeout

from .exceptions import (
    ConnectivityError,
    DownloadCancelledError,
    StorageError,
    TransferError,
)

logger = logging.getLogger(__name__)

CHUNK_SIZE = 8192
PROGRESS_INTERVAL = 0.5
MIB = 1024 * 1024


@dataclass
class DownloadProgress:
    """Snapshot of a running download."""

    bytes_downloaded: int
    total_bytes: int  # 0 when the server sent no content-length
    percentage: float
    speed_bps: float
    eta_seconds: float

    def __str__(self) -> str:
        return format_progress(self)


def download_file(
    url: str,
    destination: Path,
    progress_callback: Optional[Callable[[DownloadProgress], None]] = None,
    should_cancel: Optional[Callable[[], bool]] = None,
    session: Optional[requests.Session] = None,
    timeout: int = 30,
) -> Path:
    """
    Fetch url into destination, continuing a partial file left there.

    A non-empty destination is treated as a partial download: its size becomes
    the offset of a ``Range: bytes=<offset>-`` request. ``206`` bodies are
    appended; any other 2xx body is the whole file and replaces what was there.

    Args:
        url: Archive URL
        destination: File to write
        progress_callback: Receives DownloadProgress at most every
            PROGRESS_INTERVAL seconds, and once at the end
        should_cancel: Polled before each chunk; True aborts the transfer
        session: Session to send the request with (module-level requests if None)
        timeout: Connect and read timeout in seconds

    Returns:
        destination

    Raises:
        ConnectivityError: If the host cannot be reached or the connection drops
        TransferError: If the server answers with a non-2xx status
        DownloadCancelledError: If should_cancel returned True
        StorageError: If destination cannot be written
        ValueError: If url or destination is empty
    """
    if not url or not destination:
        raise ValueError("Both url and destination are required")

    destination = Path(destination)
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise StorageError(f"Cannot create directory {destination.parent}: {e}") from e

    resume_from = 0
    if destination.exists():
        resume_from = destination.stat().st_size
        if resume_from > 0:
            logger.info(f"Resuming download from byte {resume_from}")

    headers = {}
    if resume_from > 0:
        headers["Range"] = f"bytes={resume_from}-"

    logger.info(f"Downloading from {url}")
    http = session or requests

    try:
        response = http.get(
            url, headers=headers, stream=True, timeout=timeout, allow_redirects=True
        )
    except (ConnectionError, Timeout) as e:
        raise ConnectivityError(f"Cannot connect to {url}: {e}") from e
    except RequestException as e:
        raise TransferError(f"Request to {url} failed: {e}") from e

    with response:
        if response.status_code == 206 and resume_from > 0:
            mode = "ab"
        elif 200 <= response.status_code < 300:
            if resume_from > 0:
                logger.info("Server ignored range request, restarting download")
            resume_from = 0
            mode = "wb"
        else:
            raise TransferError(
                f"Server status: {response.status_code} for {url}",
                status_code=response.status_code,
            )

        content_length = response.headers.get("content-length")
        total_size = int(content_length) + resume_from if content_length else 0

        return _stream_to_file(
            response,
            destination,
            mode,
            resume_from,
            total_size,
            progress_callback,
            should_cancel,
        )


def _stream_to_file(
    response: requests.Response,
    destination: Path,
    mode: str,
    resume_from: int,
    total_size: int,
    progress_callback: Optional[Callable[[DownloadProgress], None]],
    should_cancel: Optional[Callable[[], bool]],
) -> Path:
    """
    Write the response body to disk chunk by chunk.

    This is an internal function called by download_file().
    """
    downloaded = resume_from
    start_time = time.time()
    last_progress_time = 0.0

    try:
        with open(destination, mode) as f:
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                if should_cancel and should_cancel():
                    f.flush()
                    raise DownloadCancelledError(
                        f"Download cancelled after {downloaded} bytes"
                    )
                if not chunk:
                    continue

                f.write(chunk)
                downloaded += len(chunk)

                # Report progress (max once per 0.5 seconds to avoid spam)
                current_time = time.time()
                if progress_callback and (
                    current_time - last_progress_time >= PROGRESS_INTERVAL
                    or downloaded == total_size
                ):
                    progress_callback(
                        _make_progress(
                            downloaded, total_size, resume_from, start_time, current_time
                        )
                    )
                    last_progress_time = current_time

            f.flush()
            os.fsync(f.fileno())
    except (ConnectionError, Timeout) as e:
        raise ConnectivityError(f"Connection lost during download: {e}") from e
    except RequestException as e:
        raise TransferError(f"Error while receiving data: {e}") from e
    except OSError as e:
        raise StorageError(f"Cannot write {destination}: {e}") from e

    if progress_callback and total_size == 0:
        progress_callback(
            _make_progress(downloaded, 0, resume_from, start_time, time.time())
        )

    logger.info(f"Download complete: {destination} ({downloaded} bytes)")
    return destination


def _make_progress(
    downloaded: int,
    total_size: int,
    resume_from: int,
    start_time: float,
    current_time: float,
) -> DownloadProgress:
    elapsed = current_time - start_time
    speed = (downloaded - resume_from) / elapsed if elapsed > 0 else 0
    remaining = total_size - downloaded if total_size > 0 else 0
    eta = remaining / speed if speed > 0 else 0

    return DownloadProgress(
        bytes_downloaded=downloaded,
        total_bytes=total_size,
        percentage=(downloaded / total_size * 100) if total_size > 0 else 0,
        speed_bps=speed,
        eta_seconds=eta,
    )


def format_progress(progress: DownloadProgress) -> str:
    """
    Render progress on one line.

    Example:
        >>> format_progress(DownloadProgress(52428800, 104857600, 50.0, 1048576, 50))
        '50.0/100.0 MB (50.0%) at 1.0 MB/s ETA: 50s'
    """
    done = progress.bytes_downloaded / MIB
    rate = f"{progress.speed_bps / MIB:.1f} MB/s"

    if not progress.total_bytes:
        return f"{done:.1f} MB at {rate}"

    return (
        f"{done:.1f}/{progress.total_bytes / MIB:.1f} MB ({progress.percentage:.1f}%) "
        f"at {rate} ETA: {progress.eta_seconds:.0f}s"
    )
