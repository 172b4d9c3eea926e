"""
Toolchain install orchestration.

This module sequences the install pipeline:
1. Resolve the version specifier against the release index
2. Skip to linking if the version is already installed (never for master)
3. Download the archive into a process-scoped temporary directory
4. Verify its checksum
5. Extract it into the per-version install directory
6. Link it as the default 'zig' (install only)

Every stage is a hard gate on the next. A failure is wrapped in an
InstallError naming the stage and version, and the temporary directory is
removed whether the run succeeded or not.
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Union
from urllib.parse import urlparse

import requests

from zman.core.download import DownloadProgress, download_file
from zman.core.exceptions import InstallError, InstallStage, ZmanError
from zman.core.filesystem import temporary_directory
from zman.core.verification import verify_checksum
from zman.toolchain.extractor import extract_and_install
from zman.toolchain.index import ResolvedRelease, VersionIndex
from zman.toolchain.linking import LINK_NAME, LinkManager, LinkResult
from zman.toolchain.version import MASTER, VersionSpecifier

logger = logging.getLogger(__name__)


class InstallState(Enum):
    """States of the install pipeline."""

    RESOLVING = "resolving"
    ALREADY_INSTALLED = "already_installed"
    DOWNLOADING = "downloading"
    VERIFYING = "verifying"
    EXTRACTING = "extracting"
    LINKING = "linking"
    DONE = "done"
    FAILED = "failed"


_STAGE_STATES = {
    InstallState.RESOLVING: InstallStage.RESOLVING,
    InstallState.DOWNLOADING: InstallStage.DOWNLOADING,
    InstallState.VERIFYING: InstallStage.VERIFYING,
    InstallState.EXTRACTING: InstallStage.EXTRACTING,
    InstallState.LINKING: InstallStage.LINKING,
}


@dataclass
class InstallResult:
    """Result of an install or fetch operation."""

    version: str
    """Concrete version that was installed"""

    install_path: Path
    """Per-version install directory"""

    was_cached: bool
    """Whether the version was already installed (no download needed)"""

    link: Optional[LinkResult] = None
    """Link details, when the version was made the default"""

    download_time: float = 0.0
    """Time spent downloading in seconds"""

    states: List[InstallState] = field(default_factory=list)
    """States the pipeline passed through"""


class InstallOrchestrator:
    """
    Resolves, downloads, verifies, extracts and links Zig toolchains.

    Default paths are not computed here; callers pass the install root and
    link directory in.

    Example:
        >>> orchestrator = InstallOrchestrator(
        ...     install_root=Path("~/.local/share/zman").expanduser(),
        ...     link_dir=Path("~/.local/bin").expanduser(),
        ...     target="x86_64-linux",
        ... )
        >>> result = orchestrator.install("0.12.0")
        >>> print(f"Installed at: {result.install_path}")
    """

    def __init__(
        self,
        install_root: Path,
        target: str,
        link_dir: Optional[Path] = None,
        create_dropins: bool = True,
        index: Optional[VersionIndex] = None,
        link_manager: Optional[LinkManager] = None,
        session: Optional[requests.Session] = None,
        timeout: int = 30,
        progress_callback: Optional[Callable[[DownloadProgress], None]] = None,
        should_cancel: Optional[Callable[[], bool]] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            install_root: Directory holding one subdirectory per installed version
            target: Target triple such as 'x86_64-linux'
            link_dir: Directory for the default 'zig' symlink (required by install())
            create_dropins: Write zig-<tool> shims when linking
            index: Release index client (created from session if None)
            link_manager: Link manager (created if None)
            session: requests session shared by index and downloads
            timeout: Network timeout in seconds
            progress_callback: Optional download progress callback
            should_cancel: Optional callable polled between download chunks
        """
        self.install_root = Path(install_root)
        self.target = target
        self.link_dir = Path(link_dir) if link_dir is not None else None
        self.create_dropins = create_dropins
        self.session = session or requests.Session()
        self.timeout = timeout
        self.index = index or VersionIndex(session=self.session, timeout=timeout)
        self.link_manager = link_manager or LinkManager()
        self.progress_callback = progress_callback
        self.should_cancel = should_cancel

    def install(self, specifier: Union[str, VersionSpecifier]) -> InstallResult:
        """
        Install a version (if needed) and make it the default.

        Args:
            specifier: 'latest', 'master' or an exact version

        Returns:
            InstallResult with link details

        Raises:
            InstallError: If any stage fails
            ValueError: If no link directory was configured
        """
        if self.link_dir is None:
            raise ValueError("A link directory is required to set the default")
        return self._run(specifier, link=True)

    def fetch(self, specifier: Union[str, VersionSpecifier]) -> InstallResult:
        """
        Install a version (if needed) without changing the default.

        Raises:
            InstallError: If any stage fails
        """
        return self._run(specifier, link=False)

    def install_dir_for(self, release: ResolvedRelease) -> Path:
        """Get the install directory for a resolved release."""
        if release.is_master:
            return self.install_root / MASTER
        return self.install_root / release.specific_version

    @staticmethod
    def is_installed(install_dir: Path) -> bool:
        """A version is installed once its directory contains the zig binary."""
        return (Path(install_dir) / LINK_NAME).exists()

    def _run(self, specifier: Union[str, VersionSpecifier], link: bool) -> InstallResult:
        states: List[InstallState] = []

        with self._stage(states, InstallState.RESOLVING, str(specifier)):
            spec = VersionSpecifier.parse(specifier)
            release = self.index.resolve(spec, self.target)

        version = release.specific_version
        install_dir = self.install_dir_for(release)
        result = InstallResult(
            version=version, install_path=install_dir, was_cached=False, states=states
        )

        # master is a moving target and is always fetched again
        if not release.is_master and self.is_installed(install_dir):
            states.append(InstallState.ALREADY_INSTALLED)
            logger.info(f"Zig version {version} already downloaded")
            result.was_cached = True
        else:
            result.download_time = self._download_and_install(
                release, install_dir, states
            )

        if link:
            with self._stage(states, InstallState.LINKING, version):
                result.link = self.link_manager.link(
                    install_dir, self.link_dir, self.create_dropins
                )

        states.append(InstallState.DONE)
        return result

    def _download_and_install(
        self, release: ResolvedRelease, install_dir: Path, states: List[InstallState]
    ) -> float:
        version = release.specific_version

        with temporary_directory(prefix="zman_") as temp_dir:
            archive_path = temp_dir / _archive_name(release.tarball_url, version)
            staging_dir = temp_dir / "extract"

            with self._stage(states, InstallState.DOWNLOADING, version):
                logger.info(f"Downloading Zig {version}...")
                download_start = time.time()
                download_file(
                    release.tarball_url,
                    archive_path,
                    progress_callback=self.progress_callback,
                    should_cancel=self.should_cancel,
                    session=self.session,
                    timeout=self.timeout,
                )
                download_time = time.time() - download_start

            with self._stage(states, InstallState.VERIFYING, version):
                verify_checksum(archive_path, release.shasum)

            with self._stage(states, InstallState.EXTRACTING, version):
                extract_and_install(archive_path, staging_dir, install_dir)

        return download_time

    @contextmanager
    def _stage(
        self, states: List[InstallState], state: InstallState, version: str
    ) -> Iterator[None]:
        states.append(state)
        logger.debug(f"Entering {state.value} for {version}")
        try:
            yield
        except (ZmanError, OSError) as e:
            states.append(InstallState.FAILED)
            logger.debug(f"{state.value} failed for {version}: {e}")
            raise InstallError(_STAGE_STATES[state], version, e) from e


def _archive_name(url: str, version: str) -> str:
    """File name for the downloaded archive, keeping its extension."""
    name = Path(urlparse(url).path).name
    return name or f"zig-{version}.tar.xz"
