"""
Release index fetching and version resolution.

This module downloads the Zig release index (a JSON document keyed by version,
including the moving "master" entry), decodes it once into typed entries and
resolves a version specifier to a concrete version, archive URL and checksum
for one target triple.

Index document shape:
    {
      "master": {"version": "0.13.0-dev.46+3648d7df1", "date": "...",
                 "x86_64-linux": {"tarball": "https://...", "shasum": "..."}},
      "0.12.0":  {"date": "2024-04-20",
                 "x86_64-linux": {"tarball": "https://...", "shasum": "..."}},
      ...
    }
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import requests
from requests.exceptions import ConnectionError, RequestException, Timeout

from zman.core.exceptions import (
    ConnectivityError,
    FormatError,
    TargetUnsupportedError,
    VersionNotFoundError,
)
from zman.toolchain.version import (
    MASTER,
    SemanticVersion,
    SpecifierKind,
    VersionSpecifier,
)

logger = logging.getLogger(__name__)

DEFAULT_INDEX_URL = "https://ziglang.org/download/index.json"


@dataclass(frozen=True)
class ReleaseArtifact:
    """Download information for one target of one release."""

    tarball: str
    """Download URL for the archive"""

    shasum: str
    """SHA-256 of the archive as a hex string"""

    size: Optional[int] = None
    """Archive size in bytes, when the index provides it"""


@dataclass(frozen=True)
class ReleaseEntry:
    """One release in the index."""

    key: str
    """Index key ("0.12.0" or "master")"""

    specific_version: Optional[str]
    """Concrete version; the key for releases, the 'version' field for master"""

    date: Optional[str] = None
    """ISO-8601 release date"""

    artifacts: Dict[str, ReleaseArtifact] = field(default_factory=dict)
    """Per-target artifacts keyed by '{arch}-{os}'"""


@dataclass(frozen=True)
class ResolvedRelease:
    """Result of resolving a specifier against the index."""

    specific_version: str
    tarball_url: str
    shasum: str
    key: str

    @property
    def is_master(self) -> bool:
        return self.key == MASTER


class ReleaseIndex:
    """
    Immutable snapshot of the release index.

    Example:
        >>> index = ReleaseIndex.from_json(requests.get(DEFAULT_INDEX_URL).json())
        >>> index.resolve(VersionSpecifier.parse("latest"), "x86_64-linux")
        ResolvedRelease(specific_version='0.12.0', ...)
    """

    def __init__(self, entries: Dict[str, ReleaseEntry]):
        self._entries = dict(entries)

    @property
    def entries(self) -> Dict[str, ReleaseEntry]:
        return dict(self._entries)

    @classmethod
    def from_json(cls, data: Any) -> "ReleaseIndex":
        """
        Decode the raw index document.

        Args:
            data: Parsed JSON document

        Returns:
            ReleaseIndex

        Raises:
            FormatError: If the document does not have the expected structure
        """
        if not isinstance(data, dict):
            raise FormatError("Release index is not a JSON object")

        entries = {}
        for key, value in data.items():
            entries[key] = _decode_entry(key, value)

        logger.debug(f"Decoded release index with {len(entries)} entries")
        return cls(entries)

    def resolve(
        self, specifier: VersionSpecifier, target: str
    ) -> ResolvedRelease:
        """
        Resolve a specifier to a concrete release for a target.

        Args:
            specifier: Parsed version specifier
            target: Target triple such as 'x86_64-linux'

        Returns:
            ResolvedRelease with version, archive URL and checksum

        Raises:
            VersionNotFoundError: If nothing matches the specifier
            FormatError: If the index lacks fields needed for the selection
            TargetUnsupportedError: If the release has no build for target
        """
        if specifier.kind is SpecifierKind.MASTER:
            entry = self._select_master()
        elif specifier.kind is SpecifierKind.LATEST:
            entry = self._select_latest()
        else:
            entry = self._select_matching(specifier)

        specific_version = entry.specific_version
        if not specific_version:
            raise FormatError(f"Index entry '{entry.key}' has no version")

        artifact = entry.artifacts.get(target)
        if artifact is None:
            raise TargetUnsupportedError(specific_version, target)

        logger.debug(
            f"Resolved {specifier} to {specific_version} ({artifact.tarball})"
        )
        return ResolvedRelease(
            specific_version=specific_version,
            tarball_url=artifact.tarball,
            shasum=artifact.shasum,
            key=entry.key,
        )

    def _select_master(self) -> ReleaseEntry:
        entry = self._entries.get(MASTER)
        if entry is None:
            raise FormatError("Release index has no 'master' entry")
        return entry

    def _select_latest(self) -> ReleaseEntry:
        releases = [e for key, e in self._entries.items() if key != MASTER]
        if not releases:
            raise VersionNotFoundError("Latest version could not be found")

        for entry in releases:
            if entry.date is None:
                raise FormatError(f"Index entry '{entry.key}' has no release date")

        # ISO-8601 dates compare chronologically as strings; equal dates fall
        # back to the highest version key so the result never depends on order
        return max(releases, key=lambda e: (e.date, _key_order(e.key)))

    def _select_matching(self, specifier: VersionSpecifier) -> ReleaseEntry:
        # Keys that are not semantic versions ("master") never match
        candidates = []
        for key in self._entries:
            parsed = SemanticVersion.parse(key)
            if parsed is not None and specifier.matches(parsed):
                candidates.append((parsed, key))

        if not candidates:
            raise VersionNotFoundError(f"Version {specifier} could not be found")

        _, key = max(candidates, key=lambda c: (c[0].sort_key(), c[1]))
        return self._entries[key]


class VersionIndex:
    """
    Fetches the remote release index and resolves specifiers against it.

    The index is fetched on every resolve() call; nothing is cached between
    calls.
    """

    def __init__(
        self,
        index_url: str = DEFAULT_INDEX_URL,
        session: Optional[requests.Session] = None,
        timeout: int = 30,
    ):
        """
        Initialize the index client.

        Args:
            index_url: URL of the JSON release index
            session: Optional requests session
            timeout: Request timeout in seconds
        """
        self.index_url = index_url
        self.session = session or requests.Session()
        self.timeout = timeout

    def fetch(self) -> ReleaseIndex:
        """
        Download and decode the release index.

        Raises:
            ConnectivityError: If the index cannot be retrieved
            FormatError: If the response is not a valid index document
        """
        logger.debug(f"Fetching release index from {self.index_url}")
        try:
            response = self.session.get(self.index_url, timeout=self.timeout)
        except (ConnectionError, Timeout) as e:
            raise ConnectivityError(f"Cannot connect to {self.index_url}: {e}") from e
        except RequestException as e:
            raise ConnectivityError(f"Request to {self.index_url} failed: {e}") from e

        if not response.ok:
            raise ConnectivityError(
                f"Release index request returned status {response.status_code}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise FormatError(f"Release index could not be parsed: {e}") from e

        return ReleaseIndex.from_json(data)

    def resolve(self, specifier: VersionSpecifier, target: str) -> ResolvedRelease:
        """Fetch the index and resolve specifier for target."""
        return self.fetch().resolve(specifier, target)


def _decode_entry(key: str, value: Any) -> ReleaseEntry:
    if not isinstance(value, dict):
        raise FormatError(f"Index entry '{key}' is not an object")

    date = value.get("date")
    if date is not None and not isinstance(date, str):
        raise FormatError(f"Index entry '{key}' has a non-string date")

    if key == MASTER:
        specific_version = value.get("version")
        if specific_version is not None and not isinstance(specific_version, str):
            raise FormatError("Index entry 'master' has a non-string version")
    else:
        specific_version = key

    artifacts = {}
    for name, item in value.items():
        if not isinstance(item, dict) or "tarball" not in item:
            continue
        tarball = item.get("tarball")
        shasum = item.get("shasum")
        if not isinstance(tarball, str) or not isinstance(shasum, str):
            raise FormatError(f"Index entry '{key}/{name}' lacks tarball or shasum")
        if not tarball.strip() or not shasum.strip():
            raise FormatError(
                f"Index entry '{key}/{name}' has an empty tarball or shasum"
            )
        size = item.get("size")
        artifacts[name] = ReleaseArtifact(
            tarball=tarball,
            shasum=shasum,
            size=int(size) if str(size).isdigit() else None,
        )

    return ReleaseEntry(
        key=key, specific_version=specific_version, date=date, artifacts=artifacts
    )


def _key_order(key: str) -> tuple:
    parsed = SemanticVersion.parse(key)
    if parsed is None:
        return (0, (), key)
    return (1, parsed.sort_key(), key)
