"""
Version parsing for zman.

Provides a Semantic Versioning 2.0 parser/comparator and the user-facing
version specifier ('latest', 'master', an exact semantic version or a
'major.minor' series).
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union

from zman.core.exceptions import InvalidVersionError

_SEMVER_RE = re.compile(
    r"^(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<prerelease>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+(?P<build>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$"
)

# "0" or "0.11": every release in that series
_PARTIAL_RE = re.compile(r"^(0|[1-9]\d*)(?:\.(0|[1-9]\d*))?$")

MASTER = "master"
LATEST = "latest"


class SemanticVersion:
    """
    Semantic version parser and comparator.

    Supports the full SemVer 2.0 grammar: major.minor.patch with optional
    pre-release and build metadata. Build metadata does not take part in
    equality or ordering.

    Example:
        >>> v1 = SemanticVersion("0.12.0")
        >>> v2 = SemanticVersion("0.13.0-dev.46+3648d7df1")
        >>> v2 > v1
        True
    """

    def __init__(self, version_string: str):
        """
        Parse version string.

        Args:
            version_string: Version such as "0.11.0" or "0.12.0-dev.3180+83e578a18"

        Raises:
            InvalidVersionError: If version format is invalid
        """
        self.original = version_string
        match = _SEMVER_RE.match(version_string)
        if not match:
            raise InvalidVersionError(
                f"Invalid version format: {version_string!r}. "
                "Expected major.minor.patch[-prerelease][+build]"
            )

        self.major = int(match.group("major"))
        self.minor = int(match.group("minor"))
        self.patch = int(match.group("patch"))
        prerelease = match.group("prerelease")
        self.prerelease: Tuple[str, ...] = (
            tuple(prerelease.split(".")) if prerelease else ()
        )
        self.build: Optional[str] = match.group("build")

    @classmethod
    def parse(cls, version_string: str) -> Optional["SemanticVersion"]:
        """Parse a version, returning None instead of raising."""
        try:
            return cls(version_string)
        except InvalidVersionError:
            return None

    def _precedence_key(self) -> tuple:
        # A release sorts above any of its pre-releases
        if not self.prerelease:
            pre_key: tuple = ((1,),)
        else:
            pre_key = tuple(
                (0, 0, int(part), "") if part.isdigit() else (0, 1, 0, part)
                for part in self.prerelease
            )
            pre_key = ((0,),) + pre_key
        return (self.major, self.minor, self.patch, pre_key)

    def sort_key(self) -> tuple:
        """Total ordering key that also breaks ties on build metadata."""
        return (self._precedence_key(), self.build or "")

    def __lt__(self, other: "SemanticVersion") -> bool:
        return self._precedence_key() < other._precedence_key()

    def __le__(self, other: "SemanticVersion") -> bool:
        return self._precedence_key() <= other._precedence_key()

    def __gt__(self, other: "SemanticVersion") -> bool:
        return self._precedence_key() > other._precedence_key()

    def __ge__(self, other: "SemanticVersion") -> bool:
        return self._precedence_key() >= other._precedence_key()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self._precedence_key() == other._precedence_key()

    def __hash__(self) -> int:
        return hash(self._precedence_key())

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += "-" + ".".join(self.prerelease)
        if self.build:
            text += "+" + self.build
        return text

    def __repr__(self) -> str:
        return f"SemanticVersion('{self}')"
class SpecifierKind(Enum):
    """Kinds of version specifier."""

    EXACT = "exact"
    SERIES = "series"
    LATEST = "latest"
    MASTER = "master"


@dataclass(frozen=True)
class VersionSpecifier:
    """
    A user-supplied version selection.

    Attributes:
        kind: EXACT, SERIES, LATEST or MASTER
        version: The requested version (only for EXACT)
        series: Leading (major,) or (major, minor) numbers (only for SERIES)
    """

    kind: SpecifierKind
    version: Optional[SemanticVersion] = None
    series: Tuple[int, ...] = ()

    @classmethod
    def parse(cls, text: Union[str, "VersionSpecifier"]) -> "VersionSpecifier":
        """
        Parse a specifier from command-line text.

        Args:
            text: 'latest', 'master' (any case), a semantic version, or a
                'major.minor' / 'major' series, each with an optional leading 'v'

        Returns:
            VersionSpecifier

        Raises:
            InvalidVersionError: If text is none of the above

        Example:
            >>> VersionSpecifier.parse("v0.11.0").version
            SemanticVersion('0.11.0')
            >>> VersionSpecifier.parse("0.11").series
            (0, 11)
        """
        if isinstance(text, VersionSpecifier):
            return text

        value = text.strip()
        if value.lower() == LATEST:
            return cls(SpecifierKind.LATEST)
        if value.lower() == MASTER:
            return cls(SpecifierKind.MASTER)
        if value[:1] in ("v", "V"):
            value = value[1:]

        partial = _PARTIAL_RE.match(value)
        if partial:
            series = tuple(int(part) for part in partial.groups() if part is not None)
            return cls(SpecifierKind.SERIES, series=series)
        return cls(SpecifierKind.EXACT, SemanticVersion(value))

    def matches(self, candidate: SemanticVersion) -> bool:
        """
        Check whether a release version satisfies this specifier.

        EXACT compares under semantic-version equality, and also compares
        build metadata when the specifier carries some. SERIES accepts
        releases whose leading numbers equal the series, never pre-releases.
        LATEST and MASTER are not version predicates and match nothing.
        """
        if self.kind is SpecifierKind.EXACT:
            if candidate != self.version:
                return False
            return self.version.build is None or candidate.build == self.version.build
        if self.kind is SpecifierKind.SERIES:
            if candidate.prerelease:
                return False
            leading = (candidate.major, candidate.minor)[: len(self.series)]
            return leading == self.series
        return False

    @property
    def is_master(self) -> bool:
        return self.kind is SpecifierKind.MASTER

    def __str__(self) -> str:
        if self.kind is SpecifierKind.EXACT:
            return str(self.version)
        if self.kind is SpecifierKind.SERIES:
            return ".".join(str(part) for part in self.series)
        return self.kind.value
