"""
Platform detection for zman.

This module detects the current operating system and CPU architecture and
renders them as the target triple used by the Zig release index
(e.g. 'x86_64-linux', 'aarch64-macos').

Usage:
    from zman.core.platform import detect_target

    target = detect_target()
    print(f"Target: {target.triple()}")
"""

import functools
import platform
from dataclasses import dataclass

from .exceptions import UnsupportedPlatformError


@dataclass(frozen=True)
class TargetInfo:
    """
    Target architecture/OS pair.

    Attributes:
        arch: CPU architecture in index naming ('x86_64', 'aarch64', 'x86', ...)
        os: Operating system in index naming ('linux', 'macos', 'windows', ...)
    """

    arch: str
    os: str

    def triple(self) -> str:
        """
        Get the index key for this target.

        Example:
            >>> TargetInfo('x86_64', 'linux').triple()
            'x86_64-linux'
        """
        return f"{self.arch}-{self.os}"

    def __str__(self) -> str:
        return self.triple()


# platform.system() -> release index OS name
_OS_NAMES = {
    "linux": "linux",
    "darwin": "macos",
    "windows": "windows",
    "freebsd": "freebsd",
    "netbsd": "netbsd",
    "openbsd": "openbsd",
    "dragonfly": "dragonfly",
}

# platform.machine() -> release index architecture name
_ARCH_NAMES = {
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "x64": "x86_64",
    "aarch64": "aarch64",
    "arm64": "aarch64",
    "i386": "x86",
    "i486": "x86",
    "i586": "x86",
    "i686": "x86",
    "x86": "x86",
    "ppc64le": "powerpc64le",
    "ppc64": "powerpc64",
}


@functools.lru_cache(maxsize=1)
def detect_target() -> TargetInfo:
    """
    Detect the target of the running interpreter.

    Detection runs once per process; the result is cached.

    Raises:
        UnsupportedPlatformError: If the operating system is not one Zig
            publishes builds for
    """
    return TargetInfo(arch=_detect_architecture(), os=_detect_os())


def _detect_os() -> str:
    system = platform.system().lower()
    try:
        return _OS_NAMES[system]
    except KeyError:
        raise UnsupportedPlatformError(system) from None


def _detect_architecture() -> str:
    machine = platform.machine().lower()
    if machine in _ARCH_NAMES:
        return _ARCH_NAMES[machine]
    if machine.startswith("arm"):
        return "arm"
    # riscv64, s390x, loongarch64 are spelled the same in the index
    return machine
