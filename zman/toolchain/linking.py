"""
zman/toolchain/linking.py

Default symlink and drop-in shim management.

This module exposes an installed toolchain through a stable 'zig' symlink in
a link directory (usually ~/.local/bin) and optionally writes small shim
scripts such as 'zig-cc' and 'zig-ar' that forward to 'zig cc' and 'zig ar',
so Zig can be used as a drop-in C/C++ toolchain.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from zman.core.exceptions import StorageError, SymlinkPermissionError

logger = logging.getLogger(__name__)

LINK_NAME = "zig"

# Archiver, C compiler, C++ compiler, DLL tool, librarian, index tool,
# object-copy tool, resource compiler
DROPIN_TOOLS = ("ar", "cc", "c++", "dlltool", "lib", "ranlib", "objcopy", "rc")

DROPIN_TEMPLATE = '#!/bin/sh\nexec "{zig}" {tool} "$@"\n'


@dataclass
class LinkResult:
    """Outcome of linking a toolchain as the default."""

    link_path: Path
    """Path of the 'zig' symlink"""

    target_path: Path
    """Binary the symlink points at"""

    dropins: List[Path] = field(default_factory=list)
    """Shim scripts written next to the symlink"""

    replaced: bool = False
    """Whether a previous default had to be removed first"""

    on_path: bool = True
    """Whether the link directory is in the search path"""


class LinkManager:
    """Manages the default 'zig' symlink and its drop-in shims."""

    def __init__(self, path_env: Optional[str] = None):
        """
        Initialize link manager.

        Args:
            path_env: Search path used for the PATH advisory
                (defaults to the PATH environment variable at link time)
        """
        self.path_env = path_env

    def link(
        self, install_dir: Path, link_dir: Path, create_dropins: bool = True
    ) -> LinkResult:
        """
        Point link_dir/zig at install_dir/zig.

        An existing link is removed together with any drop-in shims and
        creation is attempted once more; a second failure propagates.

        Args:
            install_dir: Installed version directory containing 'zig'
            link_dir: Directory that holds the default symlink
            create_dropins: Also write zig-<tool> shim scripts

        Returns:
            LinkResult describing what was created

        Raises:
            SymlinkPermissionError: If the link directory is not writable
            StorageError: If the link cannot be created for another reason
        """
        install_dir = Path(install_dir).absolute()
        link_dir = Path(link_dir).absolute()
        target = install_dir / LINK_NAME
        link_path = link_dir / LINK_NAME

        try:
            link_dir.mkdir(parents=True, exist_ok=True)
        except PermissionError as e:
            raise self._permission_error(link_dir) from e
        except OSError as e:
            raise StorageError(f"Cannot create link directory {link_dir}: {e}") from e

        replaced = False
        if not self._try_symlink(target, link_path):
            logger.debug(f"Replacing existing link at {link_path}")
            self.remove_link(link_dir)
            replaced = True
            if not self._try_symlink(target, link_path):
                raise StorageError(
                    f"Cannot create symlink at {link_path}: path still exists"
                )

        dropins = self.write_dropins(link_dir) if create_dropins else []

        if dropins:
            logger.info(f"Zig added at {link_dir} with drop-in tools")
        else:
            logger.info(f"Zig added at {link_dir}")

        on_path = self.is_on_path(link_dir)
        if not on_path:
            logger.warning(f"{link_dir} is not in PATH. Add it to PATH to use zig")

        return LinkResult(
            link_path=link_path,
            target_path=target,
            dropins=dropins,
            replaced=replaced,
            on_path=on_path,
        )

    def _try_symlink(self, target: Path, link_path: Path) -> bool:
        """
        Attempt to create the symlink once.

        Returns:
            True if created, False if something already exists at link_path
        """
        try:
            os.symlink(target, link_path)
        except FileExistsError:
            return False
        except PermissionError as e:
            raise self._permission_error(link_path.parent) from e
        except OSError as e:
            raise StorageError(f"Cannot create symlink at {link_path}: {e}") from e

        logger.debug(f"Created symlink: {link_path} -> {target}")
        return True

    @staticmethod
    def _permission_error(link_dir: Path) -> SymlinkPermissionError:
        return SymlinkPermissionError(
            f"Permission denied to create symlink at {link_dir}. "
            "Do NOT run as root. Try passing a custom symlink directory "
            "with the --link option"
        )

    def write_dropins(self, link_dir: Path) -> List[Path]:
        """
        Write one executable shim per drop-in tool into link_dir.

        Each shim runs the 'zig' symlink with the tool name as first argument.

        Returns:
            Paths of the written shims

        Raises:
            SymlinkPermissionError: If link_dir is not writable
            StorageError: If a shim cannot be written
        """
        link_dir = Path(link_dir)
        zig = link_dir.absolute() / LINK_NAME
        written = []

        for tool in DROPIN_TOOLS:
            path = link_dir / f"{LINK_NAME}-{tool}"
            try:
                path.write_text(DROPIN_TEMPLATE.format(zig=zig, tool=tool))
                path.chmod(0o755)
            except PermissionError as e:
                raise self._permission_error(link_dir) from e
            except OSError as e:
                raise StorageError(f"Cannot write drop-in {path}: {e}") from e
            written.append(path)

        logger.debug(f"Wrote {len(written)} drop-in shims to {link_dir}")
        return written

    def remove_link(self, link_dir: Path) -> None:
        """
        Remove the 'zig' link and every drop-in shim from link_dir.

        Missing entries are ignored.

        Raises:
            SymlinkPermissionError: If an entry cannot be removed for lack of permission
            StorageError: If 'zig' is a directory or removal fails otherwise
        """
        link_dir = Path(link_dir)
        link_path = link_dir / LINK_NAME

        if link_path.is_dir() and not link_path.is_symlink():
            raise StorageError(
                f"Refusing to replace {link_path}: it is a directory, not a link"
            )

        names = [LINK_NAME] + [f"{LINK_NAME}-{tool}" for tool in DROPIN_TOOLS]
        for name in names:
            path = link_dir / name
            try:
                path.unlink()
            except FileNotFoundError:
                continue
            except PermissionError as e:
                raise self._permission_error(link_dir) from e
            except OSError as e:
                raise StorageError(f"Cannot remove {path}: {e}") from e
            logger.debug(f"Removed {path}")

    def current_target(self, link_dir: Path) -> Optional[Path]:
        """
        Resolve the current default.

        Returns:
            The path link_dir/zig points at, or None if it is not a symlink
        """
        link_path = Path(link_dir) / LINK_NAME
        if not link_path.is_symlink():
            return None

        target = Path(os.readlink(link_path))
        if not target.is_absolute():
            target = link_path.parent / target
        return target

    def is_on_path(self, link_dir: Path) -> bool:
        """Check whether link_dir is one of the search path entries."""
        path_env = self.path_env
        if path_env is None:
            path_env = os.environ.get("PATH", "")

        wanted = os.path.normcase(os.path.abspath(link_dir))
        for entry in path_env.split(os.pathsep):
            if not entry:
                continue
            entry = os.path.expanduser(entry)
            if os.path.normcase(os.path.abspath(entry)) == wanted:
                return True
        return False
