"""
List command implementation.

Lists installed Zig versions and marks the current default.
"""

import logging

from zman.cli.utils import resolve_config
from zman.toolchain.installed import list_installed
from zman.toolchain.linking import LinkManager

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the list command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    config = resolve_config(args)
    default_target = LinkManager().current_target(config.link_dir)
    installed = list_installed(config.install_dir, default_target)

    if not installed:
        print(f"No Zig versions installed in {config.install_dir}")
        return 0

    for version in installed:
        marker = "*" if version.is_default else " "
        print(f"{marker} {version.name}")
    return 0
