"""
Fetch command implementation.

Downloads and installs a Zig version without changing the default.
"""

import logging

from zman.cli.utils import create_orchestrator, resolve_config

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the fetch command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    config = resolve_config(args)
    orchestrator = create_orchestrator(config, quiet=args.quiet)
    result = orchestrator.fetch(args.version)

    if not result.was_cached:
        print(f"Zig {result.version} installed at {result.install_path}")
    return 0
