"""
Run command implementation.

Runs a specific installed version with the given arguments.
"""

import logging

from zman.cli.utils import print_error

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the run command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (1, the command is not implemented yet)
    """
    logger.debug(f"Arguments: {args}")
    print_error("Not implemented", "zman run is not available in this release")
    return 1
