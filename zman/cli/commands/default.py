"""
Default command implementation.

Downloads a Zig version if needed and links it as the default 'zig'.
"""

import logging

from zman.cli.utils import create_orchestrator, resolve_config

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the default command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    config = resolve_config(args)
    logger.debug(f"Install root: {config.install_dir}, link dir: {config.link_dir}")

    orchestrator = create_orchestrator(config, quiet=args.quiet)
    result = orchestrator.install(args.version)

    print(f"Zig {result.version} is now the default ({result.link.link_path})")
    return 0
