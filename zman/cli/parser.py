"""
zman command-line parser and dispatcher.

Subcommands live in zman.cli.commands, one module each, and are imported
only when invoked.
"""

import argparse
import importlib
import logging
import sys
from pathlib import Path
from typing import List, Optional

from zman import __version__ as _fallback_version
from zman.core.exceptions import ZmanError

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("zman")
except PackageNotFoundError:
    __version__ = _fallback_version

logger = logging.getLogger(__name__)

VERSION_HELP = (
    "Exact version number, a series such as 0.11 for its newest release, "
    "'latest' for latest release or 'master' for latest build"
)

# Subcommand name -> implementing module
COMMANDS = {
    "default": "zman.cli.commands.default",
    "fetch": "zman.cli.commands.fetch",
    "clean": "zman.cli.commands.clean",
    "list": "zman.cli.commands.list",
    "keep": "zman.cli.commands.keep",
    "run": "zman.cli.commands.run",
}

EXIT_INTERRUPTED = 130


def _add_location_options(parser: argparse.ArgumentParser, link: bool) -> None:
    parser.add_argument(
        "--install",
        type=Path,
        metavar="DIR",
        help="Directory holding installed versions (overrides install_dir)",
    )
    if link:
        parser.add_argument(
            "--link",
            type=Path,
            metavar="DIR",
            help="Directory for the default zig symlink (overrides link_dir)",
        )


class CLI:
    """zman command-line interface."""

    def __init__(self):
        self.parser = self._build_parser()

    def _build_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog="zman",
            description="zman - download, verify and switch Zig toolchains",
            epilog='Run "zman COMMAND --help" for the options of a command',
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
        parser.add_argument(
            "--version", action="version", version=f"zman {__version__}"
        )
        verbosity = parser.add_mutually_exclusive_group()
        verbosity.add_argument(
            "-v", "--verbose", action="store_true", help="Show debug output"
        )
        verbosity.add_argument(
            "-q", "--quiet", action="store_true", help="Only show errors"
        )
        parser.add_argument(
            "--config",
            type=Path,
            metavar="PATH",
            help="YAML configuration file (default: ~/.config/zman/config.yaml)",
        )

        commands = parser.add_subparsers(
            dest="command", metavar="COMMAND", help="Command to run"
        )

        default = commands.add_parser(
            "default",
            help="Download a version if needed and make it the default zig",
        )
        default.add_argument("version", help=VERSION_HELP)
        _add_location_options(default, link=True)
        default.add_argument(
            "--no-dropins",
            action="store_true",
            help="Skip the zig-cc, zig-c++, zig-ar, ... drop-in scripts",
        )

        fetch = commands.add_parser(
            "fetch", help="Download a version without changing the default"
        )
        fetch.add_argument("version", help=VERSION_HELP)
        _add_location_options(fetch, link=False)

        listing = commands.add_parser(
            "list", help="List installed versions, marking the default with '*'"
        )
        _add_location_options(listing, link=True)

        clean = commands.add_parser(
            "clean",
            help="Remove installed versions",
            description=(
                "Remove every version except the default and master, "
                "or only the given version"
            ),
        )
        clean.add_argument("version", nargs="?", help="Version to remove")

        keep = commands.add_parser(
            "keep", help="Protect a version from the clean command"
        )
        keep.add_argument("version", help="Version to protect")

        run = commands.add_parser(
            "run", help="Run a specific installed version of Zig"
        )
        run.add_argument("version", help="Version to run")
        run.add_argument(
            "args", nargs=argparse.REMAINDER, help="Arguments passed on to zig"
        )

        return parser

    def parse_args(self, args: Optional[List[str]] = None) -> argparse.Namespace:
        """Parse arguments (sys.argv when args is None)."""
        return self.parser.parse_args(args)

    def run(self, args: Optional[List[str]] = None) -> int:
        """
        Parse arguments, configure logging and run the selected command.

        Returns:
            Process exit code: 0 on success, 1 on a zman error or missing
            command, 130 when interrupted
        """
        parsed = self.parse_args(args)
        configure_logging(verbose=parsed.verbose, quiet=parsed.quiet)

        if parsed.command is None:
            self.parser.print_help()
            return 1

        try:
            return self._dispatch(parsed)
        except KeyboardInterrupt:
            logger.info("Interrupted")
            return EXIT_INTERRUPTED
        except ZmanError as e:
            logger.error(f"Error: {e}")
            logger.debug("Details:", exc_info=True)
            return 1

    def _dispatch(self, args: argparse.Namespace) -> int:
        module_name = COMMANDS.get(args.command)
        if module_name is None:
            logger.error(f"Unknown command: {args.command}")
            return 1

        logger.debug(f"Running {args.command} from {module_name}")
        return importlib.import_module(module_name).run(args)


def configure_logging(verbose: bool = False, quiet: bool = False) -> None:
    """
    Route log records to stderr at the level the flags ask for.

    Normal runs print bare messages at INFO; --verbose adds level and logger
    names at DEBUG; --quiet keeps errors only.
    """
    if verbose:
        level, fmt = logging.DEBUG, "%(levelname)s [%(name)s] %(message)s"
    elif quiet:
        level, fmt = logging.ERROR, "%(levelname)s: %(message)s"
    else:
        level, fmt = logging.INFO, "%(message)s"

    logging.basicConfig(level=level, format=fmt, force=True)
    # urllib3 connection chatter is only useful when debugging
    logging.getLogger("urllib3").setLevel(logging.DEBUG if verbose else logging.WARNING)


def main(args: Optional[List[str]] = None):
    """Console entry point."""
    sys.exit(CLI().run(args))


if __name__ == "__main__":
    main()
