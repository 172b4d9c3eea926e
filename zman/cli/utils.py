"""
Shared utilities for CLI commands.

Provides configuration resolution, orchestrator construction and console
output helpers used by several commands.
"""

import logging
import sys
from dataclasses import replace
from typing import Callable, Optional

import requests

from zman.config import ZmanConfig, load_config
from zman.core.download import DownloadProgress
from zman.core.platform import detect_target
from zman.toolchain.index import VersionIndex
from zman.toolchain.installer import InstallOrchestrator

logger = logging.getLogger(__name__)


# ============================================================================
# Configuration Management
# ============================================================================


def resolve_config(args) -> ZmanConfig:
    """
    Load the configuration file and apply command-line overrides.

    Args:
        args: Parsed arguments; 'install', 'link' and 'no_dropins' are
            honoured when the command defines them

    Returns:
        ZmanConfig

    Raises:
        ConfigError: If the configuration file is invalid
    """
    config = load_config(getattr(args, "config", None))

    overrides = {}
    if getattr(args, "install", None):
        overrides["install_dir"] = args.install.expanduser()
    if getattr(args, "link", None):
        overrides["link_dir"] = args.link.expanduser()
    if getattr(args, "no_dropins", False):
        overrides["dropins"] = False

    if overrides:
        logger.debug(f"Command-line overrides: {overrides}")
        config = replace(config, **overrides)
    return config


def create_orchestrator(config: ZmanConfig, quiet: bool = False) -> InstallOrchestrator:
    """
    Build an InstallOrchestrator from resolved configuration.

    Args:
        config: Resolved configuration
        quiet: Suppress the download progress line

    Returns:
        InstallOrchestrator targeting the current platform
    """
    session = requests.Session()
    target = detect_target().triple()
    logger.debug(f"Target: {target}")

    return InstallOrchestrator(
        install_root=config.install_dir,
        target=target,
        link_dir=config.link_dir,
        create_dropins=config.dropins,
        index=VersionIndex(config.index_url, session=session, timeout=config.timeout),
        session=session,
        timeout=config.timeout,
        progress_callback=None if quiet else make_progress_printer(),
    )


# ============================================================================
# User Interface / Output Formatting
# ============================================================================


def make_progress_printer(stream=None) -> Callable[[DownloadProgress], None]:
    """
    Create a progress callback that redraws a single console line.

    The line is terminated once the download reaches its declared size.
    """
    out = stream or sys.stderr

    def show_progress(progress: DownloadProgress):
        print(f"\r  Downloading: {progress}", end="", file=out, flush=True)
        if progress.total_bytes and progress.bytes_downloaded >= progress.total_bytes:
            print(file=out)

    return show_progress


def print_error(message: str, details: Optional[str] = None):
    """
    Print error message to stderr in consistent format.

    Args:
        message: Main error message
        details: Optional additional details
    """
    print(f"ERROR: {message}", file=sys.stderr)
    if details:
        print(f"  {details}", file=sys.stderr)
