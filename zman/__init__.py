"""
zman - Zig version manager.

Resolves a version specifier ('latest', 'master' or an exact version) against
the Zig release index, downloads and verifies the matching archive, installs
it into a per-version directory and links it as the default 'zig'.
"""

__version__ = "0.1.0"
