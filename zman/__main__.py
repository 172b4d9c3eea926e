"""
Entry point for running zman as a module.

Usage: python -m zman [command] [options]
"""

from zman.cli.parser import main

if __name__ == "__main__":
    main()
