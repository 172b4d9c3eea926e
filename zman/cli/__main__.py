"""
Entry point for running zman CLI as a module.

Usage: python -m zman.cli [command] [options]
"""

from .parser import main

if __name__ == "__main__":
    main()
