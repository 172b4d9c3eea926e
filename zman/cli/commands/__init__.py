"""
CLI command implementations.

Each module exposes a run(args) function returning the process exit code.
"""
