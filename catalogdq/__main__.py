"""CLI entry point for catalogdq.

Enables invocation via `python -m catalogdq`.
"""

import sys

from catalogdq.cli.app import app

if __name__ == "__main__":
    exit_code = app()
    sys.exit(exit_code if exit_code is not None else 0)
