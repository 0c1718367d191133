"""Output formatting, progress indicators and logging setup for CLI operations.

This module provides:
- ProgressIndicator: TTY-aware progress indicators for long operations
- handle_error: Formatted error messages with context and optional stack traces
- configure_logging: Root logger setup from --log-level and --log-file
"""

import logging
import sys
import traceback
from pathlib import Path
from typing import TextIO

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class ProgressIndicator:
    """Simple progress indicator for CLI operations.

    Automatically detects TTY to disable progress indicators when output
    is redirected to a file or pipe. Progress messages are written to
    stderr to keep stdout clean for actual output.

    Example:
        progress = ProgressIndicator(enabled=not quiet)
        progress.start("Importing tags.csv")
        # ... do work ...
        progress.success("Imported 42 rows")
    """

    def __init__(self, enabled: bool = True, stream: TextIO | None = None):
        stream = stream or sys.stderr
        # Disable if explicitly disabled or if output is redirected (not a TTY)
        self.enabled = enabled and stream.isatty()
        self.stream = stream

    def start(self, message: str) -> None:
        if self.enabled:
            self.stream.write(f"{message}... ")
            self.stream.flush()

    def success(self, message: str) -> None:
        """Display success message with checkmark."""
        if self.enabled:
            self.stream.write("✓\n")
        print(message, file=sys.stderr)

    def error(self, message: str) -> None:
        """Display error message with cross symbol."""
        if self.enabled:
            self.stream.write("✗\n")
        print(f"Error: {message}", file=sys.stderr)


def handle_error(error: Exception, verbose: bool = False) -> None:
    """Format and display error message with context.

    Displays error messages to stderr with optional context fields from
    CatalogError exceptions. When verbose mode is enabled, also displays
    the full stack trace.

    Args:
        error: Exception to display
        verbose: Whether to show stack trace (default False)
    """
    message = getattr(error, "message", None) or str(error)
    print(f"Error: {message}", file=sys.stderr)

    # CatalogError carries a context dict
    context = getattr(error, "context", None)
    if context:
        print("Context:", file=sys.stderr)
        for key, value in context.items():
            print(f"  {key}: {value}", file=sys.stderr)

    if verbose:
        print("\nStack trace:", file=sys.stderr)
        traceback.print_exc(file=sys.stderr)


def configure_logging(log_level: str = "warning", log_file: Path | None = None) -> None:
    """Configure the root logger for a CLI run.

    Log records go to stderr, or to log_file when given. Calling this again
    replaces the handlers installed by the previous call.

    Raises:
        ValueError: If log_level is not a logging level name
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(
            f"Invalid log level '{log_level}'. Use debug, info, warning or error."
        )

    handler: logging.Handler
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_file, encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stderr)

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=[handler], force=True)
