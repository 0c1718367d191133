"""Exit code constants for CLI commands.

This module defines standard exit codes for different error conditions,
following Unix conventions where 0 indicates success and non-zero values
indicate different types of failures.

Exit codes:
    0: SUCCESS - Operation completed successfully
    1: UNEXPECTED_ERROR - Unexpected/unhandled exception
    2: VALIDATION_ERROR - Rows rejected or Error findings reported
    3: READER_ERROR - Input file reading/parsing failure
    4: IMPORT_ERROR - Import job ended Failed
    5: ENTITY_TYPE_ERROR - Unsupported entity type
    6: CONFIG_ERROR - Configuration file or argument error
"""


class ExitCode:
    """Standard exit codes for CLI commands.

    These exit codes enable scripts to handle different failure types
    appropriately. All codes follow Unix conventions.

    Example:
        >>> from catalogdq.cli.exit_codes import ExitCode
        >>> import sys
        >>>
        >>> try:
        ...     # ... operation ...
        ...     sys.exit(ExitCode.SUCCESS)
        ... except RowSourceError:
        ...     sys.exit(ExitCode.READER_ERROR)
    """

    SUCCESS = 0
    """Operation completed successfully."""

    UNEXPECTED_ERROR = 1
    """Unexpected or unhandled exception occurred."""

    VALIDATION_ERROR = 2
    """At least one row was rejected or carried an Error finding."""

    READER_ERROR = 3
    """Input file reading or parsing failed."""

    IMPORT_ERROR = 4
    """The import job failed as a whole."""

    ENTITY_TYPE_ERROR = 5
    """The requested entity type is not a catalog entity type."""

    CONFIG_ERROR = 6
    """Configuration file or argument error."""
