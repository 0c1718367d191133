"""Reader registry for file row sources.

This module provides a registry pattern for dynamic discovery and instantiation
of file readers. Readers can be registered by name and retrieved at runtime,
enabling the CLI to load any supported tabular format without hardcoding
dependencies.

The registry supports:
- Registration of reader implementations
- Retrieval of reader instances by name
- Listing available readers with descriptions
- Inferring a reader name from a file extension
"""

from pathlib import Path

from catalogdq.core.sources import CsvReader, FileReader, JsonReader, NdjsonReader, ParquetReader

# Registry dictionary mapping reader names to their classes
READERS: dict[str, type[FileReader]] = {}

EXTENSION_MAP = {
    ".csv": "csv",
    ".json": "json",
    ".ndjson": "ndjson",
    ".jsonl": "ndjson",
    ".parquet": "parquet",
    ".pq": "parquet",
}


def register_reader(name: str, cls: type[FileReader]) -> None:
    """Register a reader implementation.

    Args:
        name: Name to register the reader under (e.g., "csv", "json")
        cls: Reader class to register

    Example:
        >>> from catalogdq.cli.registry import register_reader
        >>>
        >>> class TsvReader:
        ...     format = "tsv"
        ...     def read(self, path):
        ...         # ... implementation ...
        ...         pass
        >>>
        >>> register_reader("tsv", TsvReader)
    """
    READERS[name] = cls


def get_reader(name: str) -> FileReader:
    """Get reader instance by name.

    Args:
        name: Name of the reader to retrieve

    Returns:
        Instance of the requested reader

    Raises:
        KeyError: If reader name is not registered, with message listing
                 available readers
    """
    if name not in READERS:
        available = ", ".join(sorted(READERS.keys())) if READERS else "none"
        raise KeyError(f"Unknown reader '{name}'. Available: {available}")
    return READERS[name]()


def list_readers() -> dict[str, str]:
    """List available readers with descriptions.

    Returns:
        Dictionary mapping reader names to their descriptions (from docstrings)
    """
    return {
        name: cls.__doc__ or "No description"
        for name, cls in sorted(READERS.items())
    }


def infer_reader(path: Path) -> str:
    """Infer reader type from file extension.

    Raises:
        ValueError: If extension is not recognized
    """
    suffix = path.suffix.lower()
    if suffix not in EXTENSION_MAP:
        raise ValueError(
            f"Cannot infer reader type from extension '{suffix}'. "
            f"Please specify --reader explicitly."
        )
    return EXTENSION_MAP[suffix]


register_reader("csv", CsvReader)
register_reader("parquet", ParquetReader)
register_reader("json", JsonReader)
register_reader("ndjson", NdjsonReader)
