"""Row sources backed by polars.

The data-quality core never parses file bytes itself. These row sources sit
at the edge: a file reader loads a tabular file into a polars DataFrame and
the row source yields its rows as column-name to value mappings, header row
excluded, in file order.

Readers:
    - CsvReader: Comma-separated text, every cell kept as text
    - ParquetReader: Apache Parquet
    - JsonReader: JSON array of objects
    - NdjsonReader: Newline-delimited JSON objects
"""

import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Any, Protocol

import polars as pl

from catalogdq.core.exceptions import RowSourceError

logger = logging.getLogger(__name__)


class FileReader(Protocol):
    """Protocol for readers that load a file into a DataFrame."""

    format: str

    def read(self, path: Path) -> pl.DataFrame:
        ...


class CsvReader:
    """Comma-separated values; cells are read as text, empty cells as null."""

    format = "csv"

    def read(self, path: Path) -> pl.DataFrame:
        # No schema inference: imported cells stay exactly as written
        return pl.read_csv(path, infer_schema=False)


class ParquetReader:
    """Apache Parquet files with their stored column types."""

    format = "parquet"

    def read(self, path: Path) -> pl.DataFrame:
        return pl.read_parquet(path)


class JsonReader:
    """A JSON array of row objects."""

    format = "json"

    def read(self, path: Path) -> pl.DataFrame:
        return pl.read_json(path)


class NdjsonReader:
    """Newline-delimited JSON, one row object per line."""

    format = "ndjson"

    def read(self, path: Path) -> pl.DataFrame:
        return pl.read_ndjson(path)


class DataFrameRowSource:
    """Row source over an in-memory DataFrame.

    Example:
        >>> source = DataFrameRowSource(pl.DataFrame({"Tag": ["FT-101", "PT-200"]}))
        >>> [row["Tag"] for row in source.rows()]
        ['FT-101', 'PT-200']
    """

    def __init__(self, df: pl.DataFrame):
        self.df = df

    def __len__(self) -> int:
        return self.df.height

    def rows(self) -> Iterator[dict[str, Any]]:
        return self.df.iter_rows(named=True)


class FileRowSource:
    """Row source reading a file with a FileReader on first use.

    Attributes:
        path: File to read
        reader: Reader for the file's format

    Raises:
        RowSourceError: From rows(), if the file is missing or cannot be parsed
    """

    def __init__(self, path: Path | str, reader: FileReader):
        self.path = Path(path)
        self.reader = reader

    def load(self) -> pl.DataFrame:
        if not self.path.exists():
            raise RowSourceError(
                f"Input file not found: {self.path}",
                file_path=str(self.path),
                format=self.reader.format,
            )
        try:
            df = self.reader.read(self.path)
        except (pl.exceptions.PolarsError, OSError, ValueError) as e:
            raise RowSourceError(
                f"Failed to read {self.reader.format} file: {self.path.name}",
                file_path=str(self.path),
                format=self.reader.format,
                reason=str(e),
            ) from e

        logger.debug("Read %d rows from %s", df.height, self.path)
        return df

    def rows(self) -> Iterator[dict[str, Any]]:
        return DataFrameRowSource(self.load()).rows()
