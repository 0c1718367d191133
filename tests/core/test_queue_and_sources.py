"""Tests for the in-process work queue and the polars row sources."""

import polars as pl
import pytest

from catalogdq.core.exceptions import RowSourceError
from catalogdq.core.queue import InProcessWorkQueue
from catalogdq.core.schema import validation_results_frame
from catalogdq.core.sources import (
    CsvReader,
    DataFrameRowSource,
    FileRowSource,
    JsonReader,
    NdjsonReader,
    ParquetReader,
)


class TestInProcessWorkQueue:
    def test_runs_jobs_in_fifo_order(self):
        seen = []
        queue = InProcessWorkQueue(lambda job_id, project_id, payload: seen.append((job_id, payload)))
        queue.enqueue("j1", "p1", "a")
        queue.enqueue("j2", "p1", "b")

        assert queue.pending == 2
        assert queue.drain() == 2
        assert seen == [("j1", "a"), ("j2", "b")]
        assert queue.pending == 0

    def test_eager_runs_on_enqueue(self):
        seen = []
        queue = InProcessWorkQueue(lambda *args: seen.append(args), eager=True)
        queue.enqueue("j1", "p1", None)
        assert seen == [("j1", "p1", None)]

    def test_run_next_without_handler(self):
        queue = InProcessWorkQueue()
        queue.enqueue("j1", "p1", None)
        with pytest.raises(RuntimeError):
            queue.run_next()

    def test_run_next_on_empty_queue(self):
        assert InProcessWorkQueue(lambda *args: None).run_next() is False

    def test_set_handler(self):
        seen = []
        queue = InProcessWorkQueue()
        queue.enqueue("j1", "p1", None)
        queue.set_handler(lambda job_id, *_: seen.append(job_id))
        queue.drain()
        assert seen == ["j1"]


class TestReaders:
    def test_csv_reads_cells_as_text(self, tmp_path):
        path = tmp_path / "tags.csv"
        path.write_text("Tag,Low,High\nAI-101,0,100\nAI-102,,50\n")

        df = CsvReader().read(path)

        assert df.schema["Low"] == pl.Utf8
        rows = list(DataFrameRowSource(df).rows())
        assert rows[0] == {"Tag": "AI-101", "Low": "0", "High": "100"}
        assert rows[1]["Low"] is None

    def test_parquet_round_trip(self, tmp_path):
        path = tmp_path / "tags.parquet"
        pl.DataFrame({"Tag": ["AI-101"], "Low": [0]}).write_parquet(path)

        df = ParquetReader().read(path)
        assert df["Tag"].to_list() == ["AI-101"]

    def test_json_and_ndjson(self, tmp_path):
        json_path = tmp_path / "tags.json"
        json_path.write_text('[{"Tag": "AI-101"}, {"Tag": "AI-102"}]')
        ndjson_path = tmp_path / "tags.ndjson"
        ndjson_path.write_text('{"Tag": "AI-101"}\n{"Tag": "AI-102"}\n')

        assert JsonReader().read(json_path).height == 2
        assert NdjsonReader().read(ndjson_path).height == 2


class TestFileRowSource:
    def test_rows_in_file_order(self, tmp_path):
        path = tmp_path / "tags.csv"
        path.write_text("Tag\nB\nA\nC\n")

        assert [r["Tag"] for r in FileRowSource(path, CsvReader()).rows()] == ["B", "A", "C"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(RowSourceError) as exc_info:
            FileRowSource(tmp_path / "missing.csv", CsvReader()).load()
        assert exc_info.value.context["format"] == "csv"

    def test_unparseable_file(self, tmp_path):
        path = tmp_path / "broken.parquet"
        path.write_text("not parquet")

        with pytest.raises(RowSourceError) as exc_info:
            FileRowSource(path, ParquetReader()).load()
        assert "reason" in exc_info.value.context

    def test_dataframe_row_source_len(self):
        assert len(DataFrameRowSource(pl.DataFrame({"a": [1, 2, 3]}))) == 3


class TestValidationResultsFrame:
    def test_keeps_schema_columns_only(self):
        df = validation_results_frame(
            [
                {
                    "id": "r1",
                    "project_id": "p1",
                    "entity_type": "tag",
                    "entity_id": "t1",
                    "rule_name": "Naming Convention",
                    "severity": "Warning",
                    "message": "m",
                    "acknowledged": False,
                    "created_at": "ignored",
                }
            ]
        )
        assert "created_at" not in df.columns
        assert df.height == 1

    def test_empty(self):
        df = validation_results_frame([])
        assert df.is_empty()
        assert df.schema["acknowledged"] == pl.Boolean
