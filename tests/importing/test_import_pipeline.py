"""Tests for ImportPipeline."""

import copy
from unittest.mock import patch

import polars as pl
import pytest

from catalogdq.core.schema import VALIDATION_RESULT
from catalogdq.importing import ImportSpec, map_row
from catalogdq.jobs import JobStatus, JobType

TAG_MAPPINGS = {"Tag": "name", "Type": "type", "Units": "engineeringUnits", "Low": "scaleLow", "High": "scaleHigh"}


class ExplodingRow(dict):
    def get(self, key, default=None):
        raise RuntimeError("corrupt row")


class ProgressRecordingRow(dict):
    """Row that records the job's progress when the pipeline first reads it."""

    def __init__(self, data, read_progress, seen):
        super().__init__(data)
        self._read_progress = read_progress
        self._seen = seen

    def get(self, key, default=None):
        if key == "Tag":
            self._seen.append(self._read_progress())
        return super().get(key, default)


def make_spec(job, entity_type="tag", rows=(), mappings=None):
    return ImportSpec(
        job_id=job.id,
        project_id="p1",
        entity_type=entity_type,
        column_mappings=TAG_MAPPINGS if mappings is None else mappings,
        user_id="u1",
        source_file="uploads/tags.csv",
        rows=rows,
    )


@pytest.fixture
def job(jobs):
    return jobs.create_job("p1", JobType.IMPORT, "u1")


def digital_tags(count):
    return [{"Tag": f"DI-{300 + i}", "Type": "DI"} for i in range(count)]


class TestMapRow:
    def test_drops_unmapped_and_empty(self):
        assert map_row({"Tag": "FT-101", "Units": "", "Low": None, "Extra": 1}, TAG_MAPPINGS) == {"name": "FT-101"}


class TestImportPipeline:
    def test_imports_valid_rows(self, pipeline, jobs, store, job):
        report = pipeline.run(make_spec(job, rows=digital_tags(3)))

        assert report.success == 3
        assert report.errors == 0
        assert report.source_file == "tags.csv"

        stored = jobs.get_job(job.id)
        assert stored.status is JobStatus.COMPLETED
        assert stored.progress == 100
        assert stored.result["totalRows"] == 3

        created = store.find_all("tag", {"projectId": "p1"})
        assert [t["name"] for t in created] == ["DI-300", "DI-301", "DI-302"]
        assert created[0]["createdBy"] == "u1"
        assert created[1]["importLineage"] == {"sourceFile": "tags.csv", "sheetName": None, "rowNumber": 3}

    def test_row_failure_does_not_abort_job(self, pipeline, jobs, job):
        rows = digital_tags(10)
        rows[4] = ExplodingRow(rows[4])

        report = pipeline.run(make_spec(job, rows=rows))

        assert report.success == 9
        assert report.errors == 1
        assert report.error_details[0]["row"] == 6
        assert report.error_details[0]["error"] == "corrupt row"
        assert jobs.get_job(job.id).status is JobStatus.COMPLETED

    def test_validation_errors_reject_row(self, pipeline, store, job):
        report = pipeline.run(make_spec(job, rows=[{"Tag": "FT-101", "Type": "AI", "Low": "0", "High": "100"}]))

        assert report.success == 0
        assert report.errors == 1
        detail = report.error_details[0]
        assert detail["row"] == 2
        assert detail["error"].startswith("Validation failed: Scaling and Units: ")
        assert detail["validationResults"][0]["severity"] == "Error"
        assert store.count("tag") == 0

    def test_warnings_still_create_entity(self, pipeline, store, job):
        alarm = {
            "name": "ALM-1",
            "priority": "High",
            "setpoint": 80,
            "tagId": "t1",
            "rationalization": "Protects the pump from running dry",
            "consequence": "tbd",
            "operatorAction": "Stop the pump",
        }
        mappings = {key: key for key in alarm}

        report = pipeline.run(make_spec(job, entity_type="alarm", rows=[alarm], mappings=mappings))

        assert report.success == 1
        assert report.warnings == 1
        entity_id = report.warning_details[0]["entityId"]
        assert store.find("alarm", entity_id)["consequence"] == "tbd"
        stored = store.find_all(VALIDATION_RESULT, {"entity_id": entity_id})
        assert [r["severity"] for r in stored] == ["Warning", "Warning"]
        assert len(report.warning_details[0]["warnings"]) == 2

    def test_progress_visible_before_each_row(self, pipeline, jobs, job):
        seen = []
        rows = [
            ProgressRecordingRow(row, lambda: jobs.get_job(job.id).progress, seen)
            for row in digital_tags(10)
        ]

        pipeline.run(make_spec(job, rows=rows))

        assert seen == [0, 10, 20, 30, 40, 50, 60, 70, 80, 90]
        assert jobs.get_job(job.id).progress == 100

    def test_import_cost_does_not_depend_on_store_size(self, pipeline, jobs, store):
        def copies_per_import():
            job = jobs.create_job("p1", JobType.IMPORT, "u1")
            with patch("catalogdq.core.store.copy.deepcopy", wraps=copy.deepcopy) as deepcopy:
                report = pipeline.run(make_spec(job, rows=digital_tags(5)))
            assert report.success == 5
            return deepcopy.call_count

        baseline = copies_per_import()
        for i in range(5000):
            store.create("tag", {"name": f"TT-{i}", "type": "AI", "projectId": "p2"})

        assert copies_per_import() <= baseline * 2

    def test_accepts_dataframe_rows(self, pipeline, job):
        df = pl.DataFrame({"Tag": ["DI-301", "DI-302"], "Type": ["DI", "DI"]})
        assert pipeline.run(make_spec(job, rows=df)).success == 2

    def test_cancelled_between_rows(self, pipeline, jobs, store, job):
        cancelled = []

        class CancellingRow(dict):
            def get(self, key, default=None):
                if not cancelled:
                    cancelled.append(True)
                    jobs.cancel_job(job.id)
                return super().get(key, default)

        rows = digital_tags(3)
        rows[0] = CancellingRow(rows[0])

        report = pipeline.run(make_spec(job, rows=rows))

        assert report.cancelled
        assert report.success == 1
        stored = jobs.get_job(job.id)
        assert stored.status is JobStatus.CANCELLED
        assert stored.result["cancelled"] is True
        assert store.count("tag") == 1

    def test_cancelled_before_start(self, pipeline, jobs, store, job):
        jobs.cancel_job(job.id)

        assert pipeline.run(make_spec(job, rows=digital_tags(2))) is None
        assert jobs.get_job(job.id).status is JobStatus.CANCELLED
        assert store.count("tag") == 0

    def test_row_loading_failure_fails_job(self, pipeline, jobs, job):
        def unreadable():
            raise OSError("permission denied")

        assert pipeline.run(make_spec(job, rows=unreadable)) is None

        stored = jobs.get_job(job.id)
        assert stored.status is JobStatus.FAILED
        assert stored.error == "Failed to read rows: permission denied"

    def test_unsupported_entity_type_fails_job(self, pipeline, jobs, job):
        pipeline.run(make_spec(job, entity_type="pump", rows=digital_tags(1)))

        stored = jobs.get_job(job.id)
        assert stored.status is JobStatus.FAILED
        assert stored.error == "Unsupported entity type: pump"

    def test_queue_entry_point(self, queue, jobs, job):
        queue.enqueue(job.id, "p1", make_spec(job, rows=digital_tags(1)))
        queue.drain()
        assert jobs.get_job(job.id).status is JobStatus.COMPLETED
