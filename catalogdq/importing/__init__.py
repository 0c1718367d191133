"""Bulk import of parsed rows as catalog entities."""

from catalogdq.importing.pipeline import ImportPipeline, ImportSpec, map_row
from catalogdq.importing.report import ImportReport
from catalogdq.importing.service import ImportProfile, ImportRequest, ImportService

__all__ = [
    "ImportPipeline",
    "ImportSpec",
    "map_row",
    "ImportReport",
    "ImportRequest",
    "ImportProfile",
    "ImportService",
]
