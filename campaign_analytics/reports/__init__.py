"""Report processing, export and scheduling."""

from .exporter import ExportArtifact, ReportExporter
from .processors import (
    PROCESSORS,
    ReportInput,
    ReportProcessor,
    get_processor,
    register_processor,
    report_type_catalog,
)
from .scheduler import ScheduleRunner, next_run

__all__ = [
    "PROCESSORS",
    "ExportArtifact",
    "ReportExporter",
    "ReportInput",
    "ReportProcessor",
    "ScheduleRunner",
    "get_processor",
    "next_run",
    "register_processor",
    "report_type_catalog",
]
