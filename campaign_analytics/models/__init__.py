from .records import Ad, Campaign, DateRange, MetricRecord
from .report import (
    Frequency,
    GroupBy,
    Report,
    ReportFilters,
    ReportFormat,
    ReportRequest,
    ReportStatus,
    ReportType,
    ScheduledReport,
    coerce_enum,
)

__all__ = [
    "Ad",
    "Campaign",
    "DateRange",
    "Frequency",
    "GroupBy",
    "MetricRecord",
    "Report",
    "ReportFilters",
    "ReportFormat",
    "ReportRequest",
    "ReportStatus",
    "ReportType",
    "ScheduledReport",
    "coerce_enum",
]
