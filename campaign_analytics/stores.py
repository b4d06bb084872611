"""Repository interfaces consumed by the engine, plus in-memory implementations.

The engine never talks to a database directly. Callers inject objects
satisfying these protocols; the in-memory versions back tests and local runs.
"""

import threading
from datetime import datetime
from typing import Any, Optional, Protocol

from .models import (
    Campaign,
    DateRange,
    MetricRecord,
    Report,
    ReportStatus,
    ReportType,
    ScheduledReport,
)


class CampaignStore(Protocol):
    """Read-only campaign registry."""

    def list_for_user(self, user_id: str) -> list[Campaign]:
        """Campaigns owned by ``user_id`` in creation order."""
        ...

    def get(self, user_id: str, campaign_id: str) -> Optional[Campaign]:
        """Campaign if it exists and is owned by ``user_id``."""
        ...


class MetricStore(Protocol):
    """Read-only source of per-day metric rows."""

    def fetch(self, campaign_ids: list[str], date_range: DateRange) -> list[MetricRecord]:
        """Records of the given campaigns dated inside ``date_range``."""
        ...


class AudienceStore(Protocol):
    """Externally collected audience/funnel breakdowns."""

    def get_breakdowns(self, campaign_ids: list[str], date_range: DateRange) -> dict[str, Any]:
        """Breakdowns keyed by dimension (demographics, devices, ...)."""
        ...


class ReportStore(Protocol):
    def save(self, report: Report) -> Report: ...

    def get(self, user_id: str, report_id: str) -> Optional[Report]: ...

    def list_for_user(
        self,
        user_id: str,
        report_type: Optional[ReportType] = None,
        status: Optional[ReportStatus] = None,
    ) -> list[Report]:
        """Reports newest first."""
        ...


class ScheduleStore(Protocol):
    def save(self, schedule: ScheduledReport) -> ScheduledReport: ...

    def get(self, schedule_id: str) -> Optional[ScheduledReport]: ...

    def compare_and_set_next_run(
        self,
        schedule_id: str,
        expected: datetime,
        next_run: datetime,
        last_run: datetime,
    ) -> bool:
        """Advance ``next_run`` only if it still equals ``expected``."""
        ...


# =============================================================================
# IN-MEMORY IMPLEMENTATIONS
# =============================================================================


class InMemoryCampaignStore:
    def __init__(self, campaigns: list[Campaign] | None = None):
        self._campaigns: list[Campaign] = list(campaigns or [])

    def add(self, campaign: Campaign) -> None:
        self._campaigns.append(campaign)

    def list_for_user(self, user_id: str) -> list[Campaign]:
        return [c for c in self._campaigns if c.user_id == user_id]

    def get(self, user_id: str, campaign_id: str) -> Optional[Campaign]:
        return next(
            (c for c in self._campaigns if c.id == campaign_id and c.user_id == user_id),
            None,
        )


class InMemoryMetricStore:
    def __init__(self, records: list[MetricRecord] | None = None):
        self._records: list[MetricRecord] = list(records or [])

    def add(self, *records: MetricRecord) -> None:
        self._records.extend(records)

    def fetch(self, campaign_ids: list[str], date_range: DateRange) -> list[MetricRecord]:
        wanted = set(campaign_ids)
        return [
            r
            for r in self._records
            if r.campaign_id in wanted and date_range.contains(r.date)
        ]


class InMemoryAudienceStore:
    """Breakdowns registered per campaign and merged on read."""

    def __init__(self, breakdowns: dict[str, dict[str, Any]] | None = None):
        self._breakdowns = dict(breakdowns or {})

    def get_breakdowns(self, campaign_ids: list[str], date_range: DateRange) -> dict[str, Any]:
        merged: dict[str, Any] = {}
        for campaign_id in campaign_ids:
            for dimension, values in self._breakdowns.get(campaign_id, {}).items():
                merged.setdefault(dimension, []).extend(values)
        return merged


class InMemoryReportStore:
    def __init__(self) -> None:
        self._reports: dict[str, Report] = {}

    def save(self, report: Report) -> Report:
        self._reports[report.id] = report
        return report

    def get(self, user_id: str, report_id: str) -> Optional[Report]:
        report = self._reports.get(report_id)
        if report is None or report.user_id != user_id:
            return None
        return report

    def list_for_user(
        self,
        user_id: str,
        report_type: Optional[ReportType] = None,
        status: Optional[ReportStatus] = None,
    ) -> list[Report]:
        reports = [
            r
            for r in self._reports.values()
            if r.user_id == user_id
            and (report_type is None or r.type == report_type)
            and (status is None or r.status == status)
        ]
        return sorted(reports, key=lambda r: r.created_at, reverse=True)


class InMemoryScheduleStore:
    def __init__(self) -> None:
        self._schedules: dict[str, ScheduledReport] = {}
        self._lock = threading.Lock()

    def save(self, schedule: ScheduledReport) -> ScheduledReport:
        with self._lock:
            self._schedules[schedule.id] = schedule
        return schedule

    def get(self, schedule_id: str) -> Optional[ScheduledReport]:
        return self._schedules.get(schedule_id)

    def compare_and_set_next_run(
        self,
        schedule_id: str,
        expected: datetime,
        next_run: datetime,
        last_run: datetime,
    ) -> bool:
        with self._lock:
            current = self._schedules.get(schedule_id)
            if current is None or current.next_run != expected:
                return False
            self._schedules[schedule_id] = current.model_copy(
                update={"next_run": next_run, "last_run": last_run}
            )
            return True
