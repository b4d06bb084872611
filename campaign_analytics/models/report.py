"""Pydantic models for reports, schedules and report requests."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional, TypeVar
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import ValidationError
from .records import DateRange

E = TypeVar("E", bound=Enum)


class ReportType(str, Enum):
    """Report families, each backed by one registered processor."""

    CAMPAIGN_PERFORMANCE = "CAMPAIGN_PERFORMANCE"
    BUDGET_ANALYSIS = "BUDGET_ANALYSIS"
    AUDIENCE_INSIGHTS = "AUDIENCE_INSIGHTS"
    CONVERSION_FUNNEL = "CONVERSION_FUNNEL"
    CUSTOM = "CUSTOM"


class ReportFormat(str, Enum):
    """Artifact formats produced by the exporter."""

    JSON = "json"
    CSV = "csv"
    SPREADSHEET = "spreadsheet"
    DOCUMENT = "document"

    @property
    def extension(self) -> str:
        return {
            ReportFormat.JSON: "json",
            ReportFormat.CSV: "csv",
            ReportFormat.SPREADSHEET: "xlsx",
            ReportFormat.DOCUMENT: "docx",
        }[self]


class ReportStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class GroupBy(str, Enum):
    """Row shape loaded for a report: one row per record, or per campaign."""

    DATE = "date"
    CAMPAIGN = "campaign"


class Frequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


def coerce_enum(enum_cls: type[E], value: Any, field_name: str) -> E:
    """Convert a raw value to ``enum_cls`` or fail fast with ValidationError."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = [m.value for m in enum_cls]
        raise ValidationError(
            f"Invalid {field_name}: {value!r}. Allowed: {allowed}",
            errors=[{"field": field_name, "value": value, "allowed": allowed}],
        ) from None


class Report(BaseModel):
    """Generated report. Frozen: updates go through ``model_copy``."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid4().hex)
    user_id: str
    name: str
    description: Optional[str] = None
    type: ReportType
    date_range: DateRange
    campaign_ids: list[str] = Field(default_factory=list)
    metrics: list[str] = Field(default_factory=list)
    filters: dict[str, Any] = Field(default_factory=dict)
    group_by: GroupBy = GroupBy.DATE
    format: ReportFormat = ReportFormat.JSON
    status: ReportStatus = ReportStatus.PENDING
    data: Any = None
    file_url: Optional[str] = None

    # Export failures do not invalidate the computed data
    export_failed: bool = False
    export_error: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.now)

    def summary(self) -> dict[str, Any]:
        """Listing projection (no payload)."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "type": self.type.value,
            "format": self.format.value,
            "status": self.status.value,
            "fileUrl": self.file_url,
            "exportFailed": self.export_failed,
            "createdAt": self.created_at.isoformat(),
            "dateRange": self.date_range.to_dict(),
        }


class ScheduledReport(BaseModel):
    """Recurring regeneration of an existing report."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid4().hex)
    report_id: str
    user_id: str
    frequency: Frequency
    recipients: list[str] = Field(default_factory=list)
    enabled: bool = True
    next_run: datetime
    last_run: Optional[datetime] = None
    anchor_day: Optional[int] = Field(default=None, ge=1, le=31)  # Day of month for monthly runs


class ReportFilters(BaseModel):
    """Row filters of a report request. Unknown keys are kept as given."""

    model_config = ConfigDict(strict=True, frozen=True, extra="allow", populate_by_name=True)

    min_impressions: Optional[int] = Field(default=None, alias="minImpressions", ge=0)
    min_clicks: Optional[int] = Field(default=None, alias="minClicks", ge=0)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ReportRequest(BaseModel):
    """Parameters of a report-generation request."""

    type: ReportType
    name: Optional[str] = None
    description: Optional[str] = None
    date_range: DateRange
    campaign_ids: list[str] = Field(default_factory=list)
    metrics: list[str] = Field(default_factory=list)
    filters: ReportFilters = Field(default_factory=ReportFilters)
    group_by: GroupBy = GroupBy.DATE
    format: ReportFormat = ReportFormat.JSON

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "ReportRequest":
        """Validate a raw request payload.

        Raises:
            ValidationError: with the collected pydantic error list.
        """
        try:
            return cls.model_validate(payload)
        except PydanticValidationError as e:
            errors = e.errors(include_url=False)
            raise ValidationError(
                f"Invalid report request: {len(errors)} error(s). "
                f"First error: {errors[0]['msg'] if errors else 'N/A'}",
                errors=[dict(err) for err in errors],
            ) from e
