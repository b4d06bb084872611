"""Pydantic models for the read-only inputs: metric rows and campaigns."""

from datetime import date, datetime, timedelta
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class MetricRecord(BaseModel):
    """Single per-day performance row for a campaign (or one of its ads).

    ``clicks <= impressions`` is an upstream guarantee and is not checked here.
    """

    model_config = ConfigDict(strict=True, frozen=True)

    date: date
    campaign_id: str
    ad_id: Optional[str] = None

    impressions: int = 0
    clicks: int = 0
    conversions: int = 0
    cost: float = 0.0
    revenue: Optional[float] = None  # Estimated from conversions when absent

    def effective_revenue(self, revenue_per_conversion: float) -> float:
        """Recorded revenue, or ``conversions * revenue_per_conversion``."""
        if self.revenue is not None:
            return self.revenue
        return self.conversions * revenue_per_conversion


class Ad(BaseModel):
    """Ad belonging to a campaign (identity only, metrics live in records)."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    status: str = "ACTIVE"


class Campaign(BaseModel):
    """Campaign registry entry owned by a user."""

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    name: str
    status: str = "ACTIVE"
    objective: Optional[str] = None
    budget: float = 0.0
    spent: float = 0.0
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    created_at: datetime = Field(default_factory=datetime.now)
    ads: list[Ad] = Field(default_factory=list)


class DateRange(BaseModel):
    """Inclusive calendar-day range."""

    model_config = ConfigDict(frozen=True)

    start: date
    end: date

    @model_validator(mode="after")
    def _check_order(self) -> "DateRange":
        if self.start > self.end:
            raise ValueError(f"start {self.start} is after end {self.end}")
        return self

    @property
    def days(self) -> int:
        """Number of calendar days covered, both ends included."""
        return (self.end - self.start).days + 1

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def previous(self) -> "DateRange":
        """Range of equal length ending the day before ``start``."""
        end = self.start - timedelta(days=1)
        return DateRange(start=end - timedelta(days=self.days - 1), end=end)

    @classmethod
    def trailing(cls, days: int, today: date) -> "DateRange":
        """The last ``days`` calendar days, ``today`` included."""
        return cls(start=today - timedelta(days=days - 1), end=today)

    def to_dict(self) -> dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}
