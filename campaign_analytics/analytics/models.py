"""Output models for analytics calculations."""

from dataclasses import dataclass, field
from typing import Any, Literal

from ..models.records import Campaign, DateRange
from . import calculator

BASE_COUNTERS = ("impressions", "clicks", "conversions", "cost")

# Payload keys, in output order
METRIC_FIELDS = (
    "impressions",
    "clicks",
    "conversions",
    "cost",
    "revenue",
    "ctr",
    "conversionRate",
    "cpc",
    "cpa",
    "roas",
    "budgetUtilization",
)

DERIVED_FIELDS = ("ctr", "conversionRate", "cpc", "cpa", "roas", "budgetUtilization")


@dataclass(frozen=True)
class AggregatedMetrics:
    """Summed base counters. Ratios are derived on read, never stored."""

    impressions: int = 0
    clicks: int = 0
    conversions: int = 0
    cost: float = 0.0
    revenue: float = 0.0
    budget: float = 0.0
    spent: float = 0.0

    def __add__(self, other: "AggregatedMetrics") -> "AggregatedMetrics":
        if not isinstance(other, AggregatedMetrics):
            return NotImplemented
        return AggregatedMetrics(
            impressions=self.impressions + other.impressions,
            clicks=self.clicks + other.clicks,
            conversions=self.conversions + other.conversions,
            cost=self.cost + other.cost,
            revenue=self.revenue + other.revenue,
            budget=self.budget + other.budget,
            spent=self.spent + other.spent,
        )

    @property
    def ctr(self) -> float:
        return calculator.ctr(self.clicks, self.impressions)

    @property
    def conversion_rate(self) -> float:
        return calculator.conversion_rate(self.conversions, self.clicks)

    @property
    def cpc(self) -> float:
        return calculator.cpc(self.cost, self.clicks)

    @property
    def cpa(self) -> float:
        return calculator.cpa(self.cost, self.conversions)

    @property
    def roas(self) -> float:
        return calculator.roas(self.revenue, self.cost)

    @property
    def budget_utilization(self) -> float:
        return calculator.budget_utilization(self.spent, self.budget)

    def to_dict(self, fields: list[str] | None = None) -> dict[str, Any]:
        """JSON-ready dict with derived metrics rounded for display.

        Args:
            fields: Restrict output to these payload keys (default: all).
        """
        values: dict[str, Any] = {
            "impressions": self.impressions,
            "clicks": self.clicks,
            "conversions": self.conversions,
            "cost": round(self.cost, 2),
            "revenue": round(self.revenue, 2),
            "ctr": calculator.round_metric(self.ctr),
            "conversionRate": calculator.round_metric(self.conversion_rate),
            "cpc": calculator.round_metric(self.cpc),
            "cpa": calculator.round_metric(self.cpa),
            "roas": calculator.round_metric(self.roas),
            "budgetUtilization": calculator.round_metric(self.budget_utilization),
        }
        for key in DERIVED_FIELDS:
            calculator.ensure_finite(key, values[key])
        if fields:
            return {k: values[k] for k in fields if k in values}
        return values


@dataclass(frozen=True)
class TimelineBucket:
    """Counters summed over one day, ISO week or month."""

    bucket_key: str  # YYYY-MM-DD (daily/weekly) or YYYY-MM (monthly)
    impressions: int
    clicks: int
    conversions: int
    cost: float
    revenue: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.bucket_key,
            "impressions": self.impressions,
            "clicks": self.clicks,
            "conversions": self.conversions,
            "cost": round(self.cost, 2),
            "revenue": round(self.revenue, 2),
        }


@dataclass(frozen=True)
class CampaignAggregate:
    """Totals for a single campaign over the requested range."""

    campaign: Campaign
    metrics: AggregatedMetrics

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.campaign.id,
            "name": self.campaign.name,
            "status": self.campaign.status,
            "objective": self.campaign.objective,
            "budget": self.campaign.budget,
            "spent": self.campaign.spent,
            **self.metrics.to_dict(),
        }


@dataclass(frozen=True)
class AggregateResult:
    """Complete aggregation output for a date range."""

    date_range: DateRange
    totals: AggregatedMetrics
    per_campaign: list[CampaignAggregate]
    timeline: list[TimelineBucket]
    previous_period_totals: AggregatedMetrics
    growth: dict[str, float]

    def top_campaigns(self, limit: int | None = None) -> list[CampaignAggregate]:
        """Campaigns by spend, descending. Ties keep registry order."""
        ranked = sorted(self.per_campaign, key=lambda c: c.metrics.spent, reverse=True)
        return ranked[:limit] if limit is not None else ranked


@dataclass(frozen=True)
class ComparisonEntry:
    """One subject (campaign or period) of a comparison."""

    subject: dict[str, Any]
    metrics: AggregatedMetrics
    fields: list[str] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"subject": self.subject, "metrics": self.metrics.to_dict(self.fields)}


@dataclass(frozen=True)
class ComparisonResult:
    """Side-by-side metric sets. Transient, never persisted."""

    mode: Literal["campaigns", "periods"]
    entries: list[ComparisonEntry] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.mode, "data": [e.to_dict() for e in self.entries]}
