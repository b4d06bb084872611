"""Report type processors.

Each report type is a strategy registered under its ``ReportType``. A
processor turns loaded report rows into the report-specific payload and never
mutates its input. New types only need a new registered class.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from ..analytics import calculator
from ..analytics.models import AggregatedMetrics
from ..exceptions import ValidationError
from ..models.records import Campaign
from ..models.report import ReportType, coerce_enum

# Row keys that identify a row rather than measure it
GROUPING_KEYS = ("date", "campaignId", "campaignName", "adId", "objective")


@dataclass(frozen=True)
class ReportInput:
    """Everything a processor may read.

    Attributes:
        rows: Loaded report rows (one per record, or one per campaign)
        metrics: Metric names requested by the caller
        campaigns: Campaigns in scope, for budget figures
        breakdowns: Externally supplied audience/funnel distributions
    """

    rows: list[dict[str, Any]]
    metrics: list[str] = field(default_factory=list)
    campaigns: list[Campaign] = field(default_factory=list)
    breakdowns: dict[str, Any] = field(default_factory=dict)

    def totals(self) -> AggregatedMetrics:
        """Sum of the base counters across rows plus campaign budgets."""
        return AggregatedMetrics(
            impressions=sum(r.get("impressions", 0) for r in self.rows),
            clicks=sum(r.get("clicks", 0) for r in self.rows),
            conversions=sum(r.get("conversions", 0) for r in self.rows),
            cost=sum(r.get("cost", 0.0) for r in self.rows),
            revenue=sum(r.get("revenue", 0.0) for r in self.rows),
            budget=sum(c.budget for c in self.campaigns),
            spent=sum(c.spent for c in self.campaigns),
        )


class ReportProcessor(ABC):
    """Strategy interface: one transform per report type."""

    name: str = ""
    description: str = ""
    default_metrics: tuple[str, ...] = ()

    @abstractmethod
    def process(self, data: ReportInput) -> Any:
        """Build the report payload from ``data``."""


PROCESSORS: dict[ReportType, type[ReportProcessor]] = {}


def register_processor(
    report_type: ReportType,
) -> Callable[[type[ReportProcessor]], type[ReportProcessor]]:
    """Class decorator adding a processor to the registry."""

    def decorator(cls: type[ReportProcessor]) -> type[ReportProcessor]:
        PROCESSORS[report_type] = cls
        return cls

    return decorator


def get_processor(report_type: ReportType | str) -> ReportProcessor:
    """Instantiate the processor registered for ``report_type``.

    Raises:
        ValidationError: Unknown or unregistered report type.
    """
    report_type = coerce_enum(ReportType, report_type, "report type")
    try:
        return PROCESSORS[report_type]()
    except KeyError:
        raise ValidationError(f"No processor registered for {report_type.value}") from None


def report_type_catalog() -> list[dict[str, Any]]:
    """Available report types with their descriptions."""
    return [
        {
            "id": report_type.value,
            "name": cls.name,
            "description": cls.description,
            "metrics": list(cls.default_metrics),
        }
        for report_type, cls in PROCESSORS.items()
    ]


def _ratios(row: dict[str, Any]) -> dict[str, float]:
    impressions = row.get("impressions", 0)
    clicks = row.get("clicks", 0)
    conversions = row.get("conversions", 0)
    cost = row.get("cost", 0.0)
    return {
        "ctr": calculator.round_metric(calculator.ctr(clicks, impressions)),
        "conversionRate": calculator.round_metric(calculator.conversion_rate(conversions, clicks)),
        "cpc": calculator.round_metric(calculator.cpc(cost, clicks)),
    }


# =============================================================================
# PROCESSORS
# =============================================================================


@register_processor(ReportType.CAMPAIGN_PERFORMANCE)
class CampaignPerformanceProcessor(ReportProcessor):
    name = "Campaign performance"
    description = "Detailed analysis of campaign performance metrics"
    default_metrics = ("impressions", "clicks", "conversions", "cost", "ctr", "conversionRate")

    def process(self, data: ReportInput) -> list[dict[str, Any]]:
        """Each row plus ctr, conversionRate, cpc and roas."""
        return [
            {
                **row,
                **_ratios(row),
                "roas": calculator.round_metric(
                    calculator.roas(row.get("revenue", 0.0), row.get("cost", 0.0))
                ),
            }
            for row in data.rows
        ]


@register_processor(ReportType.BUDGET_ANALYSIS)
class BudgetAnalysisProcessor(ReportProcessor):
    name = "Budget analysis"
    description = "Spend tracking and budget optimization"
    default_metrics = ("cost", "budget", "spent", "remaining", "efficiency")

    def process(self, data: ReportInput) -> dict[str, Any]:
        totals = data.totals()
        cost_trends = [
            {
                **{k: row[k] for k in GROUPING_KEYS if k in row},
                "cost": round(row.get("cost", 0.0), 2),
                "clicks": row.get("clicks", 0),
                "cpc": calculator.round_metric(
                    calculator.cpc(row.get("cost", 0.0), row.get("clicks", 0))
                ),
            }
            for row in data.rows
        ]
        return {
            "totalSpent": round(totals.cost, 2),
            # DIVISION_UNDEFINED when there were no clicks
            "averageCPC": calculator.round_metric(totals.cpc),
            "budgetUtilization": calculator.round_metric(totals.budget_utilization),
            "totalBudget": round(totals.budget, 2),
            "remaining": round(max(totals.budget - totals.spent, 0.0), 2),
            "costTrends": cost_trends,
        }


@register_processor(ReportType.AUDIENCE_INSIGHTS)
class AudienceInsightsProcessor(ReportProcessor):
    name = "Audience insights"
    description = "Demographic and behavioural breakdowns"
    default_metrics = ("demographics", "interests", "behavior", "devices")

    def process(self, data: ReportInput) -> dict[str, Any]:
        """Supplied breakdowns as-is, alongside overall ratios."""
        totals = data.totals()
        return {
            "demographics": data.breakdowns.get("demographics", []),
            "geography": data.breakdowns.get("geography", []),
            "devices": data.breakdowns.get("devices", []),
            "interests": data.breakdowns.get("interests", []),
            "totals": totals.to_dict(["impressions", "clicks", "conversions", "ctr", "conversionRate"]),
        }


@register_processor(ReportType.CONVERSION_FUNNEL)
class ConversionFunnelProcessor(ReportProcessor):
    name = "Conversion funnel"
    description = "User journey from impression to conversion"
    default_metrics = ("impressions", "clicks", "conversions", "stages")

    def process(self, data: ReportInput) -> dict[str, Any]:
        """Impression -> click -> conversion stages with stage-to-stage rates."""
        totals = data.totals()
        stages = [
            {"stage": "impressions", "value": totals.impressions, "rate": None},
            {"stage": "clicks", "value": totals.clicks, "rate": calculator.round_metric(totals.ctr)},
            {
                "stage": "conversions",
                "value": totals.conversions,
                "rate": calculator.round_metric(totals.conversion_rate),
            },
        ]
        return {
            "stages": stages,
            "suppliedStages": data.breakdowns.get("funnel", []),
        }


@register_processor(ReportType.CUSTOM)
class CustomProcessor(ReportProcessor):
    name = "Custom report"
    description = "Report with caller-selected metrics and filters"
    default_metrics = ()

    def process(self, data: ReportInput) -> list[dict[str, Any]]:
        """Rows restricted to grouping keys and requested metrics."""
        if not data.metrics:
            return [dict(row) for row in data.rows]
        keep = set(GROUPING_KEYS) | set(data.metrics)
        return [{k: v for k, v in row.items() if k in keep} for row in data.rows]
