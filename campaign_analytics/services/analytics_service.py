"""Analytics service - the operations exposed to the HTTP layer."""

import calendar
import math
from collections.abc import Callable
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any

import polars as pl
from loguru import logger

from ..analytics import (
    Comparator,
    Granularity,
    MetricAggregator,
    RecommendationEngine,
)
from ..analytics.expressions import base_totals_expr, min_counter_filter_expr
from ..analytics.models import AggregatedMetrics
from ..analytics.stats import timeline_trend
from ..exceptions import ExportIOError, NotFoundError, ValidationError
from ..models import (
    Campaign,
    DateRange,
    GroupBy,
    Report,
    ReportFormat,
    ReportRequest,
    ReportStatus,
    ReportType,
    ScheduledReport,
    coerce_enum,
)
from ..models.report import Frequency
from ..reports import (
    ReportExporter,
    ReportInput,
    ScheduleRunner,
    get_processor,
    next_run,
    report_type_catalog,
)
from ..settings import EngineConfig, load_config
from ..stores import (
    AudienceStore,
    CampaignStore,
    MetricStore,
    ReportStore,
    ScheduleStore,
)
from ..utils import setup_logging

PERIOD_DAYS = {"7d": 7, "30d": 30, "90d": 90}
BREAKDOWN_TYPES = (ReportType.AUDIENCE_INSIGHTS, ReportType.CONVERSION_FUNNEL)


def period_range(preset: str, today: date) -> DateRange:
    """Date range for a period preset, ending ``today``.

    Raises:
        ValidationError: Unknown preset.
    """
    if preset in PERIOD_DAYS:
        return DateRange.trailing(PERIOD_DAYS[preset], today)
    if preset == "1y":
        year = today.year - 1
        day = min(today.day, calendar.monthrange(year, today.month)[1])
        return DateRange(start=date(year, today.month, day), end=today)
    allowed = [*PERIOD_DAYS, "1y"]
    raise ValidationError(
        f"Invalid period: {preset!r}. Allowed: {allowed}",
        errors=[{"field": "period", "value": preset, "allowed": allowed}],
    )


class AnalyticsService:
    """Orchestrates aggregation, recommendations, reports and schedules.

    Usage:
        service = AnalyticsService(campaigns, metrics, reports, schedules)
        dashboard = service.get_dashboard(user_id="u1", period="30d")
        report = service.generate_report("u1", {"type": "CAMPAIGN_PERFORMANCE", ...})
    """

    def __init__(
        self,
        campaigns: CampaignStore,
        metrics: MetricStore,
        reports: ReportStore,
        schedules: ScheduleStore,
        audience: AudienceStore | None = None,
        config: EngineConfig | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.config = config or EngineConfig()
        self.campaigns = campaigns
        self.reports = reports
        self.schedules = schedules
        self.audience = audience
        self.clock = clock or datetime.now

        self.aggregator = MetricAggregator(
            campaigns=campaigns,
            metrics=metrics,
            revenue_per_conversion=self.config.revenue_per_conversion,
        )
        self.recommendations = RecommendationEngine(self.config.thresholds)
        self.comparator = Comparator(self.aggregator, self.config.comparison_window_days)
        self.exporter = ReportExporter(self.config.reports_dir, self.config.reports_url_prefix)
        self.runner = ScheduleRunner(schedules)

    @classmethod
    def from_config_file(
        cls,
        campaigns: CampaignStore,
        metrics: MetricStore,
        reports: ReportStore,
        schedules: ScheduleStore,
        audience: AudienceStore | None = None,
        config_path: Path | None = None,
    ) -> "AnalyticsService":
        """Build a service from YAML configuration and set up logging.

        Args:
            config_path: Path to engine.yaml. Defaults to bundled config.

        Raises:
            ConfigLoadError: Unreadable or invalid configuration.
        """
        config = load_config(config_path)
        setup_logging(config.log_level, config.log_file)
        return cls(campaigns, metrics, reports, schedules, audience=audience, config=config)

    def _today(self) -> date:
        return self.clock().date()

    # =========================================================================
    # DASHBOARD & OVERVIEW
    # =========================================================================

    def get_dashboard(self, user_id: str, period: str = "30d") -> dict[str, Any]:
        """Headline numbers, daily timeline and top campaigns by spend."""
        date_range = period_range(period, self._today())
        result = self.aggregator.aggregate(user_id, date_range)
        campaigns = [c.campaign for c in result.per_campaign]
        totals = result.totals.to_dict()

        return {
            "period": period,
            "dateRange": date_range.to_dict(),
            "overview": {
                "totalCampaigns": len(campaigns),
                "activeCampaigns": sum(1 for c in campaigns if c.status == "ACTIVE"),
                "totalAds": sum(len(c.ads) for c in campaigns),
                "totalSpent": round(sum(c.spent for c in campaigns), 2),
            },
            "metrics": {
                "impressions": totals["impressions"],
                "clicks": totals["clicks"],
                "conversions": totals["conversions"],
                "cost": totals["cost"],
                "ctr": totals["ctr"],
                "conversionRate": totals["conversionRate"],
                "budgetUtilization": totals["budgetUtilization"],
                "averageCpc": totals["cpc"],
                "averageCpa": totals["cpa"],
            },
            "charts": {
                "dailyStats": [b.to_dict() for b in result.timeline],
                "topCampaigns": [
                    c.to_dict() for c in result.top_campaigns(self.config.top_campaigns_limit)
                ],
            },
        }

    def get_overview(
        self,
        user_id: str,
        period: str = "30d",
        campaign_id: str | None = None,
    ) -> dict[str, Any]:
        """Totals with growth against the preceding period of equal length."""
        date_range = period_range(period, self._today())
        result = self.aggregator.aggregate(
            user_id, date_range, campaign_filter=[campaign_id] if campaign_id else None
        )
        campaign_rows = [c.to_dict() for c in result.per_campaign]
        best = max(result.per_campaign, key=lambda c: c.metrics.ctr, default=None)

        return {
            "period": period,
            "dateRange": date_range.to_dict(),
            "metrics": result.totals.to_dict(),
            "previousPeriod": {
                "dateRange": date_range.previous().to_dict(),
                "metrics": result.previous_period_totals.to_dict(),
            },
            "growth": result.growth,
            "timeline": [b.to_dict() for b in result.timeline],
            "campaigns": campaign_rows,
            "summary": {
                "totalCampaigns": len(campaign_rows),
                "activeCampaigns": sum(1 for c in campaign_rows if c["status"] == "ACTIVE"),
                "bestPerformingCampaign": best.to_dict() if best else None,
            },
        }

    def get_campaign_analytics(
        self,
        user_id: str,
        campaign_id: str,
        period: str = "30d",
        breakdown: Granularity | str = Granularity.DAILY,
    ) -> dict[str, Any]:
        """Single-campaign timeline, per-ad totals, audience and recommendations.

        Raises:
            NotFoundError: Campaign not owned by the user.
            ValidationError: Unknown period or breakdown.
        """
        breakdown = coerce_enum(Granularity, breakdown, "breakdown")
        date_range = period_range(period, self._today())
        campaign = self.campaigns.get(user_id, campaign_id)
        if campaign is None:
            raise NotFoundError("Campaign", campaign_id)

        result = self.aggregator.aggregate(
            user_id, date_range, campaign_filter=[campaign_id], granularity=breakdown
        )
        df = self.aggregator.load_frame([campaign], date_range)
        audience = (
            self.audience.get_breakdowns([campaign_id], date_range) if self.audience else {}
        )
        recommendations = self.recommendations.recommend(result.totals)

        return {
            "campaign": {
                "id": campaign.id,
                "name": campaign.name,
                "status": campaign.status,
                "objective": campaign.objective,
                "budget": campaign.budget,
                "spent": campaign.spent,
            },
            "period": period,
            "breakdown": breakdown.value,
            "timeline": [b.to_dict() for b in result.timeline],
            "ads": self._ad_analytics(campaign, df),
            "audienceInsights": audience,
            "recommendations": self.recommendations.to_dict(recommendations),
            "totals": result.totals.to_dict(),
            "trend": timeline_trend(result.timeline),
        }

    @staticmethod
    def _ad_analytics(campaign: Campaign, df: pl.DataFrame) -> list[dict[str, Any]]:
        sums: dict[str, dict] = {}
        if len(df) > 0:
            grouped = df.filter(pl.col("ad_id").is_not_null()).group_by("ad_id").agg(
                base_totals_expr()
            )
            sums = {row["ad_id"]: row for row in grouped.to_dicts()}

        ads = []
        for ad in campaign.ads:
            row = sums.get(ad.id, {})
            metrics = AggregatedMetrics(
                impressions=row.get("impressions", 0),
                clicks=row.get("clicks", 0),
                conversions=row.get("conversions", 0),
                cost=row.get("cost", 0.0),
                revenue=row.get("revenue", 0.0),
            )
            ads.append(
                {
                    "id": ad.id,
                    "title": ad.title,
                    "status": ad.status,
                    "analytics": metrics.to_dict(["impressions", "clicks", "conversions", "cost"]),
                    **metrics.to_dict(["ctr", "conversionRate", "cpc"]),
                }
            )
        return ads

    # =========================================================================
    # REPORTS
    # =========================================================================

    def generate_report(self, user_id: str, request: ReportRequest | dict[str, Any]) -> Report:
        """Process a report and persist it, exporting non-JSON formats.

        The report is COMPLETED whenever its data was computed. A failed export
        sets ``export_failed`` instead of failing the report.

        Raises:
            ValidationError: Invalid request (before any data access).
            NotFoundError: A requested campaign is not owned by the user.
        """
        if not isinstance(request, ReportRequest):
            request = ReportRequest.from_payload(request)
        processor = get_processor(request.type)

        campaigns = self.aggregator.resolve_campaigns(user_id, request.campaign_ids or None)
        rows = self._load_report_rows(campaigns, request)
        breakdowns: dict[str, Any] = {}
        if request.type in BREAKDOWN_TYPES and self.audience is not None:
            breakdowns = self.audience.get_breakdowns([c.id for c in campaigns], request.date_range)

        payload = processor.process(
            ReportInput(
                rows=rows,
                metrics=request.metrics,
                campaigns=campaigns,
                breakdowns=breakdowns,
            )
        )

        report = Report(
            user_id=user_id,
            name=request.name or f"{processor.name} report",
            description=request.description,
            type=request.type,
            date_range=request.date_range,
            campaign_ids=request.campaign_ids,
            metrics=request.metrics,
            filters=request.filters.to_dict(),
            group_by=request.group_by,
            format=request.format,
            status=ReportStatus.COMPLETED,
            data=payload,
            created_at=self.clock(),
        )

        if request.format != ReportFormat.JSON:
            report = self._export(report)

        self.reports.save(report)
        logger.info(
            "Generated {} report {} for user {} ({} rows)",
            report.type.value,
            report.id,
            user_id,
            len(rows),
        )
        return report

    def _export(self, report: Report) -> Report:
        try:
            artifact = self.exporter.export(report, report.format)
        except ExportIOError as e:
            logger.warning("Export of report {} failed: {}", report.id, e)
            return report.model_copy(update={"export_failed": True, "export_error": str(e)})
        return report.model_copy(update={"file_url": artifact.file_url})

    def _load_report_rows(
        self,
        campaigns: list[Campaign],
        request: ReportRequest,
    ) -> list[dict[str, Any]]:
        df = self.aggregator.load_frame(campaigns, request.date_range).filter(
            min_counter_filter_expr(request.filters)
        )

        if request.group_by == GroupBy.CAMPAIGN:
            return [
                {
                    "campaignId": c.campaign.id,
                    "campaignName": c.campaign.name,
                    "objective": c.campaign.objective,
                    "impressions": c.metrics.impressions,
                    "clicks": c.metrics.clicks,
                    "conversions": c.metrics.conversions,
                    "cost": c.metrics.cost,
                    "revenue": c.metrics.revenue,
                }
                for c in self.aggregator.per_campaign_totals(campaigns, df)
            ]

        names = {c.id: c.name for c in campaigns}
        return [
            {
                "date": row["date"].isoformat(),
                "campaignId": row["campaign_id"],
                "campaignName": names.get(row["campaign_id"]),
                "adId": row["ad_id"],
                "impressions": row["impressions"],
                "clicks": row["clicks"],
                "conversions": row["conversions"],
                "cost": row["cost"],
                "revenue": row["revenue"],
            }
            for row in df.sort("date", maintain_order=True).to_dicts()
        ]

    def list_reports(
        self,
        user_id: str,
        page: int = 1,
        limit: int = 10,
        type: ReportType | str | None = None,
        status: ReportStatus | str | None = None,
    ) -> dict[str, Any]:
        """Paginated report summaries, newest first."""
        if page < 1 or limit < 1:
            raise ValidationError(f"page and limit must be positive (got {page}, {limit})")
        report_type = coerce_enum(ReportType, type, "report type") if type else None
        report_status = coerce_enum(ReportStatus, status, "status") if status else None

        reports = self.reports.list_for_user(user_id, report_type, report_status)
        offset = (page - 1) * limit
        return {
            "data": [r.summary() for r in reports[offset : offset + limit]],
            "pagination": {
                "total": len(reports),
                "page": page,
                "limit": limit,
                "totalPages": math.ceil(len(reports) / limit),
            },
        }

    def get_report(self, user_id: str, report_id: str) -> Report:
        report = self.reports.get(user_id, report_id)
        if report is None:
            raise NotFoundError("Report", report_id)
        return report

    def report_types(self) -> list[dict[str, Any]]:
        return report_type_catalog()

    # =========================================================================
    # SCHEDULING
    # =========================================================================

    def schedule_report(
        self,
        user_id: str,
        report_id: str,
        frequency: Frequency | str,
        recipients: list[str] | None = None,
        enabled: bool = True,
        user_email: str | None = None,
    ) -> ScheduledReport:
        """Schedule recurring regeneration of an existing report.

        Args:
            recipients: Delivery addresses. Defaults to ``user_email`` when given.

        Raises:
            ValidationError: Unknown frequency.
            NotFoundError: Report not owned by the user.
        """
        frequency = coerce_enum(Frequency, frequency, "frequency")
        report = self.get_report(user_id, report_id)
        if not recipients:
            recipients = [user_email] if user_email else []

        now = self.clock()
        schedule = ScheduledReport(
            report_id=report.id,
            user_id=user_id,
            frequency=frequency,
            recipients=list(recipients),
            enabled=enabled,
            next_run=next_run(frequency, now),
            anchor_day=now.day if frequency == Frequency.MONTHLY else None,
        )
        self.schedules.save(schedule)
        logger.info(
            "Scheduled report {} ({}), first run {}", report.id, frequency.value, schedule.next_run
        )
        return schedule

    def run_scheduled(self, schedule_id: str, expected_next_run: datetime) -> bool:
        """Entry point for the external timer. Returns False for duplicates."""
        return self.runner.fire(
            schedule_id,
            expected_next_run,
            regenerate=self._regenerate,
            now=self.clock(),
        )

    def _regenerate(self, schedule: ScheduledReport) -> Report:
        """Re-run a scheduled report over a window of the same length ending today."""
        source = self.get_report(schedule.user_id, schedule.report_id)
        today = self._today()
        request = ReportRequest(
            type=source.type,
            name=source.name,
            description=source.description,
            date_range=DateRange(
                start=today - timedelta(days=source.date_range.days - 1), end=today
            ),
            campaign_ids=source.campaign_ids,
            metrics=source.metrics,
            filters=source.filters,
            group_by=source.group_by,
            format=source.format,
        )
        return self.generate_report(schedule.user_id, request)

    # =========================================================================
    # COMPARISON
    # =========================================================================

    def compare(
        self,
        user_id: str,
        mode: str,
        subjects: list[Any],
        metrics: list[str] | None = None,
    ) -> dict[str, Any]:
        """Compare campaigns (trailing window) or periods side by side."""
        result = self.comparator.compare(mode, user_id, subjects, metrics, today=self._today())
        return result.to_dict()
