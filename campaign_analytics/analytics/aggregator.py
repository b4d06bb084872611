"""Metric aggregator - per-campaign and global totals for a date range."""

from dataclasses import dataclass

import polars as pl
from loguru import logger

from ..exceptions import NotFoundError
from ..models.records import Campaign, DateRange
from ..models.report import coerce_enum
from ..stores import CampaignStore, MetricStore
from . import calculator
from .bucketizer import bucketize_frame
from .expressions import Granularity, base_totals_expr, records_to_frame
from .models import (
    BASE_COUNTERS,
    AggregatedMetrics,
    AggregateResult,
    CampaignAggregate,
)


@dataclass
class MetricAggregator:
    """Loads a user's metric rows and sums them per campaign and globally.

    Attributes:
        campaigns: Campaign registry
        metrics: Metric row source
        revenue_per_conversion: Revenue estimate for rows without revenue
    """

    campaigns: CampaignStore
    metrics: MetricStore
    revenue_per_conversion: float = 50.0

    # =========================================================================
    # LOADING
    # =========================================================================

    def resolve_campaigns(
        self,
        user_id: str,
        campaign_filter: list[str] | None = None,
    ) -> list[Campaign]:
        """User's campaigns in registry order, optionally restricted.

        Raises:
            NotFoundError: If a filtered id is not owned by the user.
        """
        owned = self.campaigns.list_for_user(user_id)
        if not campaign_filter:
            return owned

        owned_ids = {c.id for c in owned}
        for campaign_id in campaign_filter:
            if campaign_id not in owned_ids:
                raise NotFoundError("Campaign", campaign_id)
        wanted = set(campaign_filter)
        return [c for c in owned if c.id in wanted]

    def load_frame(self, campaigns: list[Campaign], date_range: DateRange) -> pl.DataFrame:
        """Metric rows of ``campaigns`` inside ``date_range`` as a DataFrame."""
        records = self.metrics.fetch([c.id for c in campaigns], date_range)
        # Guard against stores returning rows outside the requested scope
        ids = {c.id for c in campaigns}
        records = [r for r in records if r.campaign_id in ids and date_range.contains(r.date)]
        return records_to_frame(records, self.revenue_per_conversion)

    # =========================================================================
    # AGGREGATION
    # =========================================================================

    def per_campaign_totals(
        self,
        campaigns: list[Campaign],
        df: pl.DataFrame,
    ) -> list[CampaignAggregate]:
        """Sum counters per campaign. Campaigns without rows get zeros."""
        sums: dict[str, dict] = {}
        if len(df) > 0:
            grouped = df.group_by("campaign_id").agg(base_totals_expr())
            sums = {row["campaign_id"]: row for row in grouped.to_dicts()}

        result: list[CampaignAggregate] = []
        for campaign in campaigns:
            row = sums.get(campaign.id, {})
            result.append(
                CampaignAggregate(
                    campaign=campaign,
                    metrics=AggregatedMetrics(
                        impressions=row.get("impressions", 0),
                        clicks=row.get("clicks", 0),
                        conversions=row.get("conversions", 0),
                        cost=row.get("cost", 0.0),
                        revenue=row.get("revenue", 0.0),
                        budget=campaign.budget,
                        spent=campaign.spent,
                    ),
                )
            )
        return result

    def aggregate(
        self,
        user_id: str,
        date_range: DateRange,
        campaign_filter: list[str] | None = None,
        granularity: Granularity | str = Granularity.DAILY,
    ) -> AggregateResult:
        """Aggregate a user's campaigns over ``date_range``.

        Global totals are the sum of per-campaign totals. The previous period
        has the same number of days and ends the day before ``date_range.start``.

        Returns:
            AggregateResult with totals, per-campaign rows, timeline buckets,
            previous-period totals and growth per base counter.
        """
        granularity = coerce_enum(Granularity, granularity, "granularity")
        campaigns = self.resolve_campaigns(user_id, campaign_filter)

        df = self.load_frame(campaigns, date_range)
        per_campaign = self.per_campaign_totals(campaigns, df)
        totals = sum((c.metrics for c in per_campaign), AggregatedMetrics())
        timeline = bucketize_frame(df, granularity)

        previous_range = date_range.previous()
        previous_totals = self.totals(campaigns, previous_range)

        growth = {
            counter: calculator.round_metric(
                calculator.growth(getattr(totals, counter), getattr(previous_totals, counter))
            )
            for counter in BASE_COUNTERS
        }

        logger.debug(
            "Aggregated {} rows for user {} over {} to {} ({} campaigns)",
            len(df),
            user_id,
            date_range.start,
            date_range.end,
            len(campaigns),
        )

        return AggregateResult(
            date_range=date_range,
            totals=totals,
            per_campaign=per_campaign,
            timeline=timeline,
            previous_period_totals=previous_totals,
            growth=growth,
        )

    def totals(self, campaigns: list[Campaign], date_range: DateRange) -> AggregatedMetrics:
        """Global totals of ``campaigns`` over ``date_range``."""
        df = self.load_frame(campaigns, date_range)
        return sum(
            (c.metrics for c in self.per_campaign_totals(campaigns, df)),
            AggregatedMetrics(),
        )

    def aggregate_totals(
        self,
        user_id: str,
        date_range: DateRange,
        campaign_filter: list[str] | None = None,
    ) -> AggregatedMetrics:
        """Global totals only, without timeline or growth."""
        return self.totals(self.resolve_campaigns(user_id, campaign_filter), date_range)
