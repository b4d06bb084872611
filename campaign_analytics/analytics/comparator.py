"""Side-by-side comparison of campaigns or time periods."""

from datetime import date
from enum import Enum
from typing import Any

from ..exceptions import ValidationError
from ..models.records import DateRange
from ..models.report import coerce_enum
from .aggregator import MetricAggregator
from .models import METRIC_FIELDS, ComparisonEntry, ComparisonResult


class ComparisonMode(str, Enum):
    CAMPAIGNS = "campaigns"
    PERIODS = "periods"


class Comparator:
    """Builds one metric set per subject by delegating to the aggregator.

    Usage:
        comparator = Comparator(aggregator, window_days=30)
        result = comparator.compare("periods", user_id, [{"start": ..., "end": ...}])
    """

    def __init__(self, aggregator: MetricAggregator, window_days: int = 30):
        self.aggregator = aggregator
        self.window_days = window_days

    def compare(
        self,
        mode: ComparisonMode | str,
        user_id: str,
        subjects: list[Any],
        metrics: list[str] | None = None,
        today: date | None = None,
    ) -> ComparisonResult:
        """Compare subjects.

        Args:
            mode: "campaigns" (subjects are campaign ids) or "periods"
                (subjects are {start, end} mappings or DateRange objects)
            user_id: Owner of the compared data
            subjects: Campaign ids or date ranges
            metrics: Payload keys to keep per entry (default: all)
            today: End of the trailing window for campaign mode

        Raises:
            ValidationError: Unknown mode, metric or malformed period.
        """
        mode = coerce_enum(ComparisonMode, mode, "comparison mode")
        fields = self._validate_metrics(metrics)

        if mode == ComparisonMode.CAMPAIGNS:
            entries = self._compare_campaigns(user_id, subjects, fields, today or date.today())
        else:
            entries = self._compare_periods(user_id, subjects, fields)
        return ComparisonResult(mode=mode.value, entries=entries)

    def _compare_campaigns(
        self,
        user_id: str,
        campaign_ids: list[str],
        fields: list[str] | None,
        today: date,
    ) -> list[ComparisonEntry]:
        window = DateRange.trailing(self.window_days, today)
        campaigns = [
            self.aggregator.resolve_campaigns(user_id, [campaign_id])[0]
            for campaign_id in campaign_ids
        ]
        entries: list[ComparisonEntry] = []
        for campaign in campaigns:
            entries.append(
                ComparisonEntry(
                    subject={"id": campaign.id, "name": campaign.name},
                    metrics=self.aggregator.totals([campaign], window),
                    fields=fields,
                )
            )
        return entries

    def _compare_periods(
        self,
        user_id: str,
        periods: list[Any],
        fields: list[str] | None,
    ) -> list[ComparisonEntry]:
        ranges = [self._to_range(period) for period in periods]
        entries: list[ComparisonEntry] = []
        for date_range in ranges:
            entries.append(
                ComparisonEntry(
                    subject=date_range.to_dict(),
                    metrics=self.aggregator.aggregate_totals(user_id, date_range),
                    fields=fields,
                )
            )
        return entries

    @staticmethod
    def _to_range(period: Any) -> DateRange:
        if isinstance(period, DateRange):
            return period
        try:
            return DateRange.model_validate(period)
        except ValueError as e:
            raise ValidationError(f"Invalid period {period!r}: {e}") from e

    @staticmethod
    def _validate_metrics(metrics: list[str] | None) -> list[str] | None:
        if not metrics:
            return None
        unknown = [m for m in metrics if m not in METRIC_FIELDS]
        if unknown:
            raise ValidationError(
                f"Unknown metrics: {unknown}. Allowed: {list(METRIC_FIELDS)}",
                errors=[{"field": "metrics", "value": unknown}],
            )
        return list(metrics)
