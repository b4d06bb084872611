"""Reusable Polars expressions for metric aggregation."""

from collections.abc import Iterable
from enum import Enum

import polars as pl

from ..models.records import MetricRecord
from ..models.report import ReportFilters

RECORD_SCHEMA: dict[str, pl.DataType] = {
    "date": pl.Date,
    "campaign_id": pl.String,
    "ad_id": pl.String,
    "impressions": pl.Int64,
    "clicks": pl.Int64,
    "conversions": pl.Int64,
    "cost": pl.Float64,
    "revenue": pl.Float64,
}

SUMMED_COLUMNS = ("impressions", "clicks", "conversions", "cost", "revenue")


class Granularity(str, Enum):
    """Timeline bucket width."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


def records_to_frame(
    records: Iterable[MetricRecord],
    revenue_per_conversion: float,
) -> pl.DataFrame:
    """Build a typed DataFrame from metric records.

    Missing revenue is filled with the conversion-based estimate, so every
    downstream aggregate sums the same revenue figure.
    """
    columns: dict[str, list] = {name: [] for name in RECORD_SCHEMA}
    for record in records:
        columns["date"].append(record.date)
        columns["campaign_id"].append(record.campaign_id)
        columns["ad_id"].append(record.ad_id)
        columns["impressions"].append(record.impressions)
        columns["clicks"].append(record.clicks)
        columns["conversions"].append(record.conversions)
        columns["cost"].append(float(record.cost))
        columns["revenue"].append(record.effective_revenue(revenue_per_conversion))
    return pl.DataFrame(columns, schema=RECORD_SCHEMA)


# =============================================================================
# AGGREGATIONS
# =============================================================================


def base_totals_expr() -> list[pl.Expr]:
    """Sums of the base counters, keeping their column names."""
    return [pl.col(c).sum().alias(c) for c in SUMMED_COLUMNS]


def bucket_key_expr(granularity: Granularity) -> pl.Expr:
    """Timeline bucket key for each row.

    daily   -> ISO date
    weekly  -> ISO date of the Monday starting the ISO week
    monthly -> YYYY-MM
    """
    col = pl.col("date")
    if granularity == Granularity.DAILY:
        key = col.dt.strftime("%Y-%m-%d")
    elif granularity == Granularity.WEEKLY:
        # truncate("1w") aligns on Monday
        key = col.dt.truncate("1w").dt.strftime("%Y-%m-%d")
    else:
        key = col.dt.strftime("%Y-%m")
    return key.alias("bucket_key")


def min_counter_filter_expr(filters: ReportFilters) -> pl.Expr:
    """Row filter for the ``minImpressions`` / ``minClicks`` report filters."""
    expr = pl.lit(True)
    if filters.min_impressions is not None:
        expr = expr & (pl.col("impressions") >= filters.min_impressions)
    if filters.min_clicks is not None:
        expr = expr & (pl.col("clicks") >= filters.min_clicks)
    return expr
