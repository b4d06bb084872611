"""Period bucketizer - groups dated metric rows into timeline buckets."""

from collections.abc import Iterable

import polars as pl

from ..models.records import MetricRecord
from ..models.report import coerce_enum
from .expressions import (
    Granularity,
    base_totals_expr,
    bucket_key_expr,
    records_to_frame,
)
from .models import TimelineBucket


def bucketize_frame(
    df: pl.DataFrame,
    granularity: Granularity | str = Granularity.DAILY,
) -> list[TimelineBucket]:
    """Sum counters per bucket key and return buckets sorted by key.

    Args:
        df: Frame with a ``date`` column and the summed counter columns
        granularity: daily, weekly (Monday-aligned) or monthly

    Returns:
        One TimelineBucket per distinct key, ascending. Empty input gives [].
    """
    granularity = coerce_enum(Granularity, granularity, "granularity")
    if len(df) == 0:
        return []

    buckets = (
        df.with_columns(bucket_key_expr(granularity))
        .group_by("bucket_key")
        .agg(base_totals_expr())
        .sort("bucket_key")
    )

    return [
        TimelineBucket(
            bucket_key=row["bucket_key"],
            impressions=row["impressions"],
            clicks=row["clicks"],
            conversions=row["conversions"],
            cost=row["cost"],
            revenue=row["revenue"],
        )
        for row in buckets.to_dicts()
    ]


def bucketize(
    records: Iterable[MetricRecord],
    granularity: Granularity | str = Granularity.DAILY,
    revenue_per_conversion: float = 0.0,
) -> list[TimelineBucket]:
    """Bucketize raw metric records (see ``bucketize_frame``)."""
    return bucketize_frame(records_to_frame(records, revenue_per_conversion), granularity)
