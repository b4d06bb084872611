"""Trend detection over timeline buckets using scipy."""

from typing import Literal

import numpy as np
from loguru import logger
from scipy import stats

from ..exceptions import ValidationError
from .models import TimelineBucket

Trend = Literal["increasing", "decreasing", "stable"]

TREND_COUNTERS = ("impressions", "clicks", "conversions", "cost", "revenue")


def detect_trend(
    values: list[float] | np.ndarray,
    metric: str = "value",
    p_threshold: float = 0.05,
    r_threshold: float = 0.3,
) -> Trend:
    """Direction of a series of bucket totals.

    A least-squares line is fitted over the bucket index. The trend counts
    only when the fit is significant (``p < p_threshold``) and the
    correlation is strong enough (``|r| > r_threshold``). Series shorter
    than three buckets or without variance are stable.
    """
    if len(values) < 3:
        return "stable"

    series = np.asarray(values, dtype=float)
    if np.ptp(series) == 0:
        return "stable"

    fit = stats.linregress(np.arange(len(series)), series)
    logger.debug(
        "Trend fit for {} over {} buckets: slope={:.3f} r={:.3f} p={:.4f}",
        metric,
        len(series),
        fit.slope,
        fit.rvalue,
        fit.pvalue,
    )

    if fit.pvalue >= p_threshold or abs(fit.rvalue) <= r_threshold:
        return "stable"
    return "increasing" if fit.slope > 0 else "decreasing"


def timeline_trend(timeline: list[TimelineBucket], metric: str = "impressions") -> Trend:
    """Trend of one counter across ordered timeline buckets.

    Raises:
        ValidationError: ``metric`` is not a bucket counter.
    """
    if metric not in TREND_COUNTERS:
        raise ValidationError(
            f"Unknown trend metric: {metric!r}. Allowed: {list(TREND_COUNTERS)}",
            errors=[{"field": "metric", "value": metric}],
        )
    return detect_trend([getattr(bucket, metric) for bucket in timeline], metric=metric)
