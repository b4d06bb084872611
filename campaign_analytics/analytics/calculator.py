"""Derived-metric calculator.

Pure functions turning raw counters into ratios. Every function is total:
a zero denominator yields ``DIVISION_UNDEFINED`` instead of NaN/Infinity.
Percentages are returned unrounded; use ``round_metric`` only for display.
"""

import math

from ..exceptions import ComputationError

# Returned whenever a ratio's denominator is zero
DIVISION_UNDEFINED = 0.0

DISPLAY_DECIMALS = 2


def safe_divide(numerator: float, denominator: float) -> float:
    """numerator / denominator, or DIVISION_UNDEFINED when denominator is 0."""
    if not denominator:
        return DIVISION_UNDEFINED
    return numerator / denominator


def ctr(clicks: float, impressions: float) -> float:
    """Click-through rate as a percentage."""
    return safe_divide(clicks, impressions) * 100


def conversion_rate(conversions: float, clicks: float) -> float:
    """Conversions per click as a percentage."""
    return safe_divide(conversions, clicks) * 100


def cpc(cost: float, clicks: float) -> float:
    """Cost per click."""
    return safe_divide(cost, clicks)


def cpa(cost: float, conversions: float) -> float:
    """Cost per acquisition."""
    return safe_divide(cost, conversions)


def roas(revenue: float, cost: float) -> float:
    """Return on ad spend (revenue / cost)."""
    return safe_divide(revenue, cost)


def budget_utilization(spent: float, budget: float) -> float:
    """Share of budget spent, as a percentage."""
    return safe_divide(spent, budget) * 100


def growth(current: float, previous: float) -> float:
    """Period-over-period change as a percentage.

    A zero previous value is a business convention, not an error:
    growth is 100 when something appeared, 0 when nothing did.
    """
    if not previous:
        return 100.0 if current > 0 else 0.0
    return (current - previous) / previous * 100


def round_metric(value: float, decimals: int = DISPLAY_DECIMALS) -> float:
    """Round a metric for display."""
    return round(value, decimals)


def ensure_finite(metric_name: str, value: float) -> float:
    """Raise ComputationError if a NaN or Infinity leaked through."""
    if math.isnan(value) or math.isinf(value):
        raise ComputationError(metric_name, value)
    return value
