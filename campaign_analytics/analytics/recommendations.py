"""Rule-based optimization recommendations."""

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any

from .models import AggregatedMetrics


class Priority(str, Enum):
    """Recommendation priority levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class Recommendation:
    """Single human-readable suggestion."""

    type: str
    priority: Priority
    title: str
    description: str
    impact: Priority


@dataclass
class RecommendationThresholds:
    """Configurable thresholds for recommendation rules.

    CTR and conversion rate are percentages (1.0 = 1%); CPC is currency.
    All comparisons are strict.
    """

    # Improve CTR: ctr < X
    min_ctr: float = 1.0

    # Optimize conversions: conversion rate < X
    min_conversion_rate: float = 2.0

    # Reduce CPC: cpc > X
    max_cpc: float = 2.0


class RecommendationEngine:
    """Deterministic rule evaluator over aggregated metrics.

    Rules run in a fixed order (CTR, conversion rate, CPC) so output order is
    reproducible.

    Usage:
        engine = RecommendationEngine(RecommendationThresholds())
        recommendations = engine.recommend(result.totals)
    """

    def __init__(self, thresholds: RecommendationThresholds | None = None):
        self.thresholds = thresholds or RecommendationThresholds()

    def recommend(self, metrics: AggregatedMetrics) -> list[Recommendation]:
        """Run all rules and return triggered recommendations (may be empty)."""
        recommendations: list[Recommendation] = []

        recommendations.extend(self._check_ctr(metrics))
        recommendations.extend(self._check_conversion_rate(metrics))
        recommendations.extend(self._check_cpc(metrics))

        return recommendations

    def _check_ctr(self, metrics: AggregatedMetrics) -> list[Recommendation]:
        if metrics.ctr >= self.thresholds.min_ctr:
            return []
        return [
            Recommendation(
                type="improve_ctr",
                priority=Priority.HIGH,
                title="Improve click-through rate",
                description=(
                    f"CTR is {metrics.ctr:.2f}%, below {self.thresholds.min_ctr:.2f}%. "
                    "Try refreshing the creatives or sharpening the ad message."
                ),
                impact=Priority.HIGH,
            )
        ]

    def _check_conversion_rate(self, metrics: AggregatedMetrics) -> list[Recommendation]:
        if metrics.conversion_rate >= self.thresholds.min_conversion_rate:
            return []
        return [
            Recommendation(
                type="improve_conversion",
                priority=Priority.HIGH,
                title="Optimize conversions",
                description=(
                    f"Conversion rate is {metrics.conversion_rate:.2f}%, below "
                    f"{self.thresholds.min_conversion_rate:.2f}%. Review the landing "
                    "page and simplify the conversion path."
                ),
                impact=Priority.HIGH,
            )
        ]

    def _check_cpc(self, metrics: AggregatedMetrics) -> list[Recommendation]:
        if metrics.cpc <= self.thresholds.max_cpc:
            return []
        return [
            Recommendation(
                type="reduce_cpc",
                priority=Priority.MEDIUM,
                title="Reduce cost per click",
                description=(
                    f"CPC is {metrics.cpc:.2f}, above {self.thresholds.max_cpc:.2f}. "
                    "Narrow targeting to reduce bidding competition."
                ),
                impact=Priority.MEDIUM,
            )
        ]

    def to_dict(self, recommendations: list[Recommendation]) -> list[dict[str, Any]]:
        """Convert recommendations to JSON-serializable format."""
        return [
            {
                **asdict(r),
                "priority": r.priority.value,
                "impact": r.impact.value,
            }
            for r in recommendations
        ]
