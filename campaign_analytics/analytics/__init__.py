"""Analytics module for campaign metric aggregation."""

from .aggregator import MetricAggregator
from .bucketizer import bucketize, bucketize_frame
from .comparator import Comparator, ComparisonMode
from .expressions import Granularity
from .models import (
    AggregatedMetrics,
    AggregateResult,
    CampaignAggregate,
    ComparisonEntry,
    ComparisonResult,
    TimelineBucket,
)
from .recommendations import (
    Priority,
    Recommendation,
    RecommendationEngine,
    RecommendationThresholds,
)

__all__ = [
    "AggregateResult",
    "AggregatedMetrics",
    "CampaignAggregate",
    "Comparator",
    "ComparisonEntry",
    "ComparisonMode",
    "ComparisonResult",
    "Granularity",
    "MetricAggregator",
    "Priority",
    "Recommendation",
    "RecommendationEngine",
    "RecommendationThresholds",
    "TimelineBucket",
    "bucketize",
    "bucketize_frame",
]
