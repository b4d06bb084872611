from .analytics_service import AnalyticsService, period_range

__all__ = ["AnalyticsService", "period_range"]
