"""Campaign analytics aggregation and report generation engine."""

from .exceptions import (
    AnalyticsError,
    ComputationError,
    ConfigLoadError,
    ExportIOError,
    NotFoundError,
    ValidationError,
)
from .services import AnalyticsService
from .settings import EngineConfig, load_config

__version__ = "0.1.0"

__all__ = [
    "AnalyticsError",
    "AnalyticsService",
    "ComputationError",
    "ConfigLoadError",
    "EngineConfig",
    "ExportIOError",
    "NotFoundError",
    "ValidationError",
    "load_config",
]
