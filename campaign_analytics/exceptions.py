"""Custom exceptions for the analytics engine."""

from pathlib import Path
from typing import Any


class AnalyticsError(Exception):
    """Base exception for analytics engine errors."""

    pass


class ConfigLoadError(AnalyticsError):
    """Failed to load engine configuration."""

    pass


class ValidationError(AnalyticsError):
    """Request rejected before any data access.

    Raised for bad date ranges, unknown report types, unsupported formats
    and any other out-of-range enumeration input.
    """

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None):
        self.errors = errors or []
        super().__init__(message)


class NotFoundError(AnalyticsError):
    """Resource does not exist or is not owned by the caller."""

    def __init__(self, resource: str, identifier: Any):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} not found: {identifier}")


class ComputationError(AnalyticsError):
    """A NaN or Infinity leaked out of a metric computation."""

    def __init__(self, metric_name: str, value: float):
        self.metric_name = metric_name
        self.value = value
        super().__init__(f"Non-finite value for {metric_name}: {value}")


class ExportIOError(AnalyticsError):
    """Report artifact could not be written."""

    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to write report artifact {path}: {reason}")
