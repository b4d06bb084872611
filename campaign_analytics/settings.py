"""Engine configuration loaded from YAML."""

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from .analytics.recommendations import RecommendationThresholds
from .exceptions import ConfigLoadError

DEFAULT_CONFIG_PATH = Path(__file__).parent / "config" / "engine.yaml"


class EngineConfig(BaseModel):
    """Tunable constants of the analytics engine."""

    # Revenue estimate per conversion when a record carries no revenue.
    # Not sourced business data: override per deployment.
    revenue_per_conversion: float = 50.0

    reports_dir: Path = Path("uploads/reports")
    reports_url_prefix: str = "/uploads/reports"

    comparison_window_days: int = Field(default=30, gt=0)
    top_campaigns_limit: int = Field(default=5, gt=0)
    default_period: str = "30d"

    thresholds: RecommendationThresholds = Field(default_factory=RecommendationThresholds)

    log_level: str = "INFO"
    log_file: Optional[str] = None


def load_config(path: Path | None = None) -> EngineConfig:
    """Load configuration from YAML.

    Args:
        path: Path to a YAML file. Defaults to the bundled engine.yaml.

    Raises:
        ConfigLoadError: If the file is unreadable or fails validation.
    """
    path = path or DEFAULT_CONFIG_PATH
    try:
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigLoadError(f"Failed to load config from {path}: {e}") from e

    try:
        return EngineConfig.model_validate(raw)
    except PydanticValidationError as e:
        raise ConfigLoadError(f"Invalid config in {path}: {e}") from e
