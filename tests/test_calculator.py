"""Tests for the derived-metric calculator."""

import math

import pytest

from campaign_analytics.analytics import calculator
from campaign_analytics.analytics.models import AggregatedMetrics
from campaign_analytics.exceptions import ComputationError


class TestRatios:
    """Tests for the ratio functions."""

    def test_ctr_percentage(self) -> None:
        """CTR should be clicks per impression in percent."""
        assert calculator.ctr(50, 1000) == pytest.approx(5.0)

    def test_conversion_rate_percentage(self) -> None:
        """Conversion rate should be conversions per click in percent."""
        assert calculator.conversion_rate(6, 70) == pytest.approx(8.5714, rel=1e-4)

    def test_cpc_and_cpa(self) -> None:
        """CPC and CPA should divide cost by clicks and conversions."""
        assert calculator.cpc(150.0, 70) == pytest.approx(2.142857, rel=1e-5)
        assert calculator.cpa(150.0, 6) == pytest.approx(25.0)

    def test_roas(self) -> None:
        """ROAS should be revenue over cost."""
        assert calculator.roas(300.0, 100.0) == pytest.approx(3.0)

    def test_budget_utilization_can_exceed_100(self) -> None:
        """Overspend should show as utilization above 100%."""
        assert calculator.budget_utilization(600.0, 500.0) == pytest.approx(120.0)

    @pytest.mark.parametrize(
        "func, args",
        [
            (calculator.ctr, (10, 0)),
            (calculator.conversion_rate, (3, 0)),
            (calculator.cpc, (12.5, 0)),
            (calculator.cpa, (12.5, 0)),
            (calculator.roas, (40.0, 0.0)),
            (calculator.budget_utilization, (10.0, 0.0)),
        ],
    )
    def test_zero_denominator_is_undefined(self, func, args) -> None:
        """Zero denominators should yield DIVISION_UNDEFINED, never NaN."""
        result = func(*args)
        assert result == calculator.DIVISION_UNDEFINED
        assert math.isfinite(result)


class TestGrowth:
    """Tests for growth()."""

    def test_growth_percentage(self) -> None:
        """Growth should be the relative change in percent."""
        assert calculator.growth(150, 100) == pytest.approx(50.0)
        assert calculator.growth(50, 100) == pytest.approx(-50.0)

    def test_growth_from_zero_with_activity(self) -> None:
        """Growth from zero to something should be 100."""
        assert calculator.growth(10, 0) == 100.0

    def test_growth_from_zero_to_zero(self) -> None:
        """Growth from zero to zero should be 0."""
        assert calculator.growth(0, 0) == 0.0


class TestEnsureFinite:
    """Tests for ensure_finite()."""

    def test_passes_finite_value(self) -> None:
        """Finite values should be returned unchanged."""
        assert calculator.ensure_finite("ctr", 2.5) == 2.5

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
    def test_raises_on_non_finite(self, value: float) -> None:
        """NaN and Infinity should raise ComputationError naming the metric."""
        with pytest.raises(ComputationError, match="cpc"):
            calculator.ensure_finite("cpc", value)


class TestAggregatedMetrics:
    """Tests for AggregatedMetrics."""

    def test_addition_sums_counters(self) -> None:
        """Adding two metric sets should sum each counter."""
        a = AggregatedMetrics(impressions=1000, clicks=50, conversions=5, cost=100.0)
        b = AggregatedMetrics(impressions=2000, clicks=20, conversions=1, cost=50.0)
        total = a + b
        assert (total.impressions, total.clicks, total.conversions) == (3000, 70, 6)
        assert total.cost == pytest.approx(150.0)

    def test_ratios_are_not_summed(self) -> None:
        """Totals' ratios should come from summed counters, not summed ratios."""
        a = AggregatedMetrics(impressions=1000, clicks=50, conversions=5, cost=100.0)
        b = AggregatedMetrics(impressions=2000, clicks=20, conversions=1, cost=50.0)
        metrics = (a + b).to_dict()
        assert metrics["ctr"] == 2.33
        assert metrics["conversionRate"] == 8.57
        assert metrics["cpc"] == 2.14
        assert metrics["cpa"] == 25.0

    def test_empty_metrics_are_zero(self) -> None:
        """An empty metric set should report zeros for every ratio."""
        metrics = AggregatedMetrics().to_dict()
        assert all(v == 0 for v in metrics.values())

    def test_to_dict_field_selection(self) -> None:
        """to_dict(fields) should keep only the requested keys, in order."""
        metrics = AggregatedMetrics(impressions=10, clicks=1).to_dict(["ctr", "clicks"])
        assert list(metrics) == ["ctr", "clicks"]
