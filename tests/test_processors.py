"""Tests for the report type processors."""

import copy

import pytest

from campaign_analytics.exceptions import ValidationError
from campaign_analytics.models import Campaign, ReportType
from campaign_analytics.reports import (
    PROCESSORS,
    ReportInput,
    get_processor,
    report_type_catalog,
)


@pytest.fixture
def rows() -> list[dict]:
    """Two date-grouped rows."""
    return [
        {
            "date": "2024-01-02",
            "campaignId": "A",
            "campaignName": "Campaign A",
            "adId": "A-1",
            "impressions": 600,
            "clicks": 30,
            "conversions": 3,
            "cost": 60.0,
            "revenue": 300.0,
        },
        {
            "date": "2024-01-09",
            "campaignId": "A",
            "campaignName": "Campaign A",
            "adId": "A-2",
            "impressions": 400,
            "clicks": 0,
            "conversions": 0,
            "cost": 40.0,
            "revenue": 0.0,
        },
    ]


@pytest.fixture
def campaigns() -> list[Campaign]:
    return [Campaign(id="A", user_id="u", name="Campaign A", budget=1000.0, spent=400.0)]


class TestRegistry:
    """Tests for the processor registry."""

    def test_every_report_type_registered(self) -> None:
        """Each report type should have exactly one processor."""
        assert set(PROCESSORS) == set(ReportType)

    def test_unknown_type_raises(self) -> None:
        """An unknown type should raise ValidationError."""
        with pytest.raises(ValidationError):
            get_processor("SALES_FORECAST")

    def test_catalog_lists_types(self) -> None:
        """The catalog should describe every type."""
        catalog = report_type_catalog()
        assert {entry["id"] for entry in catalog} == {t.value for t in ReportType}
        assert all(entry["description"] for entry in catalog)


class TestCampaignPerformance:
    """Tests for the CAMPAIGN_PERFORMANCE processor."""

    def test_adds_ratios(self, rows: list[dict]) -> None:
        """Each row should gain ctr, conversionRate, cpc and roas."""
        result = get_processor(ReportType.CAMPAIGN_PERFORMANCE).process(ReportInput(rows=rows))
        assert result[0]["ctr"] == 5.0
        assert result[0]["conversionRate"] == 10.0
        assert result[0]["cpc"] == 2.0
        assert result[0]["roas"] == 5.0

    def test_zero_clicks_row(self, rows: list[dict]) -> None:
        """A row without clicks should get zero ratios."""
        result = get_processor(ReportType.CAMPAIGN_PERFORMANCE).process(ReportInput(rows=rows))
        assert result[1]["cpc"] == 0.0
        assert result[1]["conversionRate"] == 0.0

    def test_does_not_mutate_input(self, rows: list[dict]) -> None:
        """Processing should leave the input rows untouched."""
        before = copy.deepcopy(rows)
        get_processor(ReportType.CAMPAIGN_PERFORMANCE).process(ReportInput(rows=rows))
        assert rows == before


class TestBudgetAnalysis:
    """Tests for the BUDGET_ANALYSIS processor."""

    def test_budget_figures(self, rows: list[dict], campaigns: list[Campaign]) -> None:
        """Totals should come from rows and campaign budgets."""
        result = get_processor(ReportType.BUDGET_ANALYSIS).process(
            ReportInput(rows=rows, campaigns=campaigns)
        )
        assert result["totalSpent"] == 100.0
        assert result["averageCPC"] == pytest.approx(3.33)
        assert result["budgetUtilization"] == 40.0
        assert result["remaining"] == 600.0
        assert len(result["costTrends"]) == 2

    def test_no_clicks_gives_zero_cpc(self, campaigns: list[Campaign]) -> None:
        """Average CPC with zero clicks should be 0, not an error."""
        rows = [{"date": "2024-01-01", "impressions": 10, "clicks": 0, "cost": 5.0}]
        result = get_processor(ReportType.BUDGET_ANALYSIS).process(
            ReportInput(rows=rows, campaigns=campaigns)
        )
        assert result["averageCPC"] == 0.0

    def test_empty_rows(self) -> None:
        """No rows and no campaigns should give an all-zero payload."""
        result = get_processor(ReportType.BUDGET_ANALYSIS).process(ReportInput(rows=[]))
        assert result["totalSpent"] == 0.0
        assert result["budgetUtilization"] == 0.0
        assert result["costTrends"] == []


class TestBreakdownProcessors:
    """Tests for the audience and funnel processors."""

    def test_audience_passes_breakdowns_through(self, rows: list[dict]) -> None:
        """Supplied breakdowns should be returned unchanged."""
        devices = [{"device": "mobile", "share": 70}]
        result = get_processor(ReportType.AUDIENCE_INSIGHTS).process(
            ReportInput(rows=rows, breakdowns={"devices": devices})
        )
        assert result["devices"] == devices
        assert result["demographics"] == []
        assert result["totals"]["impressions"] == 1000

    def test_funnel_stages(self, rows: list[dict]) -> None:
        """Funnel should go impressions, clicks, conversions with rates."""
        result = get_processor(ReportType.CONVERSION_FUNNEL).process(ReportInput(rows=rows))
        assert [s["stage"] for s in result["stages"]] == ["impressions", "clicks", "conversions"]
        assert result["stages"][1]["rate"] == 3.0
        assert result["suppliedStages"] == []


class TestCustom:
    """Tests for the CUSTOM processor."""

    def test_keeps_requested_metrics(self, rows: list[dict]) -> None:
        """Only grouping keys and requested metrics should remain."""
        result = get_processor(ReportType.CUSTOM).process(ReportInput(rows=rows, metrics=["clicks"]))
        assert set(result[0]) == {"date", "campaignId", "campaignName", "adId", "clicks"}

    def test_no_metrics_keeps_all(self, rows: list[dict]) -> None:
        """Without requested metrics rows should be copied whole."""
        result = get_processor(ReportType.CUSTOM).process(ReportInput(rows=rows))
        assert result == rows
