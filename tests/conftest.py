"""Shared fixtures: two campaigns of one user with January 2024 metrics."""

from datetime import date, datetime

import pytest

from campaign_analytics.models import Ad, Campaign, DateRange, MetricRecord
from campaign_analytics.stores import (
    InMemoryCampaignStore,
    InMemoryMetricStore,
    InMemoryReportStore,
    InMemoryScheduleStore,
)

USER_ID = "user-1"
OTHER_USER_ID = "user-2"


class RecordingMetricStore(InMemoryMetricStore):
    """In-memory store that remembers every fetch."""

    def __init__(self, records: list[MetricRecord] | None = None):
        super().__init__(records)
        self.fetches: list[tuple[list[str], DateRange]] = []

    def fetch(self, campaign_ids: list[str], date_range: DateRange) -> list[MetricRecord]:
        self.fetches.append((list(campaign_ids), date_range))
        return super().fetch(campaign_ids, date_range)


@pytest.fixture
def january() -> DateRange:
    """January 2024, both ends included."""
    return DateRange(start=date(2024, 1, 1), end=date(2024, 1, 31))


@pytest.fixture
def campaign_store() -> InMemoryCampaignStore:
    """Campaigns A and B for USER_ID, C for another user."""
    return InMemoryCampaignStore(
        [
            Campaign(
                id="A",
                user_id=USER_ID,
                name="Campaign A",
                objective="CONVERSIONS",
                budget=1000.0,
                spent=400.0,
                created_at=datetime(2023, 12, 1),
                ads=[Ad(id="A-1", title="Ad A-1"), Ad(id="A-2", title="Ad A-2")],
            ),
            Campaign(
                id="B",
                user_id=USER_ID,
                name="Campaign B",
                status="PAUSED",
                objective="TRAFFIC",
                budget=500.0,
                spent=600.0,
                created_at=datetime(2023, 12, 2),
                ads=[Ad(id="B-1", title="Ad B-1")],
            ),
            Campaign(id="C", user_id=OTHER_USER_ID, name="Campaign C", budget=100.0),
        ]
    )


@pytest.fixture
def metric_store() -> RecordingMetricStore:
    """A: 1000/50/5/100 and B: 2000/20/1/50 over January, plus December rows."""
    return RecordingMetricStore(
        [
            MetricRecord(
                date=date(2024, 1, 2), campaign_id="A", ad_id="A-1",
                impressions=600, clicks=30, conversions=3, cost=60.0, revenue=300.0,
            ),
            MetricRecord(
                date=date(2024, 1, 9), campaign_id="A", ad_id="A-2",
                impressions=400, clicks=20, conversions=2, cost=40.0,
            ),
            MetricRecord(
                date=date(2024, 1, 2), campaign_id="B", ad_id="B-1",
                impressions=2000, clicks=20, conversions=1, cost=50.0, revenue=25.0,
            ),
            # Previous period (December 2023)
            MetricRecord(
                date=date(2023, 12, 15), campaign_id="A", ad_id="A-1",
                impressions=500, clicks=25, conversions=2, cost=50.0, revenue=100.0,
            ),
            # Another user's campaign on the same day
            MetricRecord(
                date=date(2024, 1, 2), campaign_id="C",
                impressions=9999, clicks=999, conversions=99, cost=999.0,
            ),
        ]
    )


@pytest.fixture
def report_store() -> InMemoryReportStore:
    return InMemoryReportStore()


@pytest.fixture
def schedule_store() -> InMemoryScheduleStore:
    return InMemoryScheduleStore()
