"""Tests for report rendering and export."""

import json
import zipfile
from datetime import date
from io import BytesIO
from pathlib import Path

import polars as pl
import pytest
from docx import Document

from campaign_analytics.exceptions import ExportIOError, ValidationError
from campaign_analytics.models import DateRange, Report, ReportFormat, ReportType
from campaign_analytics.reports import ReportExporter


@pytest.fixture
def report() -> Report:
    """Completed report with a list payload."""
    return Report(
        id="abc123",
        user_id="user-1",
        name="January performance",
        type=ReportType.CAMPAIGN_PERFORMANCE,
        date_range=DateRange(start=date(2024, 1, 1), end=date(2024, 1, 31)),
        data=[
            {"date": "2024-01-02", "campaignId": "A", "clicks": 30, "ctr": 5.0},
            {"date": "2024-01-09", "campaignId": "A", "clicks": 20, "ctr": 5.0},
        ],
    )


@pytest.fixture
def exporter(tmp_path: Path) -> ReportExporter:
    return ReportExporter(tmp_path / "reports", url_prefix="/uploads/reports")


class TestRender:
    """Tests for ReportExporter.render()."""

    def test_json_round_trips_payload(self, exporter: ReportExporter, report: Report) -> None:
        """JSON output should decode back to the payload."""
        assert json.loads(exporter.render(report, "json")) == report.data

    def test_csv_metadata_then_table(self, exporter: ReportExporter, report: Report) -> None:
        """CSV should start with Report, Type, Period, then a blank line and the header."""
        lines = exporter.render(report, ReportFormat.CSV).decode("utf-8").splitlines()
        assert lines[0] == "Report,January performance"
        assert lines[1] == "Type,CAMPAIGN_PERFORMANCE"
        assert lines[2] == "Period,2024-01-01 - 2024-01-31"
        assert lines[3] == ""
        assert lines[4] == "date,campaignId,clicks,ctr"
        assert len(lines) == 7

    def test_csv_with_dict_payload(self, exporter: ReportExporter, report: Report) -> None:
        """A mapping payload should render as a single data row."""
        budget = report.model_copy(update={"data": {"totalSpent": 100.0, "remaining": 600.0}})
        lines = exporter.render(budget, "csv").decode("utf-8").splitlines()
        assert lines[4] == "totalSpent,remaining"
        assert len(lines) == 6

    def test_spreadsheet_is_xlsx(self, exporter: ReportExporter, report: Report) -> None:
        """Spreadsheet output should be an xlsx archive with one worksheet."""
        content = exporter.render(report, "spreadsheet")
        with zipfile.ZipFile(BytesIO(content)) as archive:
            assert "xl/worksheets/sheet1.xml" in archive.namelist()

    def test_spreadsheet_layout(self, exporter: ReportExporter, report: Report) -> None:
        """Sheet rows should be name, type, period, then header and data rows."""
        content = exporter.render(report, ReportFormat.SPREADSHEET)
        df = pl.read_excel(
            BytesIO(content), sheet_name="Report", has_header=False, infer_schema_length=0
        )
        rows = [row for row in df.rows() if any(v not in (None, "") for v in row)]

        assert rows[0][:2] == ("Report:", "January performance")
        assert rows[1][:2] == ("Type:", "CAMPAIGN_PERFORMANCE")
        assert rows[2][:2] == ("Period:", "2024-01-01 - 2024-01-31")
        assert rows[3] == ("date", "campaignId", "clicks", "ctr")
        assert [row[:2] for row in rows[4:]] == [("2024-01-02", "A"), ("2024-01-09", "A")]

    def test_document_contains_metadata_and_table(
        self, exporter: ReportExporter, report: Report
    ) -> None:
        """Document output should carry the title and a data table."""
        doc = Document(BytesIO(exporter.render(report, "document")))
        texts = [p.text for p in doc.paragraphs]
        assert "January performance" in texts
        assert "Type: CAMPAIGN_PERFORMANCE" in texts
        assert len(doc.tables) == 1
        assert doc.tables[0].rows[0].cells[0].text == "date"

    def test_document_metadata_order(self, exporter: ReportExporter, report: Report) -> None:
        """The document should list name, type and period in that order."""
        doc = Document(BytesIO(exporter.render(report, "document")))
        texts = [p.text for p in doc.paragraphs]
        name = texts.index("January performance")
        report_type = texts.index("Type: CAMPAIGN_PERFORMANCE")
        period = texts.index("Period: 2024-01-01 - 2024-01-31")
        assert name < report_type < period

    def test_unsupported_format(self, exporter: ReportExporter, report: Report) -> None:
        """An unknown format should raise ValidationError."""
        with pytest.raises(ValidationError):
            exporter.render(report, "pdf")

    def test_render_does_not_touch_disk(
        self, exporter: ReportExporter, report: Report
    ) -> None:
        """render() should not create the reports directory."""
        exporter.render(report, "csv")
        assert not exporter.reports_dir.exists()


class TestExport:
    """Tests for ReportExporter.export()."""

    def test_file_name_pattern(self) -> None:
        """File names should follow report-{id}-{millis}.{ext}."""
        name = ReportExporter.file_name("abc123", ReportFormat.SPREADSHEET, 1700000000000)
        assert name == "report-abc123-1700000000000.xlsx"

    def test_writes_artifact(self, exporter: ReportExporter, report: Report) -> None:
        """export() should write the rendered bytes and return the public URL."""
        artifact = exporter.export(report, "csv", epoch_millis=1700000000000)
        assert artifact.path.read_bytes() == artifact.content
        assert artifact.file_url == "/uploads/reports/report-abc123-1700000000000.csv"

    def test_no_partial_files_left(self, exporter: ReportExporter, report: Report) -> None:
        """Only the final artifact should remain in the directory."""
        exporter.export(report, "json", epoch_millis=1)
        assert [p.name for p in exporter.reports_dir.iterdir()] == ["report-abc123-1.json"]

    def test_unwritable_directory_raises(self, tmp_path: Path, report: Report) -> None:
        """A directory that cannot be created should raise ExportIOError."""
        blocker = tmp_path / "reports"
        blocker.write_text("not a directory")
        exporter = ReportExporter(blocker)
        with pytest.raises(ExportIOError):
            exporter.export(report, "csv")
        assert blocker.read_text() == "not a directory"
