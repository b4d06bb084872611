"""Report exporter - serializes a report payload into a downloadable artifact."""

import json
import os
import tempfile
import time
from dataclasses import dataclass
from datetime import date, datetime
from io import BytesIO
from pathlib import Path
from typing import Any

import polars as pl
import xlsxwriter
from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Pt
from loguru import logger

from ..exceptions import ExportIOError
from ..models.report import Report, ReportFormat, coerce_enum


@dataclass(frozen=True)
class ExportArtifact:
    """Encoded report and where it was stored."""

    content: bytes
    file_name: str
    path: Path | None = None
    file_url: str | None = None


def report_metadata(report: Report) -> list[tuple[str, str]]:
    """Metadata rows embedded by every format, in this order."""
    return [
        ("Report", report.name),
        ("Type", report.type.value),
        ("Period", f"{report.date_range.start.isoformat()} - {report.date_range.end.isoformat()}"),
    ]


def payload_records(data: Any) -> list[dict[str, Any]]:
    """Normalize a payload into records for tabular formats.

    A list is one record per item; a mapping is a single record.
    """
    if data is None:
        return []
    if isinstance(data, dict):
        return [data]
    if isinstance(data, list):
        return [item if isinstance(item, dict) else {"value": item} for item in data]
    return [{"value": data}]


def _cell(value: Any) -> Any:
    """Scalar cell value; nested structures are JSON-encoded."""
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return json.dumps(value, default=str)


def tabulate(data: Any) -> tuple[list[str], list[list[Any]]]:
    """Header from the first record's keys and one row per record."""
    records = payload_records(data)
    if not records:
        return [], []
    headers = list(records[0].keys())
    rows = [[_cell(record.get(h)) for h in headers] for record in records]
    return headers, rows


# =============================================================================
# RENDERERS
# =============================================================================


def render_json(report: Report) -> bytes:
    """Pretty-printed payload."""
    return json.dumps(report.data, indent=2, default=str, ensure_ascii=False).encode("utf-8")


def render_csv(report: Report) -> bytes:
    """Metadata lines, a blank line, then the header and data rows."""
    keys, values = zip(*report_metadata(report))
    meta = pl.DataFrame({"key": list(keys), "value": list(values)}).write_csv(
        include_header=False
    )

    headers, rows = tabulate(report.data)
    body = ""
    if headers:
        columns = {h: [row[i] for row in rows] for i, h in enumerate(headers)}
        body = pl.DataFrame(columns, strict=False).write_csv()

    return (meta + "\n" + body).encode("utf-8")


def render_spreadsheet(report: Report) -> bytes:
    """Single sheet: metadata rows, blank row, header row, data rows."""
    buffer = BytesIO()
    workbook = xlsxwriter.Workbook(buffer, {"in_memory": True})
    worksheet = workbook.add_worksheet("Report")
    bold = workbook.add_format({"bold": True})

    row_idx = 0
    for label, value in report_metadata(report):
        worksheet.write(row_idx, 0, f"{label}:", bold)
        worksheet.write(row_idx, 1, value)
        row_idx += 1
    row_idx += 1

    headers, rows = tabulate(report.data)
    if headers:
        worksheet.write_row(row_idx, 0, headers, bold)
        for row in rows:
            row_idx += 1
            worksheet.write_row(row_idx, 0, row)

    workbook.close()
    return buffer.getvalue()


def render_document(report: Report) -> bytes:
    """Paginated document: title block, then a table and a payload dump."""
    doc = Document()

    title = doc.add_heading(report.name, 0)
    title.alignment = WD_ALIGN_PARAGRAPH.CENTER

    for label, value in report_metadata(report)[1:]:
        p = doc.add_paragraph()
        p.add_run(f"{label}: ").bold = True
        p.add_run(value)
    doc.add_paragraph(f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M')}")

    doc.add_page_break()

    headers, rows = tabulate(report.data)
    if isinstance(report.data, list) and headers:
        doc.add_heading("Data", level=1)
        table = doc.add_table(rows=1, cols=len(headers))
        table.style = "Table Grid"
        hdr = table.rows[0].cells
        for i, h in enumerate(headers):
            hdr[i].text = h
        for row in rows:
            cells = table.add_row().cells
            for i, value in enumerate(row):
                cells[i].text = "" if value is None else str(value)

    doc.add_heading("Report data", level=1)
    dump = doc.add_paragraph()
    run = dump.add_run(json.dumps(report.data, indent=2, default=str, ensure_ascii=False))
    run.font.name = "Courier New"
    run.font.size = Pt(8)

    buffer = BytesIO()
    doc.save(buffer)
    return buffer.getvalue()


RENDERERS = {
    ReportFormat.JSON: render_json,
    ReportFormat.CSV: render_csv,
    ReportFormat.SPREADSHEET: render_spreadsheet,
    ReportFormat.DOCUMENT: render_document,
}


# =============================================================================
# EXPORTER
# =============================================================================


class ReportExporter:
    """Writes report artifacts to the reports directory.

    Read-only over the report. Files are written to a temporary name and
    renamed on success, so a visible artifact is always complete.

    Usage:
        exporter = ReportExporter(Path("uploads/reports"))
        artifact = exporter.export(report, "csv")
    """

    def __init__(self, reports_dir: Path, url_prefix: str = "/uploads/reports"):
        self.reports_dir = Path(reports_dir)
        self.url_prefix = url_prefix.rstrip("/")

    def render(self, report: Report, fmt: ReportFormat | str) -> bytes:
        """Encode ``report`` without touching disk.

        Raises:
            ValidationError: Unsupported format.
        """
        fmt = coerce_enum(ReportFormat, fmt, "format")
        return RENDERERS[fmt](report)

    @staticmethod
    def file_name(report_id: str, fmt: ReportFormat, epoch_millis: int | None = None) -> str:
        """``report-{reportId}-{epochMillis}.{ext}``."""
        if epoch_millis is None:
            epoch_millis = int(time.time() * 1000)
        return f"report-{report_id}-{epoch_millis}.{fmt.extension}"

    def export(
        self,
        report: Report,
        fmt: ReportFormat | str,
        epoch_millis: int | None = None,
    ) -> ExportArtifact:
        """Render and persist ``report``.

        Raises:
            ValidationError: Unsupported format.
            ExportIOError: The artifact could not be written.
        """
        fmt = coerce_enum(ReportFormat, fmt, "format")
        content = self.render(report, fmt)
        name = self.file_name(report.id, fmt, epoch_millis)
        path = self.reports_dir / name

        self._write_atomic(path, content)
        logger.info("Exported report {} as {} ({} bytes)", report.id, path, len(content))

        return ExportArtifact(
            content=content,
            file_name=name,
            path=path,
            file_url=f"{self.url_prefix}/{name}",
        )

    def _write_atomic(self, path: Path, content: bytes) -> None:
        try:
            self.reports_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.reports_dir, prefix=".", suffix=".part")
        except OSError as e:
            raise ExportIOError(path, str(e)) from e

        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            raise ExportIOError(path, str(e)) from e
