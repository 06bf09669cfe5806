"""
PDF export of the engagement report.

The document is built with fpdf2 from three inputs:
    - the drilldown controller (level, navigation path, event/date filters)
    - key metrics from /api/engagement/analytics, or at member level the
      summary of /api/engagement/student-friendly
    - detail rows from /api/engagement/export-details (optional: a failed
      fetch drops the details section, the rest of the report still renders)

Any failure while laying out the document raises ExportError with the
message the UI shows in its alert dialog.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable, Mapping

from fpdf import FPDF
from fpdf.enums import XPos, YPos

from ministry.client import ApiError, MinistryClient
from ministry.drilldown import HierarchicalDrilldownController
from utils.formatting import capitalize_level, format_count, format_short_date, truncate_cell
from utils.query import is_unset

logger = logging.getLogger(__name__)

EXPORT_ERROR_MESSAGE = "Error generating PDF. Please try again."

DETAIL_HEADERS = ("Type", "Member", "Event/Designation", "Status", "Date", "Region")
_COL_WIDTHS = (22, 36, 40, 26, 28, 28)


class ExportError(Exception):
    """The PDF could not be generated."""


@dataclass
class ExportResult:
    filename: str
    content: bytes
    total_count: int = 0


def report_filename(report_type: str, scope: str, day: date) -> str:
    """``{ReportType}_Report_{scope}_{YYYY-MM-DD}.pdf``"""
    return f"{report_type}_Report_{scope}_{day.isoformat()}.pdf"


def detail_cells(record: Mapping[str, Any]) -> list[str]:
    """One table row for an engagement detail record."""
    values = (
        record.get("type"),
        record.get("memberName"),
        record.get("eventName") or record.get("designationName"),
        record.get("attendanceStatus") or record.get("status"),
        record.get("recordedAt") or record.get("createdAt"),
        record.get("region"),
    )
    cells = []
    for index, value in enumerate(values):
        if not value:
            text = "N/A"
        elif index == 4:
            text = format_short_date(value)
        else:
            text = str(value)
        cells.append(truncate_cell(text))
    return cells


def student_key_metrics(summary: Mapping[str, Any]) -> dict[str, Any]:
    """Executive-summary metrics from a small group's student summary."""
    return {
        "totalEngagement": summary.get("totalMembers") or 0,
        "averageEngagementRate": summary.get("averageAttendanceRate") or 0,
        "eventParticipation": summary.get("totalActiveEvents") or 0,
        "designationParticipation": summary.get("totalInactiveEvents") or 0,
        "monthlyGrowth": 0,
    }


def _latin1(text: str) -> str:
    # Core fonts only cover latin-1.
    return text.encode("latin-1", "replace").decode("latin-1")


def _event_name(selected_event: str, events: Iterable[Any]) -> str:
    for event in events:
        data = event.to_dict() if hasattr(event, "to_dict") else event
        if selected_event in (data.get("key"), str(data.get("id"))):
            return data.get("name") or selected_event
    return selected_event


class EngagementReportExporter:
    """Build the engagement report PDF for a drilldown state.

    Args:
        client: MinistryClient used for key metrics and detail rows.
        max_rows: Detail rows included in the table (default 50).
    """

    def __init__(self, client: MinistryClient, max_rows: int = 50) -> None:
        self.client = client
        self.max_rows = max_rows

    # ── data ──────────────────────────────────────────────────────────────

    def fetch_key_metrics(self, controller: HierarchicalDrilldownController) -> dict[str, Any]:
        params = controller.export_params()
        member_level = controller.current_level == "member"
        try:
            if member_level:
                data = self.client.engagement_level("student-friendly", params)
            else:
                data = self.client.engagement_analytics(params)
        except ApiError as exc:
            logger.error("Error fetching engagement analytics: %s", exc)
            return {}
        if not isinstance(data, Mapping):
            return {}
        if member_level:
            return student_key_metrics(data.get("summary") or {})
        return dict(data.get("keyMetrics") or {})

    def fetch_details(self, controller: HierarchicalDrilldownController) -> dict[str, Any] | None:
        try:
            data = self.client.export_details(controller.export_params())
        except ApiError as exc:
            logger.error("Error fetching engagement details: %s", exc)
            return None
        return data if isinstance(data, dict) else None

    # ── document ──────────────────────────────────────────────────────────

    def export(
        self,
        controller: HierarchicalDrilldownController,
        events: Iterable[Any] = (),
        key_metrics: Mapping[str, Any] | None = None,
        today: date | None = None,
    ) -> ExportResult:
        today = today or date.today()
        if key_metrics is None:
            key_metrics = self.fetch_key_metrics(controller)
        details = self.fetch_details(controller)
        try:
            content = self._build(controller, list(events), key_metrics, details, today)
        except Exception as exc:
            logger.exception("Error generating PDF")
            raise ExportError(EXPORT_ERROR_MESSAGE) from exc

        total = 0
        if details:
            total = details.get("totalCount") or len(details.get("engagementDetails") or [])
        filename = report_filename("Engagement", controller.current_level, today)
        logger.info("Exported %s (%d bytes, %d detail records)", filename, len(content), total)
        return ExportResult(filename, content, total)

    def _line(self, pdf: FPDF, text: str, height: float = 7) -> None:
        pdf.cell(0, height, _latin1(text), new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    def _build(
        self,
        controller: HierarchicalDrilldownController,
        events: list[Any],
        key_metrics: Mapping[str, Any],
        details: Mapping[str, Any] | None,
        today: date,
    ) -> bytes:
        pdf = FPDF()
        pdf.set_auto_page_break(auto=True, margin=15)
        pdf.add_page()

        pdf.set_font("Helvetica", "B", 20)
        self._line(pdf, "Ministry Management System", 12)
        pdf.set_font("Helvetica", size=14)
        self._line(pdf, "Engagement Reports & Analytics", 9)
        pdf.ln(4)

        pdf.set_font("Helvetica", size=10)
        self._line(pdf, f"Generated on: {format_short_date(today)}", 6)
        self._line(pdf, f"Current Level: {capitalize_level(controller.current_level)}", 6)
        if not is_unset(controller.selected_event):
            name = _event_name(controller.selected_event, events)
            self._line(pdf, f"Selected Event: {name}", 6)
        if controller.selected_date:
            self._line(pdf, f"Selected Date: {format_short_date(controller.selected_date)}", 6)
        if controller.stack:
            self._line(pdf, f"Navigation Path: {controller.navigation_path()}", 6)
        pdf.ln(6)

        pdf.set_font("Helvetica", "B", 14)
        self._line(pdf, "Executive Summary", 9)
        pdf.set_font("Helvetica", size=10)
        summary = (
            ("Total Engagement", format_count(key_metrics.get("totalEngagement") or 0)),
            ("Average Engagement Rate", f"{key_metrics.get('averageEngagementRate') or 0}%"),
            ("Event Participation", format_count(key_metrics.get("eventParticipation") or 0)),
            ("Designation Participation",
             format_count(key_metrics.get("designationParticipation") or 0)),
            ("Monthly Growth", f"{key_metrics.get('monthlyGrowth') or 0}%"),
        )
        for label, value in summary:
            self._line(pdf, f"{label}: {value}", 6)

        if details:
            self._details(pdf, details)

        return bytes(pdf.output())

    def _details(self, pdf: FPDF, details: Mapping[str, Any]) -> None:
        records = list(details.get("engagementDetails") or [])
        pdf.ln(6)
        pdf.set_font("Helvetica", "B", 14)
        self._line(pdf, "Engagement Details", 9)
        pdf.set_font("Helvetica", size=10)

        applied = details.get("appliedFilters") or {}
        shown = [f"{k}: {v}" for k, v in applied.items() if v and v != "all"]
        if shown:
            self._line(pdf, f"Applied Filters: {', '.join(shown)}", 6)
        total = details.get("totalCount")
        self._line(pdf, f"Total Engagement Records: {total if total is not None else len(records)}", 6)
        pdf.ln(3)

        if not records:
            return
        pdf.set_font("Helvetica", "B", 9)
        for width, header in zip(_COL_WIDTHS, DETAIL_HEADERS):
            pdf.cell(width, 7, header, border=1)
        pdf.ln()
        pdf.set_font("Helvetica", size=8)
        for record in records[:self.max_rows]:
            for width, text in zip(_COL_WIDTHS, detail_cells(record)):
                pdf.cell(width, 6, _latin1(text), border=1)
            pdf.ln()
