"""Attendance tracking and engagement reporting controllers."""

from ministry.client import ApiError, ApiResponse, MinistryClient
from ministry.scope import ScopeCascade, ScopeSelection, UserScope
from ministry.events import EventFilterResolver, EventRef
from ministry.dates import DateAvailabilityResolver
from ministry.marking import AttendanceMarkingSession, SubmitResult
from ministry.records import AttendanceRecordBrowser
from ministry.drilldown import HierarchicalDrilldownController, NavigationStackEntry
from ministry.table import Column, ComparisonCell, PowerBITable, render_cell
from ministry.export import EngagementReportExporter, ExportError, ExportResult

__all__ = [
    "ApiError",
    "ApiResponse",
    "MinistryClient",
    "ScopeCascade",
    "ScopeSelection",
    "UserScope",
    "EventFilterResolver",
    "EventRef",
    "DateAvailabilityResolver",
    "AttendanceMarkingSession",
    "SubmitResult",
    "AttendanceRecordBrowser",
    "HierarchicalDrilldownController",
    "NavigationStackEntry",
    "Column",
    "ComparisonCell",
    "PowerBITable",
    "render_cell",
    "EngagementReportExporter",
    "ExportError",
    "ExportResult",
]
