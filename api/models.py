"""
Pydantic request/response models for the reports gateway.

Field names follow the ministry API's camelCase so that payloads pass
through to the browser unchanged.  Optional fields default to None so that
partial upstream responses still validate.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


# ── Errors and health ─────────────────────────────────────────────────────────

class ErrorResponse(BaseModel):
    """Body of every non-2xx gateway response."""
    error: str = Field(..., description="Short error category", examples=["Upstream API error"])
    detail: str | None = Field(None, description="Human-readable detail")
    status_code: int = Field(..., description="HTTP status code", examples=[502])


class HealthOut(BaseModel):
    status: str = Field(..., description="ok | degraded", examples=["ok"])
    upstream: str = Field(..., description="Base URL of the ministry API", examples=["http://localhost:3000"])
    error: str | None = Field(None, description="Upstream error when degraded")


# ── Scope ─────────────────────────────────────────────────────────────────────

class ScopeSelectionModel(BaseModel):
    """A region/university/small group/alumni group selection."""
    regionId: int | None = Field(None, description="Selected region id", examples=[5])
    universityId: int | None = Field(None, description="Selected university id", examples=[12])
    smallGroupId: int | None = Field(None, description="Selected small group id")
    alumniGroupId: int | None = Field(None, description="Selected alumni small group id")


class OptionOut(BaseModel):
    id: int = Field(..., examples=[5])
    name: str = Field(..., examples=["North"])


class ScopeOptionsOut(BaseModel):
    """Cascade state for the scope selectors."""
    selection: ScopeSelectionModel
    userScope: str = Field(..., description="The caller's scope level", examples=["region"])
    regions: list[OptionOut] = Field(default_factory=list)
    universities: list[OptionOut] = Field(default_factory=list)
    smallGroups: list[OptionOut] = Field(default_factory=list)
    alumniGroups: list[OptionOut] = Field(default_factory=list)
    visibleFields: dict[str, bool] = Field(..., description="Selectors the caller may change")
    enabled: dict[str, bool] = Field(..., description="Selectors whose parent is set")
    errors: dict[str, str] = Field(default_factory=dict, description="Per-list load errors")


# ── Events ────────────────────────────────────────────────────────────────────

class EventOut(BaseModel):
    id: int = Field(..., examples=[12])
    key: str = Field(..., description="Select value: type-id", examples=["training-12"])
    name: str = Field(..., examples=["Leadership Training"])
    type: str = Field(..., description="permanent | training", examples=["training"])
    isActive: bool = True
    regionId: int | None = None
    universityId: int | None = None
    smallGroupId: int | None = None
    alumniGroupId: int | None = None
    hierarchicalScope: str = Field(..., description="Derived scope label", examples=["North Makerere"])
    scopeLevel: str = Field(..., examples=["University"])
    totalAttendance: int = 0
    attendanceRate: float = 0.0


class EventStatsOut(BaseModel):
    totalEvents: int = Field(..., examples=[14])
    activeEvents: int = Field(..., examples=[12])
    totalAttendance: int = Field(..., examples=[830])
    averageAttendanceRate: int = Field(..., examples=[74])


class EventListOut(BaseModel):
    events: list[EventOut]
    selectedEvent: str | None = Field(None, description="Selected event key after reconciliation")
    selectionCleared: bool = Field(False, description="True when the requested event fell out of scope")
    stats: EventStatsOut
    error: str | None = None


# ── Dates ─────────────────────────────────────────────────────────────────────

class DateSelectionOut(BaseModel):
    dateFrom: str | None = Field(None, examples=["2025-03-01"])
    dateTo: str | None = Field(None, examples=["2025-03-07"])
    rangeId: str | None = Field(None, examples=["last7days"])


class DateOptionOut(BaseModel):
    value: str = Field(..., examples=["2025-03-02"])
    label: str = Field(..., examples=["Mar 2, 2025"])


class PredefinedRangeOut(BaseModel):
    id: str = Field(..., examples=["last7days"])
    label: str = Field(..., examples=["Last 7 Days"])
    description: str | None = None
    dateFrom: str
    dateTo: str
    available: bool


class QuickActionOut(BaseModel):
    id: str = Field(..., examples=["thisweek"])
    dateFrom: str
    dateTo: str
    enabled: bool


class DatesOut(BaseModel):
    dates: list[str]
    options: list[DateOptionOut]
    predefinedRanges: list[PredefinedRangeOut]
    stats: dict[str, Any]
    quickActions: list[QuickActionOut]
    selected: str = Field(..., description="all | ISO day | range id | custom", examples=["all"])
    selection: DateSelectionOut
    error: str | None = None


# ── Attendance ────────────────────────────────────────────────────────────────

class RosterMemberOut(BaseModel):
    id: int
    name: str
    email: str | None = None
    phone: str | None = None
    type: str | None = None
    memberStatus: str | None = None
    status: str = Field(..., description="present | absent | excused", examples=["present"])
    notes: str | None = None
    selected: bool = True


class RosterOut(BaseModel):
    event: str | None = Field(None, examples=["permanent-3"])
    members: list[RosterMemberOut]
    summary: dict[str, int]
    error: str | None = None


class BulkStatusIn(BaseModel):
    memberIds: list[int] | None = Field(None, description="Members to update; default is every selected member")
    status: str = Field(..., examples=["absent"])


class MarkAttendanceIn(BaseModel):
    """A full marking session in one request."""
    event: str = Field(..., description="Event key type-id", examples=["training-12"])
    eventName: str | None = Field(None, examples=["Leadership Training"])
    scope: ScopeSelectionModel = Field(default_factory=ScopeSelectionModel)
    statuses: dict[int, str] = Field(default_factory=dict, description="Per-member status overrides")
    notes: dict[int, str] = Field(default_factory=dict, description="Per-member notes")
    deselected: list[int] = Field(default_factory=list, description="Members removed from the bulk selection")
    bulk: BulkStatusIn | None = None


class MarkAttendanceOut(BaseModel):
    success: bool
    message: str | None = None
    error: str | None = None
    recordCount: int = 0


class RecordStatsOut(BaseModel):
    total: int
    present: int
    absent: int
    excused: int


class AttendanceRecordsOut(BaseModel):
    records: list[dict[str, Any]]
    stats: RecordStatsOut
    ready: bool = Field(..., description="False when required filters are missing")
    error: str | None = None


class StatusUpdateIn(BaseModel):
    status: str = Field(..., description="present | absent | excused", examples=["excused"])


class StatusUpdateOut(BaseModel):
    success: bool
    message: str | None = None
    error: str | None = None


# ── Reports ───────────────────────────────────────────────────────────────────

class NavigationEntryOut(BaseModel):
    level: str = Field(..., examples=["region"])
    id: int = Field(..., examples=[5])
    name: str = Field(..., examples=["North"])


class ColumnOut(BaseModel):
    key: str
    label: str
    type: str
    sortable: bool
    filterable: bool
    hidden: bool
    align: str


class ReportRowOut(BaseModel):
    data: dict[str, Any]
    cells: dict[str, dict[str, Any]]
    drillPath: str | None = Field(None, description="Value of `path` that drills into this row")


class EngagementReportOut(BaseModel):
    level: str = Field(..., examples=["national"])
    title: str
    description: str
    path: str = Field(..., description="Current navigation path", examples=["region:5:North"])
    stack: list[NavigationEntryOut]
    breadcrumbs: list[str]
    columns: list[ColumnOut]
    rows: list[ReportRowOut]
    page: int
    pageSize: int
    totalPages: int
    totalRows: int
    sort: dict[str, str] | None = None
    summary: dict[str, Any] | None = None
    error: str | None = None
