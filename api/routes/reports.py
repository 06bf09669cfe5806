"""
Engagement report endpoints (hierarchical drilldown).

GET /api/v1/reports/engagement         → table view for the level addressed by `path`
GET /api/v1/reports/engagement/export  → PDF engagement report for the same state

The navigation stack travels in the `path` query parameter as
``level:id:name`` segments joined by "/", e.g.
``region:5:North/university:9:Makerere``.  Without a path the report starts
at the caller's own scope level.  A path may only go deeper than the
caller's own scope, never sideways or above it.
"""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from api.deps import get_client, get_config, get_user_scope
from api.models import EngagementReportOut, ErrorResponse
from ministry.client import MinistryClient
from ministry.drilldown import HierarchicalDrilldownController, format_path, parse_path
from ministry.events import EventFilterResolver
from ministry.export import EngagementReportExporter
from ministry.levels import LEVEL_COLUMNS, level_title
from ministry.scope import ScopeSelection, UserScope
from ministry.table import PowerBITable
from utils.config import AppConfig
from utils.query import is_unset

router = APIRouter(prefix="/reports", tags=["reports"])


def _controller(
    client: MinistryClient,
    user_scope: UserScope,
    path: str | None,
    event: str,
    date: str | None,
    fetch: bool = True,
) -> HierarchicalDrilldownController:
    """Build the drilldown controller for *path*, limited to the user's scope."""
    home = HierarchicalDrilldownController.from_user_scope(client, user_scope, fetch=False)
    stack = parse_path(path) if path else list(home.stack)
    if not user_scope.is_superadmin:
        if len(stack) < len(home.stack) or any(
            mine.id != theirs.id for mine, theirs in zip(home.stack, stack)
        ):
            raise ValueError("Navigation path is outside your scope")
    return HierarchicalDrilldownController(
        client, stack=stack, selected_event=event, selected_date=date, fetch=fetch,
    )


def _parse_filters(raw: list[str]) -> dict[str, str]:
    filters = {}
    for item in raw:
        key, sep, value = item.partition(":")
        if not sep or not key:
            raise ValueError(f"Invalid column filter {item!r}; expected key:value")
        filters[key] = value
    return filters


@router.get(
    "/engagement",
    response_model=EngagementReportOut,
    responses={400: {"model": ErrorResponse, "description": "Invalid path, sort or filter"}},
    summary="Engagement report for one drilldown level",
)
def engagement_report(
    path: str | None = Query(None, description="Navigation path (level:id:name segments joined by '/')"),
    selectedEvent: str = Query("all", description="Event key (type-id) or 'all'"),
    selectedDate: str | None = Query(None, description="ISO date filter"),
    search: str = Query("", description="Search across visible columns"),
    sort: str | None = Query(None, description="Column key to sort by"),
    direction: str = Query("asc", alias="dir", pattern="^(asc|desc)$", description="Sort direction"),
    column_filter: list[str] = Query([], alias="filter", description="Column filters as key:value (repeatable)"),
    hidden: list[str] = Query([], alias="hide", description="Columns to hide (repeatable)"),
    page: int = Query(1, ge=1, description="Page number (1-based)"),
    pageSize: int | None = Query(None, ge=1, le=200, description="Rows per page"),
    user_scope: UserScope = Depends(get_user_scope),
    client: MinistryClient = Depends(get_client),
    config: AppConfig = Depends(get_config),
) -> dict:
    """Fetch the rows for the addressed level and run them through the table.

    Each row carries ``drillPath``: the ``path`` value that opens it, or
    null at the member level.
    """
    controller = _controller(client, user_scope, path, selectedEvent, selectedDate)
    level = controller.current_level

    table = PowerBITable(LEVEL_COLUMNS[level], controller.rows, page_size=pageSize or config.page_size)
    for key in hidden:
        table.toggle_column(key)
    for key, value in _parse_filters(column_filter).items():
        table.set_filter(key, value)
    table.set_search(search)
    if sort:
        table.set_sort(sort, direction)
    table.go_to_page(page)
    view = table.view()

    for row in view["rows"]:
        target = controller.drill_target(row["data"])
        row["drillPath"] = format_path(controller.stack + [target]) if target else None

    name = controller.stack[-1].name if controller.stack else None
    return {
        "level": level,
        **level_title(level, name),
        "path": format_path(controller.stack),
        "stack": [e.to_dict() for e in controller.stack],
        "breadcrumbs": controller.breadcrumbs(),
        "columns": view["columns"],
        "rows": view["rows"],
        "page": view["page"],
        "pageSize": view["pageSize"],
        "totalPages": view["totalPages"],
        "totalRows": view["totalRows"],
        "sort": view["sort"],
        "summary": controller.summary(),
        "error": controller.error,
    }


@router.get(
    "/engagement/export",
    response_class=Response,
    responses={
        200: {"content": {"application/pdf": {}}, "description": "PDF engagement report"},
        500: {"model": ErrorResponse, "description": "The PDF could not be generated"},
    },
    summary="Export the engagement report as PDF",
)
def export_engagement_report(
    path: str | None = Query(None, description="Navigation path (level:id:name segments joined by '/')"),
    selectedEvent: str = Query("all", description="Event key (type-id) or 'all'"),
    selectedDate: str | None = Query(None, description="ISO date filter"),
    user_scope: UserScope = Depends(get_user_scope),
    client: MinistryClient = Depends(get_client),
    config: AppConfig = Depends(get_config),
) -> Response:
    """Render the current drilldown state to a downloadable PDF."""
    controller = _controller(client, user_scope, path, selectedEvent, selectedDate, fetch=False)
    events = []
    if not is_unset(controller.selected_event):
        resolver = EventFilterResolver(client, elevated=user_scope.is_superadmin)
        events = resolver.resolve(ScopeSelection()).events

    exporter = EngagementReportExporter(client, max_rows=config.export_max_rows)
    result = exporter.export(controller, events=events)
    return Response(
        content=result.content,
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename={result.filename}"},
    )
