"""
Attendance date availability endpoint.

GET /api/v1/dates  → available dates, predefined ranges, quick actions and
                     the reconciled (dateFrom, dateTo, rangeId) selection
"""

from fastapi import APIRouter, Depends, Query

from api.deps import effective_selection, get_client, get_user_scope
from api.models import DatesOut
from ministry.client import MinistryClient
from ministry.dates import DateAvailabilityResolver
from ministry.scope import ScopeSelection, UserScope

router = APIRouter(prefix="/dates", tags=["dates"])


@router.get(
    "",
    response_model=DatesOut,
    summary="Available attendance dates",
)
def available_dates(
    selectedEvent: str | None = Query(None, description="Event key (type-id) to restrict dates to"),
    selected: str | None = Query(
        None, description="Current selection: all, an ISO day, or a range id; omit for the latest date"),
    dateFrom: str | None = Query(None, description="Custom range start (YYYY-MM-DD)"),
    dateTo: str | None = Query(None, description="Custom range end (YYYY-MM-DD)"),
    range_id: str | None = Query(None, alias="range", description="Predefined range or quick action id"),
    selection: ScopeSelection = Depends(effective_selection),
    user_scope: UserScope = Depends(get_user_scope),
    client: MinistryClient = Depends(get_client),
) -> dict:
    """Fetch the available dates and reconcile the caller's selection.

    Without ``selected`` the server's latest date becomes the selection.
    A custom range needs both ``dateFrom`` and ``dateTo``.  A selection that
    matches no fetched date is reset to "all"; an empty or failed fetch
    falls back to today.
    """
    resolver = DateAvailabilityResolver(
        client, elevated=user_scope.is_superadmin, selected=range_id or selected)
    if dateFrom and dateTo:
        resolver.set_custom_range(dateFrom, dateTo)

    resolver.fetch(selection, selectedEvent)
    date_from, date_to, rid = resolver.output()
    return {
        "dates": resolver.dates,
        "options": resolver.options(),
        "predefinedRanges": resolver.predefined_ranges,
        "stats": resolver.stats,
        "quickActions": resolver.quick_actions(),
        "selected": resolver.selected,
        "selection": {"dateFrom": date_from, "dateTo": date_to, "rangeId": rid},
        "error": resolver.error,
    }
