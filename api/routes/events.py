"""
Event list endpoint.

GET /api/v1/events  → scope-validated events, reconciled selection and stats
"""

from fastapi import APIRouter, Depends, Query

from api.deps import effective_selection, get_client, get_user_scope
from api.models import EventListOut
from ministry.client import MinistryClient
from ministry.events import (
    EventFilterResolver,
    EventListFilter,
    compute_event_stats,
    filter_event_list,
)
from ministry.scope import ScopeSelection, UserScope

router = APIRouter(prefix="/events", tags=["events"])


@router.get(
    "",
    response_model=EventListOut,
    summary="List events for the current scope",
)
def list_events(
    selectedEvent: str | None = Query(None, description="Currently selected event key (type-id)"),
    search: str = Query("", description="Case-insensitive search on name, type and scope names"),
    event_type: str = Query("all", alias="type", pattern="^(all|permanent|training)$", description="Event type filter"),
    status: str = Query("all", pattern="^(all|active|inactive)$", description="Active/inactive filter"),
    includeInactive: bool = Query(False, description="Keep inactive events (event management view)"),
    selection: ScopeSelection = Depends(effective_selection),
    user_scope: UserScope = Depends(get_user_scope),
    client: MinistryClient = Depends(get_client),
) -> dict:
    """Fetch events, re-validate them against the scope, then apply list filters.

    When ``selectedEvent`` is no longer in the validated list it is cleared
    and ``selectionCleared`` is true.
    """
    resolver = EventFilterResolver(
        client, elevated=user_scope.is_superadmin, active_only=not includeInactive,
    )
    resolved = resolver.resolve(selection, selectedEvent)
    events = filter_event_list(
        resolved.events,
        EventListFilter(search=search, type_filter=event_type, status_filter=status),
    )
    return {
        "events": [e.to_dict() for e in events],
        "selectedEvent": resolved.selected_event,
        "selectionCleared": resolved.selection_cleared,
        "stats": compute_event_stats(resolved.events),
        "error": resolver.error,
    }
