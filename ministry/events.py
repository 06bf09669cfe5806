"""
Event list resolution and event-management filters.

EventFilterResolver fetches the event list for the current scope and then
re-validates every returned event against that scope before it is used
(validate_events_against_scope).  Server-side scoping is trusted for the
role-based part; the client check only guards against stale or partial
filtering of explicit superadmin selections.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from ministry.client import ApiError, MinistryClient
from ministry.scope import ScopeSelection, compute_hierarchical_scope_label, get_scope_level
from utils.query import build_scope_params, make_event_key, normalize_id

logger = logging.getLogger(__name__)


@dataclass
class EventRef:
    """An event as used by the attendance and report screens."""

    id: int
    name: str
    type: str                                   # "permanent" | "training"
    is_active: bool = True
    region_id: int | None = None
    university_id: int | None = None
    small_group_id: int | None = None
    alumni_group_id: int | None = None
    hierarchical_scope: str = "Super Admin"
    scope_level: str = "Super Admin"
    total_attendance: int = 0
    attendance_rate: float = 0.0
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def key(self) -> str:
        """Select-box value: ``"{type}-{id}"``."""
        return make_event_key(self.type, self.id)

    @classmethod
    def from_api(cls, payload: Mapping[str, Any], type_hint: str | None = None) -> "EventRef":
        return cls(
            id=int(payload["id"]),
            name=str(payload.get("name") or ""),
            type=str(payload.get("type") or type_hint or "permanent"),
            is_active=bool(payload.get("isActive", True)),
            region_id=normalize_id(payload.get("regionId")),
            university_id=normalize_id(payload.get("universityId")),
            small_group_id=normalize_id(payload.get("smallGroupId")),
            alumni_group_id=normalize_id(payload.get("alumniGroupId")),
            hierarchical_scope=compute_hierarchical_scope_label(payload),
            scope_level=get_scope_level(payload),
            total_attendance=int(payload.get("totalAttendance") or 0),
            attendance_rate=float(payload.get("attendanceRate") or 0),
            raw=dict(payload),
        )

    def search_text(self) -> list[str]:
        names = [
            (self.raw.get(k) or {}).get("name", "")
            for k in ("region", "university", "smallGroup", "alumniGroup")
            if isinstance(self.raw.get(k), Mapping)
        ]
        return [self.name, self.type, *names, self.hierarchical_scope]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "key": self.key,
            "name": self.name,
            "type": self.type,
            "isActive": self.is_active,
            "regionId": self.region_id,
            "universityId": self.university_id,
            "smallGroupId": self.small_group_id,
            "alumniGroupId": self.alumni_group_id,
            "hierarchicalScope": self.hierarchical_scope,
            "scopeLevel": self.scope_level,
            "totalAttendance": self.total_attendance,
            "attendanceRate": self.attendance_rate,
        }


def _event_payloads(data: Any) -> list[dict]:
    if isinstance(data, list):
        return data
    if isinstance(data, Mapping) and isinstance(data.get("events"), list):
        return data["events"]
    return []


def validate_events_against_scope(
    events: Iterable[EventRef],
    selection: ScopeSelection,
    elevated: bool,
    active_only: bool = True,
) -> list[EventRef]:
    """Re-validate a server event list against the client's scope.

    Inactive events are dropped unless *active_only* is False.  For the
    elevated role, an event whose own scope id differs from a selected
    scope id is dropped too.
    """
    checks = (
        ("region_id", selection.region_id),
        ("university_id", selection.university_id),
        ("small_group_id", selection.small_group_id),
        ("alumni_group_id", selection.alumni_group_id),
    )
    kept: list[EventRef] = []
    for event in events:
        if active_only and not event.is_active:
            continue
        if elevated and any(
            wanted is not None and getattr(event, attr) != wanted
            for attr, wanted in checks
        ):
            continue
        kept.append(event)
    return kept


@dataclass
class ResolvedEvents:
    events: list[EventRef]
    selected_event: str | None
    selection_cleared: bool = False


class EventFilterResolver:
    """Fetch and validate the event list for a scope selection.

    Args:
        client: MinistryClient.
        elevated: True for the superadmin role; only then are scope
            parameters sent and exact scope equality enforced.
        active_only: Drop inactive events (the event management view
            passes False to list them too).
    """

    def __init__(
        self, client: MinistryClient, elevated: bool = False, active_only: bool = True,
    ) -> None:
        self.client = client
        self.elevated = elevated
        self.active_only = active_only
        self.events: list[EventRef] = []
        self.selected_event: str | None = None
        self.error: str | None = None

    def build_params(self, selection: ScopeSelection) -> dict[str, str]:
        return build_scope_params(selection) if self.elevated else {}

    def resolve(
        self,
        selection: ScopeSelection,
        selected_event: str | None = None,
    ) -> ResolvedEvents:
        """Refresh ``events`` for *selection* and reconcile *selected_event*.

        When the selected key is missing from a non-empty filtered list it is
        cleared and ``selection_cleared`` is set so callers can drop any
        member or attendance state tied to it.  On fetch failure the previous
        list is kept and ``error`` is set.
        """
        self.selected_event = selected_event or None
        self.error = None
        try:
            data = self.client.list_events(self.build_params(selection))
        except ApiError as exc:
            logger.error("Error fetching events: %s", exc)
            self.error = "Failed to load events"
            return ResolvedEvents(self.events, self.selected_event)

        fetched = [EventRef.from_api(p) for p in _event_payloads(data)]
        self.events = validate_events_against_scope(
            fetched, selection, self.elevated, self.active_only)
        logger.debug("events fetched=%d kept=%d", len(fetched), len(self.events))

        cleared = False
        if self.selected_event and self.events and not any(
            e.key == self.selected_event for e in self.events
        ):
            logger.warning("Selected event %s no longer in scope; clearing", self.selected_event)
            self.selected_event = None
            cleared = True
        return ResolvedEvents(self.events, self.selected_event, cleared)

    def find(self, key: str | None) -> EventRef | None:
        if not key:
            return None
        return next((e for e in self.events if e.key == key), None)


# ── Event-management list filters ─────────────────────────────────────────────


@dataclass
class EventListFilter:
    search: str = ""
    type_filter: str = "all"      # all | permanent | training
    status_filter: str = "all"    # all | active | inactive


def filter_event_list(events: Iterable[EventRef], flt: EventListFilter) -> list[EventRef]:
    """Apply the event-management search, type and status filters."""
    result = list(events)
    needle = flt.search.strip().lower()
    if needle:
        result = [
            e for e in result
            if any(needle in text.lower() for text in e.search_text() if text)
        ]
    if flt.type_filter != "all":
        result = [e for e in result if e.type == flt.type_filter]
    if flt.status_filter != "all":
        want_active = flt.status_filter == "active"
        result = [e for e in result if e.is_active == want_active]
    return result


def compute_event_stats(events: list[EventRef]) -> dict[str, int | float]:
    """Totals shown above the event-management table."""
    total = len(events)
    return {
        "totalEvents": total,
        "activeEvents": sum(1 for e in events if e.is_active),
        "totalAttendance": sum(e.total_attendance for e in events),
        "averageAttendanceRate": (
            round(sum(e.attendance_rate for e in events) / total) if total else 0
        ),
    }
