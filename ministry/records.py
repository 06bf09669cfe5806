"""
Attendance record browser: filtered listing plus inline status edits.

Records are only fetched once the required filters are present: an event
for every role, and additionally a region for the elevated role.  Saving an
inline edit never patches local state; a successful save refetches the
whole list.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from ministry.client import ApiError, MinistryClient
from ministry.scope import ScopeSelection
from utils.config import KnownValues
from utils.query import build_scope_params, is_unset, parse_date_selection, parse_event_key

logger = logging.getLogger(__name__)

FETCH_ERROR = "Failed to fetch attendance records. Please try again."
UPDATE_ERROR = "Failed to update attendance."
UPDATE_SUCCESS = "Attendance updated successfully!"


def record_event_name(record: dict) -> str:
    for key in ("permanentministryevent", "trainings"):
        nested = record.get(key)
        if isinstance(nested, dict) and nested.get("name"):
            return nested["name"]
    return "N/A"


def record_member_name(record: dict) -> str:
    member = record.get("member") or {}
    return " ".join(p for p in (member.get("firstname"), member.get("secondname")) if p) or "N/A"


def _matches(record: dict, needle: str) -> bool:
    member = record.get("member") or {}
    fields = [member.get("firstname"), member.get("secondname")]
    for key in ("permanentministryevent", "trainings"):
        nested = record.get(key)
        if isinstance(nested, dict):
            fields.append(nested.get("name"))
    return any(needle in str(value).lower() for value in fields if value)


@dataclass
class RecordFilters:
    event: str = "all"              # "type-id" key
    status: str = "all"
    date: str = "latest"            # "all" | "latest" | "YYYY-MM-DD" | "a to b"
    selection: ScopeSelection = field(default_factory=ScopeSelection)
    search: str = ""


class AttendanceRecordBrowser:
    """Fetch, search and edit attendance records.

    Args:
        client: MinistryClient.
        elevated: Superadmin view; sends scope params and requires a region.
    """

    def __init__(self, client: MinistryClient, elevated: bool = False) -> None:
        self.client = client
        self.elevated = elevated
        self.filters = RecordFilters()
        self.records: list[dict] = []
        self.error: str | None = None
        self.message: str | None = None
        self.editing_id: int | None = None
        self.edit_status: str | None = None
        self.edit_error: str | None = None

    # ── fetching ──────────────────────────────────────────────────────────

    def can_fetch(self) -> bool:
        if is_unset(self.filters.event):
            return False
        if self.elevated and self.filters.selection.region_id is None:
            return False
        return True

    def build_params(self) -> dict[str, Any]:
        event_type, event_id = parse_event_key(self.filters.event)
        date_from, date_to = parse_date_selection(self.filters.date)
        params: dict[str, Any] = {
            "eventId": event_id,
            "eventType": event_type,
            "status": self.filters.status,
            "dateFrom": date_from,
            "dateTo": date_to,
        }
        if self.elevated:
            params.update(build_scope_params(self.filters.selection))
        return params

    def set_filters(self, **changes: Any) -> list[dict]:
        """Update filters and refetch; unknown names raise TypeError."""
        for name, value in changes.items():
            if not hasattr(self.filters, name):
                raise TypeError(f"Unknown record filter: {name}")
            setattr(self.filters, name, value)
        if "search" in changes and len(changes) == 1:
            return self.visible_records()
        self.fetch()
        return self.visible_records()

    def fetch(self) -> list[dict]:
        self.error = None
        if not self.can_fetch():
            self.records = []
            return self.records
        try:
            data = self.client.list_attendance(self.build_params())
        except ApiError as exc:
            logger.error("Error fetching attendance records: %s", exc)
            self.error = FETCH_ERROR
            return self.records
        if isinstance(data, dict):
            data = data.get("attendance") or data.get("records") or []
        self.records = list(data or [])
        return self.records

    # ── search and stats ──────────────────────────────────────────────────

    def visible_records(self) -> list[dict]:
        needle = self.filters.search.strip().lower()
        if not needle:
            return list(self.records)
        return [r for r in self.records if _matches(r, needle)]

    def stats(self) -> dict[str, int]:
        rows = self.visible_records()
        counts = {"total": len(rows), "present": 0, "absent": 0, "excused": 0}
        for record in rows:
            if record.get("status") in counts:
                counts[record["status"]] += 1
        return counts

    # ── inline edit ───────────────────────────────────────────────────────

    def start_edit(self, record_id: int, current_status: str | None = None) -> None:
        if current_status is None:
            record = next((r for r in self.records if r.get("id") == record_id), None)
            if record is None:
                raise ValueError(f"Unknown attendance record: {record_id}")
            current_status = record.get("status")
        self.editing_id = record_id
        self.edit_status = current_status
        self.edit_error = None

    def set_edit_status(self, status: str) -> None:
        if self.editing_id is None:
            raise ValueError("No record is being edited")
        if not KnownValues.is_valid_status(status):
            raise ValueError(f"Invalid attendance status: {status!r}")
        self.edit_status = status

    def cancel_edit(self) -> None:
        self.editing_id = None
        self.edit_status = None
        self.edit_error = None

    def save_edit(self) -> bool:
        """PUT the edited status; True on success (followed by a refetch)."""
        if self.editing_id is None or self.edit_status is None:
            raise ValueError("No record is being edited")
        self.message = None
        try:
            resp = self.client.update_attendance(self.editing_id, self.edit_status)
        except ApiError as exc:
            logger.error("Error updating attendance %s: %s", self.editing_id, exc)
            self.edit_error = f"{UPDATE_ERROR} {exc.message}"
            return False

        if resp.status_code == 200:
            logger.info("Updated attendance %s to %s", self.editing_id, self.edit_status)
            self.message = UPDATE_SUCCESS
            self.cancel_edit()
            self.fetch()
            return True

        data = resp.data if isinstance(resp.data, dict) else {}
        self.edit_error = data.get("error") or UPDATE_ERROR
        logger.warning("Attendance update rejected: %s", self.edit_error)
        return False
