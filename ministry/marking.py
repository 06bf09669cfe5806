"""
Attendance marking session.

Lifecycle:
    1. load_members(event_key, selection) fetches the roster for the one
       most specific scope level and seeds every member as "present" and
       selected.
    2. set_status / apply_bulk edit statuses locally.
    3. submit() sends one record per roster member as a single batch.  A
       fully successful batch resets the session; anything else leaves the
       roster and statuses in place so the user can retry.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from ministry.client import ApiError, MinistryClient
from ministry.scope import ScopeSelection
from utils.config import KnownValues
from utils.query import most_specific_scope_param, parse_event_key

logger = logging.getLogger(__name__)

DEFAULT_STATUS = "present"
EMPTY_ROSTER_MESSAGE = "Please select an event and ensure members are loaded."
PARTIAL_FAILURE_FALLBACK = "Some attendance records could not be saved."


@dataclass
class SubmitResult:
    success: bool
    message: str | None = None
    error: str | None = None
    payload: dict | None = None


def _check_status(status: str) -> str:
    if not KnownValues.is_valid_status(status):
        raise ValueError(f"Invalid attendance status: {status!r}")
    return status


def member_display_name(member: dict) -> str:
    return " ".join(p for p in (member.get("firstname"), member.get("secondname")) if p)


def flatten_errors(error: Any) -> list[str]:
    """Flatten a per-record error (string, list, or dict of lists) to strings."""
    if error is None or error == "":
        return []
    if isinstance(error, str):
        return [error]
    if isinstance(error, dict):
        return [msg for value in error.values() for msg in flatten_errors(value)]
    if isinstance(error, (list, tuple)):
        return [msg for item in error for msg in flatten_errors(item)]
    return [str(error)]


def collect_batch_errors(results: Iterable[dict] | None) -> str:
    messages = [
        msg
        for result in results or []
        if isinstance(result, dict) and not result.get("success")
        for msg in flatten_errors(result.get("error"))
    ]
    return ", ".join(messages) or PARTIAL_FAILURE_FALLBACK


@dataclass
class AttendanceMarkingSession:
    """Local state for marking one event's attendance."""

    client: MinistryClient
    event_key: str | None = None
    event_name: str | None = None
    members: list[dict] = field(default_factory=list)
    statuses: dict[int, str] = field(default_factory=dict)
    notes: dict[int, str] = field(default_factory=dict)
    selected: set[int] = field(default_factory=set)
    error: str | None = None
    message: str | None = None

    # ── roster ────────────────────────────────────────────────────────────

    def load_members(
        self,
        event_key: str | None,
        selection: ScopeSelection,
        event_name: str | None = None,
    ) -> list[dict]:
        """Fetch the roster for *event_key*; an unset event clears it."""
        self.error = None
        self.event_key = event_key or None
        self.event_name = event_name
        if self.event_key is None or self.event_key == "all":
            self.event_key = None
            self._clear_roster()
            return self.members

        params = most_specific_scope_param(selection)
        try:
            data = self.client.list_members(params)
        except ApiError as exc:
            logger.error("Error fetching members: %s", exc)
            self.error = "Failed to load members"
            self._clear_roster()
            return self.members

        if isinstance(data, dict):
            data = data.get("members") or []
        self.members = list(data or [])
        ids = [int(m["id"]) for m in self.members]
        self.statuses = {mid: DEFAULT_STATUS for mid in ids}
        self.notes = {}
        self.selected = set(ids)
        logger.info("Loaded %d members for event %s (%s)", len(ids), self.event_key, params)
        return self.members

    def _clear_roster(self) -> None:
        self.members = []
        self.statuses = {}
        self.notes = {}
        self.selected = set()

    def _require_member(self, member_id: int) -> int:
        if member_id not in self.statuses:
            raise ValueError(f"Member {member_id} is not in the roster")
        return member_id

    # ── edits ─────────────────────────────────────────────────────────────

    def set_status(self, member_id: int, status: str) -> None:
        self.statuses[self._require_member(member_id)] = _check_status(status)

    def set_notes(self, member_id: int, text: str | None) -> None:
        mid = self._require_member(member_id)
        if text:
            self.notes[mid] = text
        else:
            self.notes.pop(mid, None)

    def toggle_member(self, member_id: int) -> bool:
        """Flip bulk selection for one member; returns the new state."""
        mid = self._require_member(member_id)
        if mid in self.selected:
            self.selected.discard(mid)
            return False
        self.selected.add(mid)
        return True

    def select_all(self) -> None:
        self.selected = set(self.statuses)

    def deselect_all(self) -> None:
        self.selected = set()

    def apply_bulk(self, status: str, member_ids: Iterable[int] | None = None) -> int:
        """Set *status* on the selected (or given) members; returns the count."""
        _check_status(status)
        targets = set(self.selected if member_ids is None else member_ids)
        for mid in targets:
            self.statuses[self._require_member(mid)] = status
        return len(targets)

    def summary(self) -> dict[str, int]:
        counts = {s: 0 for s in KnownValues.ATTENDANCE_STATUSES}
        for status in self.statuses.values():
            counts[status] = counts.get(status, 0) + 1
        return {"total": len(self.members), **counts, "selected": len(self.selected)}

    def roster(self) -> list[dict[str, Any]]:
        return [
            {
                "id": int(m["id"]),
                "name": member_display_name(m),
                "email": m.get("email"),
                "phone": m.get("phone"),
                "type": m.get("type"),
                "memberStatus": m.get("status"),
                "status": self.statuses.get(int(m["id"]), DEFAULT_STATUS),
                "notes": self.notes.get(int(m["id"])),
                "selected": int(m["id"]) in self.selected,
            }
            for m in self.members
        ]

    # ── submit ────────────────────────────────────────────────────────────

    def build_payload(self) -> dict[str, Any]:
        event_type, event_id = parse_event_key(self.event_key)
        return {
            "eventId": event_id,
            "eventType": event_type,
            "attendance": [
                {
                    "memberId": int(m["id"]),
                    "status": self.statuses.get(int(m["id"]), DEFAULT_STATUS),
                    "notes": self.notes.get(int(m["id"])),
                }
                for m in self.members
            ],
        }

    def submit(self) -> SubmitResult:
        """Submit the whole roster as one batch."""
        self.message = None
        if not self.event_key or not self.members:
            self.error = EMPTY_ROSTER_MESSAGE
            return SubmitResult(False, error=self.error)

        payload = self.build_payload()
        try:
            resp = self.client.submit_attendance(payload)
        except ApiError as exc:
            logger.error("Error saving attendance: %s", exc)
            self.error = f"Failed to save attendance. {exc.message}"
            return SubmitResult(False, error=self.error, payload=payload)

        data = resp.data if isinstance(resp.data, dict) else {}
        if resp.status_code == 201 and data.get("success"):
            count = len(payload["attendance"])
            name = self.event_name or "the selected event"
            message = (
                f'Attendance for {count} member(s) at "{name}" '
                "has been saved successfully!"
            )
            logger.info("Saved %d attendance records for %s", count, self.event_key)
            self.reset()
            self.message = message
            return SubmitResult(True, message=message, payload=payload)

        self.error = collect_batch_errors(data.get("results"))
        logger.warning("Attendance batch partially failed: %s", self.error)
        return SubmitResult(False, error=self.error, payload=payload)

    def reset(self) -> None:
        """Back to the initial empty state (no event, no roster)."""
        self.event_key = None
        self.event_name = None
        self._clear_roster()
        self.error = None
        self.message = None
