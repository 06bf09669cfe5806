"""
Date availability: which days have attendance, and what the user picked.

DateAvailabilityResolver keeps one date selection that is always drawn from
the most recent fetch.  A selection may be:

    "all"                       no date filter
    "YYYY-MM-DD"                a single day (dateFrom == dateTo)
    a predefined range id       e.g. "last7days" (see build_predefined_ranges)
    "custom"                    custom_from/custom_to, both required

After every fetch the selection is checked against the fetched set and
reset to "all" when it no longer matches anything.  When the fetch fails or
returns nothing the set falls back to ``[today]`` with today selected.
"""

from __future__ import annotations

import calendar
import logging
from datetime import date, timedelta
from typing import Any, Iterable

from ministry.client import ApiError, MinistryClient
from ministry.scope import ScopeSelection
from utils.formatting import format_display_date, parse_date
from utils.query import build_scope_params, parse_event_key

logger = logging.getLogger(__name__)

QUICK_ACTIONS = ("today", "yesterday", "last7days", "thisweek", "thismonth")

# (id, label, description) in display order.
_PREDEFINED = (
    ("today", "Today", "Attendance recorded today"),
    ("yesterday", "Yesterday", "Attendance recorded yesterday"),
    ("last7days", "Last 7 Days", "The past week including today"),
    ("last30days", "Last 30 Days", "The past month including today"),
    ("thisweek", "This Week", "Monday through Sunday of the current week"),
    ("thismonth", "This Month", "The current calendar month"),
    ("last3months", "Last 3 Months", "From the first of the month three months ago"),
)


# ── Calendar arithmetic ───────────────────────────────────────────────────────


def week_start(day: date) -> date:
    """Monday of the week containing *day*."""
    return day - timedelta(days=day.weekday())


def _months_back(day: date, months: int) -> date:
    index = day.year * 12 + (day.month - 1) - months
    return date(index // 12, index % 12 + 1, 1)


def range_bounds(range_id: str, today: date) -> tuple[date, date]:
    """Return the inclusive ``(start, end)`` of a named range.

    Raises:
        ValueError: If *range_id* is not a known range.
    """
    if range_id == "today":
        return today, today
    if range_id == "yesterday":
        day = today - timedelta(days=1)
        return day, day
    if range_id == "last7days":
        return today - timedelta(days=6), today
    if range_id == "last30days":
        return today - timedelta(days=29), today
    if range_id == "thisweek":
        start = week_start(today)
        return start, start + timedelta(days=6)
    if range_id == "thismonth":
        last = calendar.monthrange(today.year, today.month)[1]
        return today.replace(day=1), today.replace(day=last)
    if range_id == "last3months":
        return _months_back(today, 3), today
    raise ValueError(f"Unknown date range: {range_id!r}")


def quick_action_range(action: str, today: date) -> tuple[str, str]:
    """ISO ``(dateFrom, dateTo)`` for one of QUICK_ACTIONS."""
    if action not in QUICK_ACTIONS:
        raise ValueError(f"Unknown quick action: {action!r}")
    start, end = range_bounds(action, today)
    return start.isoformat(), end.isoformat()


# ── Derived views over a fetched date set ─────────────────────────────────────


def _unique_dates(values: Iterable[Any]) -> list[date]:
    seen: set[date] = set()
    for value in values:
        try:
            parsed = parse_date(value)
        except ValueError:
            logger.warning("Skipping unparseable attendance date %r", value)
            continue
        if parsed is not None:
            seen.add(parsed)
    return sorted(seen, reverse=True)


def date_options(dates: Iterable[Any]) -> list[dict[str, str]]:
    """Select-box options, newest first: ``{value: ISO, label: "Jan 5, 2025"}``."""
    return [
        {"value": d.isoformat(), "label": format_display_date(d)}
        for d in _unique_dates(dates)
    ]


def build_predefined_ranges(dates: Iterable[Any], today: date) -> list[dict[str, Any]]:
    """Predefined ranges, each flagged ``available`` when a fetched date falls inside."""
    parsed = _unique_dates(dates)
    ranges = []
    for range_id, label, description in _PREDEFINED:
        start, end = range_bounds(range_id, today)
        ranges.append({
            "id": range_id,
            "label": label,
            "description": description,
            "dateFrom": start.isoformat(),
            "dateTo": end.isoformat(),
            "available": any(start <= d <= end for d in parsed),
        })
    return ranges


def compute_date_stats(dates: Iterable[Any], today: date) -> dict[str, Any]:
    parsed = _unique_dates(dates)

    def within(days: int) -> int:
        start = today - timedelta(days=days - 1)
        return sum(1 for d in parsed if start <= d <= today)

    return {
        "totalDates": len(parsed),
        "hasToday": today in parsed,
        "hasYesterday": (today - timedelta(days=1)) in parsed,
        "datesLastWeek": within(7),
        "datesLastMonth": within(30),
        "datesLast3Months": within(90),
        "oldestDate": parsed[-1].isoformat() if parsed else None,
        "newestDate": parsed[0].isoformat() if parsed else None,
    }


# ── Resolver ──────────────────────────────────────────────────────────────────


class DateAvailabilityResolver:
    """Fetch available attendance dates and keep the date selection valid.

    Args:
        client: MinistryClient.
        elevated: Send scope params with the fetch (superadmin only).
        today: Fixed "today" (defaults to ``date.today()`` per call).
        selected: An explicit starting selection.  Without one the first
            fetch selects the server's ``latestDate``; later fetches never do.
    """

    def __init__(
        self,
        client: MinistryClient,
        elevated: bool = False,
        today: date | None = None,
        selected: str | None = None,
    ) -> None:
        self.client = client
        self.elevated = elevated
        self._today = today
        self.dates: list[str] = []
        self.predefined_ranges: list[dict[str, Any]] = []
        self.stats: dict[str, Any] = compute_date_stats([], self.today)
        self.selected: str = selected or "all"
        self.custom_from: str = ""
        self.custom_to: str = ""
        self.is_custom: bool = False
        self.error: str | None = None
        self._seeded = selected is not None

    @property
    def today(self) -> date:
        return self._today or date.today()

    # ── fetch ─────────────────────────────────────────────────────────────

    def build_params(
        self, selection: ScopeSelection | None, selected_event: str | None,
    ) -> dict[str, Any]:
        _, event_id = parse_event_key(selected_event)
        params: dict[str, Any] = {"eventId": event_id}
        if self.elevated and selection is not None:
            params.update(build_scope_params(selection))
        return params

    def fetch(
        self,
        selection: ScopeSelection | None = None,
        selected_event: str | None = None,
    ) -> list[str]:
        """Refresh the available set and reconcile the selection."""
        self.error = None
        payload: dict[str, Any] = {}
        try:
            data = self.client.attendance_dates(self.build_params(selection, selected_event))
            payload = data if isinstance(data, dict) else {"dates": data or []}
        except ApiError as exc:
            logger.error("Error fetching attendance dates: %s", exc)
            self.error = "Failed to load attendance dates"

        parsed = _unique_dates(payload.get("dates") or [])
        if not parsed:
            self._fallback_to_today()
            return self.dates

        self.dates = [d.isoformat() for d in parsed]
        self.predefined_ranges = payload.get("predefinedRanges") or build_predefined_ranges(
            parsed, self.today)
        self.stats = payload.get("stats") or compute_date_stats(parsed, self.today)

        latest = payload.get("latestDate")
        if latest and not self._seeded and self.selected == "all" and not self.is_custom:
            self.selected = parse_date(latest).isoformat()
        self._seeded = True
        self._reconcile()
        return self.dates

    def _fallback_to_today(self) -> None:
        today = self.today.isoformat()
        logger.warning("No attendance dates available; falling back to %s", today)
        self.dates = [today]
        self.predefined_ranges = build_predefined_ranges(self.dates, self.today)
        self.stats = compute_date_stats(self.dates, self.today)
        self.selected = today
        self.is_custom = False
        self._seeded = True

    def _covers_any(self, start: str, end: str) -> bool:
        return any(start <= d <= end for d in self.dates)

    def _range_for(self, range_id: str) -> tuple[str, str] | None:
        ranged = next((r for r in self.predefined_ranges if r["id"] == range_id), None)
        if ranged is not None:
            return ranged["dateFrom"], ranged["dateTo"]
        if range_id in QUICK_ACTIONS:
            return quick_action_range(range_id, self.today)
        return None

    def _reconcile(self) -> None:
        if self.selected == "all":
            return
        if self.is_custom:
            valid = self._covers_any(self.custom_from, self.custom_to)
        elif self.selected in self.dates:
            valid = True
        else:
            bounds = self._range_for(self.selected)
            valid = bool(bounds and self._covers_any(*bounds))
        if not valid:
            logger.warning("Selected date %r not in available dates; resetting", self.selected)
            self.selected = "all"
            self.is_custom = False

    # ── selection commands ────────────────────────────────────────────────

    def select_date(self, value: str) -> None:
        """Pick "all" or one available ISO day."""
        if value != "all" and value not in self.dates:
            raise ValueError(f"Date not available: {value!r}")
        self.selected = value
        self.is_custom = False
        self._seeded = True

    def select_range(self, range_id: str) -> None:
        """Pick a predefined range; unavailable ranges are rejected."""
        if range_id == "all":
            self.clear_filters()
            return
        ranged = next((r for r in self.predefined_ranges if r["id"] == range_id), None)
        if ranged is None:
            raise ValueError(f"Unknown date range: {range_id!r}")
        if not ranged.get("available"):
            raise ValueError(f"Date range has no attendance: {range_id!r}")
        self.selected = range_id
        self.is_custom = False
        self._seeded = True

    def quick_actions(self) -> list[dict[str, Any]]:
        """Quick-action buttons; today/yesterday need a matching date."""
        enabled = {
            "today": bool(self.stats.get("hasToday")),
            "yesterday": bool(self.stats.get("hasYesterday")),
        }
        actions = []
        for action in QUICK_ACTIONS:
            date_from, date_to = quick_action_range(action, self.today)
            actions.append({
                "id": action,
                "dateFrom": date_from,
                "dateTo": date_to,
                "enabled": enabled.get(action, True),
            })
        return actions

    def apply_quick_action(self, action: str) -> tuple[str | None, str | None, str | None]:
        if action not in QUICK_ACTIONS:
            raise ValueError(f"Unknown quick action: {action!r}")
        self.selected = action
        self.is_custom = False
        self._seeded = True
        return self.output()

    def set_custom_range(self, date_from: str, date_to: str) -> tuple[str | None, str | None, str | None]:
        """Apply a custom range; a no-op until both bounds are given."""
        self.custom_from = date_from or ""
        self.custom_to = date_to or ""
        if self.custom_from and self.custom_to:
            if self.custom_from > self.custom_to:
                raise ValueError("dateFrom must not be after dateTo")
            self.selected = "custom"
            self.is_custom = True
            self._seeded = True
        return self.output()

    def clear_filters(self) -> tuple[None, None, None]:
        self.selected = "all"
        self._seeded = True
        self.custom_from = ""
        self.custom_to = ""
        self.is_custom = False
        return None, None, None

    # ── output ────────────────────────────────────────────────────────────

    def output(self) -> tuple[str | None, str | None, str | None]:
        """``(dateFrom, dateTo, rangeId)`` for the current selection.

        A single day yields ``dateFrom == dateTo`` and rangeId None.
        """
        if self.selected == "all":
            return None, None, None
        if self.is_custom:
            return self.custom_from, self.custom_to, "custom"
        bounds = self._range_for(self.selected)
        if bounds is not None:
            return bounds[0], bounds[1], self.selected
        return self.selected, self.selected, None

    def options(self) -> list[dict[str, str]]:
        return date_options(self.dates)
