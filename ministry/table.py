"""
Generic report table: search, per-column filter, tri-state sort, pagination
and column visibility over rows that are already resident in memory.

Column types:
    text, number, percentage, indicator, comparison, status, date, progress

Cell shapes:
    comparison  {"current", "previous", "change"}   (see ComparisonCell)
    progress    {"capacity", "attendance", "percentage"}

Processing order (processed_rows):
    1. search      substring match on the text of every visible column
    2. filters     per-column substring match, visible columns only
    3. sort        single key, asc/desc, only while the column is visible

Search and filter changes reset the page to 1; the page is always clamped
into [1, total_pages].
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping

from utils.formatting import format_short_date, parse_date

logger = logging.getLogger(__name__)

COLUMN_TYPES = (
    "text", "number", "percentage", "indicator",
    "comparison", "status", "date", "progress",
)

DEFAULT_PAGE_SIZE = 20

STATUS_BADGES = {
    "present": {"text": "Present", "icon": "✓", "tone": "green"},
    "absent": {"text": "Absent", "icon": "✗", "tone": "red"},
    "excuse": {"text": "Excuse", "icon": "!", "tone": "yellow"},
    "excused": {"text": "Excused", "icon": "!", "tone": "yellow"},
    "active": {"text": "Active", "icon": "●", "tone": "green"},
    "inactive": {"text": "Inactive", "icon": "○", "tone": "gray"},
}


# ── Cells ─────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ComparisonCell:
    """Current vs previous period value; ``change`` is always their difference."""

    current: float
    previous: float
    change: float

    def __post_init__(self) -> None:
        if self.change != self.current - self.previous:
            raise ValueError("change must equal current - previous")

    @classmethod
    def from_values(cls, current: float | None, previous: float | None) -> "ComparisonCell":
        current = current or 0
        previous = previous or 0
        return cls(current, previous, current - previous)

    @property
    def change_percent(self) -> float:
        if self.previous == 0:
            return 0.0
        return self.change / self.previous * 100

    def to_dict(self) -> dict[str, float]:
        return {"current": self.current, "previous": self.previous, "change": self.change}


def progress_color(percentage: float) -> str:
    if percentage >= 80:
        return "green"
    if percentage >= 60:
        return "yellow"
    if percentage >= 40:
        return "orange"
    return "red"


# ── Columns and state ─────────────────────────────────────────────────────────


@dataclass
class Column:
    key: str
    label: str
    type: str = "text"
    sortable: bool = True
    filterable: bool = True
    hidden: bool = False
    align: str = "left"
    format: Callable[[Any], str] | None = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.type not in COLUMN_TYPES:
            raise ValueError(f"Unknown column type: {self.type!r}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "label": self.label,
            "type": self.type,
            "sortable": self.sortable,
            "filterable": self.filterable,
            "hidden": self.hidden,
            "align": self.align,
        }


@dataclass
class TableState:
    sort_key: str | None = None
    sort_direction: str | None = None     # "asc" | "desc"
    filters: dict[str, str] = field(default_factory=dict)
    search_term: str = ""
    current_page: int = 1
    visible_columns: set[str] = field(default_factory=set)

    @property
    def sort_config(self) -> dict[str, str] | None:
        if self.sort_key is None:
            return None
        return {"key": self.sort_key, "direction": self.sort_direction}


# ── Rendering ─────────────────────────────────────────────────────────────────


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def locale_number(value: float) -> str:
    """en-US style grouping with up to three decimals ("1,234.5")."""
    if isinstance(value, int) or float(value).is_integer():
        return f"{int(value):,d}"
    return f"{value:,.3f}".rstrip("0").rstrip(".")


def _fallback_text(value: Any) -> dict[str, Any]:
    return {"text": str(value) if value else "N/A", "tone": "muted"}


def _render_indicator(value: Any) -> dict[str, Any]:
    if _is_number(value):
        number = float(value)
    else:
        try:
            number = float(value)
        except (TypeError, ValueError):
            number = 0.0
    if number > 0:
        return {"text": f"+{number:.1f}%", "tone": "up"}
    if number < 0:
        return {"text": f"{number:.1f}%", "tone": "down"}
    return {"text": "0.0%", "tone": "neutral"}


def _render_comparison(value: Any) -> dict[str, Any]:
    if isinstance(value, Mapping) and value.get("current") is not None:
        previous = value.get("previous") or 0
        change = value.get("change", value["current"] - previous)
        percent = change / previous * 100 if previous != 0 else 0.0
        positive = percent >= 0
        return {
            "text": locale_number(value["current"]),
            "delta": f"{'+' if positive else ''}{percent:.1f}% vs prev",
            "positive": positive,
            "tone": "up" if positive else "down",
        }
    if _is_number(value):
        return {"text": locale_number(value), "tone": "default"}
    return {"text": str(value), "tone": "default"}


def _render_status(value: Any) -> dict[str, Any]:
    badge = STATUS_BADGES.get(value) if isinstance(value, str) else None
    if badge is None:
        return {"text": str(value), "icon": "?", "tone": "gray"}
    return dict(badge)


def _render_date(value: Any) -> dict[str, Any]:
    if not value:
        return {"text": "N/A", "tone": "muted"}
    try:
        parse_date(value)
    except (TypeError, ValueError):
        return {"text": "Invalid Date", "tone": "muted"}
    return {"text": format_short_date(value), "tone": "default"}


def _render_progress(value: Any) -> dict[str, Any]:
    if not isinstance(value, Mapping):
        return {"text": "N/A", "tone": "muted"}
    capacity = value.get("capacity") or 0
    attendance = value.get("attendance") or 0
    percentage = value.get("percentage") or 0
    return {
        "text": f"{percentage}%",
        "capacity": capacity,
        "attendance": attendance,
        "percentage": percentage,
        "color": progress_color(percentage),
        "width": min(percentage, 100),
        "tone": progress_color(percentage),
    }


def render_cell(value: Any, column: Column) -> dict[str, Any]:
    """Render one cell to ``{"text", "tone", ...}``; failures render "N/A"."""
    try:
        if column.format is not None:
            return {"text": column.format(value), "tone": "default"}
        if column.type == "number":
            if _is_number(value):
                return {"text": locale_number(value), "tone": "default"}
            return _fallback_text(value)
        if column.type == "percentage":
            if _is_number(value):
                return {"text": f"{value:.1f}%", "tone": "default"}
            return _fallback_text(value)
        if column.type == "indicator":
            return _render_indicator(value)
        if column.type == "comparison":
            return _render_comparison(value)
        if column.type == "status":
            return _render_status(value)
        if column.type == "date":
            return _render_date(value)
        if column.type == "progress":
            return _render_progress(value)
        return _fallback_text(value)
    except Exception:
        logger.warning("Error formatting %r as %s", value, column.type, exc_info=True)
        return {"text": "N/A", "tone": "muted"}


# ── Table engine ──────────────────────────────────────────────────────────────


class PowerBITable:
    """Client-side table state machine over a fixed list of rows.

    Args:
        columns: Column specs, in display order.
        rows: Row mappings keyed by column key (extra keys are carried along).
        page_size: Rows per page (default 20).
        pagination: When False, page_rows() returns every processed row.
    """

    def __init__(
        self,
        columns: Iterable[Column],
        rows: Iterable[Mapping[str, Any]] = (),
        page_size: int = DEFAULT_PAGE_SIZE,
        pagination: bool = True,
    ) -> None:
        if page_size < 1:
            raise ValueError("page_size must be positive")
        self.columns = list(columns)
        self._by_key = {c.key: c for c in self.columns}
        self.rows = [dict(r) for r in rows]
        self.page_size = page_size
        self.pagination = pagination
        self.state = TableState(visible_columns={c.key for c in self.columns})

    def _column(self, key: str) -> Column:
        try:
            return self._by_key[key]
        except KeyError:
            raise ValueError(f"Unknown column: {key!r}") from None

    def set_rows(self, rows: Iterable[Mapping[str, Any]]) -> None:
        self.rows = [dict(r) for r in rows]
        self._clamp_page()

    # ── commands ──────────────────────────────────────────────────────────

    def set_search(self, term: str) -> None:
        self.state.search_term = term or ""
        self.state.current_page = 1
        self._clamp_page()

    def set_filter(self, key: str, value: str | None) -> None:
        column = self._column(key)
        if not column.filterable:
            raise ValueError(f"Column is not filterable: {key!r}")
        if value:
            self.state.filters[key] = value
        else:
            self.state.filters.pop(key, None)
        self.state.current_page = 1
        self._clamp_page()

    def toggle_sort(self, key: str) -> dict[str, str] | None:
        """Cycle none → asc → desc → none for *key*; returns the new config."""
        column = self._column(key)
        if not column.sortable:
            raise ValueError(f"Column is not sortable: {key!r}")
        state = self.state
        if state.sort_key == key:
            if state.sort_direction == "asc":
                state.sort_direction = "desc"
            else:
                state.sort_key = None
                state.sort_direction = None
        else:
            state.sort_key = key
            state.sort_direction = "asc"
        return state.sort_config

    def set_sort(self, key: str | None, direction: str | None = "asc") -> None:
        if key is None:
            self.state.sort_key = None
            self.state.sort_direction = None
            return
        if direction not in ("asc", "desc"):
            raise ValueError(f"Invalid sort direction: {direction!r}")
        if not self._column(key).sortable:
            raise ValueError(f"Column is not sortable: {key!r}")
        self.state.sort_key = key
        self.state.sort_direction = direction

    def toggle_column(self, key: str) -> bool:
        """Show or hide a column; returns True when it is now visible."""
        self._column(key)
        visible = self.state.visible_columns
        if key in visible:
            visible.discard(key)
        else:
            visible.add(key)
        self._clamp_page()
        return key in visible

    def clear_filters(self) -> None:
        self.state.filters = {}
        self.state.search_term = ""
        self.state.current_page = 1

    def go_to_page(self, page: int) -> int:
        self.state.current_page = page
        self._clamp_page()
        return self.state.current_page

    # ── queries ───────────────────────────────────────────────────────────

    def _cell_text(self, row: Mapping[str, Any], key: str) -> str:
        value = row.get(key)
        if isinstance(value, Mapping):
            return render_cell(value, self._by_key[key])["text"]
        if value is None:
            return ""
        return str(value)

    def _search_keys(self) -> list[str]:
        return [c.key for c in self.columns if c.key in self.state.visible_columns]

    @staticmethod
    def _sort_value(value: Any) -> tuple[int, Any]:
        if isinstance(value, Mapping):
            if "current" in value:
                value = value.get("current")
            elif "percentage" in value:
                value = value.get("percentage")
        if _is_number(value):
            return 0, value
        return 1, str(value).lower()

    def processed_rows(self) -> list[dict[str, Any]]:
        rows = self.rows
        state = self.state

        needle = state.search_term.strip().lower()
        if needle:
            keys = self._search_keys()
            rows = [
                r for r in rows
                if any(needle in self._cell_text(r, k).lower() for k in keys if k in r)
            ]

        for key, value in state.filters.items():
            if value and key in state.visible_columns:
                wanted = value.lower()
                rows = [r for r in rows if wanted in self._cell_text(r, key).lower()]

        if state.sort_key and state.sort_key in state.visible_columns:
            key = state.sort_key

            def missing(r: Mapping[str, Any]) -> bool:
                v = r.get(key)
                return v is None or (isinstance(v, Mapping) and all(
                    v.get(f) is None for f in ("current", "percentage")))

            present = [r for r in rows if not missing(r)]
            absent = [r for r in rows if missing(r)]
            present.sort(
                key=lambda r: self._sort_value(r.get(key)),
                reverse=state.sort_direction == "desc",
            )
            rows = present + absent

        return list(rows)

    @property
    def total_rows(self) -> int:
        return len(self.processed_rows())

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_rows / self.page_size)

    def _clamp_page(self) -> None:
        last = max(1, self.total_pages)
        self.state.current_page = min(max(1, self.state.current_page), last)

    def page_rows(self) -> list[dict[str, Any]]:
        rows = self.processed_rows()
        if not self.pagination:
            return rows
        start = (self.state.current_page - 1) * self.page_size
        return rows[start:start + self.page_size]

    def display_columns(self) -> list[Column]:
        return [c for c in self.columns if c.key in self.state.visible_columns]

    def view(self) -> dict[str, Any]:
        """Serialisable snapshot of the current page."""
        columns = self.display_columns()
        processed = self.processed_rows()
        total_pages = math.ceil(len(processed) / self.page_size)
        if self.pagination:
            start = (self.state.current_page - 1) * self.page_size
            page = processed[start:start + self.page_size]
        else:
            page = processed
        return {
            "columns": [c.to_dict() for c in columns],
            "rows": [
                {
                    "data": row,
                    "cells": {c.key: render_cell(row.get(c.key), c) for c in columns},
                }
                for row in page
            ],
            "page": self.state.current_page,
            "pageSize": self.page_size,
            "totalPages": total_pages,
            "totalRows": len(processed),
            "sort": self.state.sort_config,
            "filters": dict(self.state.filters),
            "search": self.state.search_term,
        }
