"""
Hierarchical drilldown: national → region → university → member.

The navigation stack is the single source of truth; ``current_level`` is
always derived from its length:

    len(stack)  level
    0           national    rows: regions
    1           region      rows: universities of stack[0]
    2           university  rows: small groups of stack[1]
    3           member      rows: members of stack[2]

Every transition (row click, breadcrumb, previous, filter change) refetches
the dataset for the level it lands on.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from ministry.client import ApiError, MinistryClient
from ministry.levels import ROW_BUILDERS, member_summary
from ministry.scope import UserScope
from utils.config import KnownValues
from utils.query import is_unset

logger = logging.getLogger(__name__)

LEVELS = KnownValues.REPORT_LEVELS

# level -> (engagement endpoint, query param, stack index holding the parent id)
_LEVEL_SOURCES: dict[str, tuple[str, str | None, int | None]] = {
    "national": ("regions", None, None),
    "region": ("universities", "regionId", 0),
    "university": ("small-groups", "universityId", 1),
    "member": ("members", "smallGroupId", 2),
}

# level -> (row name field, row id field) that a click on that level reads
_ROW_TARGETS: dict[str, tuple[str, str]] = {
    "national": ("region", "regionId"),
    "region": ("university", "universityId"),
    "university": ("smallGroup", "smallGroupId"),
}


@dataclass(frozen=True)
class NavigationStackEntry:
    level: str
    id: int
    name: str

    def to_dict(self) -> dict[str, Any]:
        return {"level": self.level, "id": self.id, "name": self.name}


def level_for_depth(depth: int) -> str:
    if not 0 <= depth < len(LEVELS):
        raise ValueError(f"Navigation depth out of range: {depth}")
    return LEVELS[depth]


def parse_path(path: str | None) -> list[NavigationStackEntry]:
    """Parse ``"region:5:North/university:9:Makerere"`` into stack entries.

    Each segment is ``level:id:name``; names may contain colons.
    """
    if not path:
        return []
    entries = []
    for depth, segment in enumerate(s for s in path.split("/") if s):
        level, _, rest = segment.partition(":")
        raw_id, _, name = rest.partition(":")
        expected = level_for_depth(depth + 1)
        if level != expected:
            raise ValueError(f"Expected {expected!r} at depth {depth + 1}, got {level!r}")
        try:
            ident = int(raw_id)
        except ValueError:
            raise ValueError(f"Invalid id in navigation path: {raw_id!r}") from None
        entries.append(NavigationStackEntry(level, ident, name or level.title()))
    return entries


def format_path(stack: list[NavigationStackEntry]) -> str:
    return "/".join(f"{e.level}:{e.id}:{e.name}" for e in stack)


class HierarchicalDrilldownController:
    """Navigation stack plus the dataset for the current level.

    Args:
        client: MinistryClient.
        stack: Initial navigation stack (default: national).
        selected_event: Event filter key, or "all".
        selected_date: ISO date filter, or None.
        fetch: Load the initial level's rows immediately.
    """

    def __init__(
        self,
        client: MinistryClient,
        stack: list[NavigationStackEntry] | None = None,
        selected_event: str = "all",
        selected_date: str | None = None,
        fetch: bool = True,
    ) -> None:
        self.client = client
        self.stack: list[NavigationStackEntry] = list(stack or [])
        level_for_depth(len(self.stack))
        self.selected_event = selected_event or "all"
        self.selected_date = selected_date or None
        self.raw: list[dict] = []
        self.rows: list[dict] = []
        self.error: str | None = None
        if fetch:
            self.refresh()

    @classmethod
    def from_user_scope(
        cls, client: MinistryClient, user_scope: UserScope, **kwargs: Any,
    ) -> "HierarchicalDrilldownController":
        """Start at the level matching the user's own scope."""
        region = NavigationStackEntry(
            "region", user_scope.region_id or 0, user_scope.region_name or "Region")
        university = NavigationStackEntry(
            "university", user_scope.university_id or 0,
            user_scope.university_name or "University")
        small_group = NavigationStackEntry(
            "member", user_scope.small_group_id or 0,
            user_scope.small_group_name or "Small Group")

        if user_scope.scope == "region":
            stack = [region]
        elif user_scope.scope == "university":
            stack = [region, university]
        elif user_scope.scope == "smallgroup":
            stack = [region, university, small_group]
        else:
            stack = []
        return cls(client, stack=stack, **kwargs)

    # ── derived state ─────────────────────────────────────────────────────

    @property
    def current_level(self) -> str:
        return level_for_depth(len(self.stack))

    def breadcrumbs(self) -> list[str]:
        return ["National"] + [e.name for e in self.stack]

    def navigation_path(self) -> str:
        return " > ".join(e.name for e in self.stack)

    def filter_params(self) -> dict[str, Any]:
        params: dict[str, Any] = {}
        if not is_unset(self.selected_event):
            params["selectedEvent"] = self.selected_event
        if self.selected_date:
            params["selectedDate"] = self.selected_date
        return params

    def fetch_params(self) -> tuple[str, dict[str, Any]]:
        """Endpoint key and params for the current level's dataset."""
        endpoint, param, index = _LEVEL_SOURCES[self.current_level]
        params = self.filter_params()
        if param is not None:
            params[param] = self.stack[index].id
        return endpoint, params

    def export_params(self) -> dict[str, Any]:
        """Params for the export-details and analytics endpoints."""
        params = self.filter_params()
        params["currentLevel"] = self.current_level
        for index, entry in enumerate(self.stack):
            if entry.id is not None:
                params[f"level{index}Id"] = entry.id
        return params

    def summary(self) -> dict[str, Any] | None:
        if self.current_level != "member":
            return None
        return member_summary(self.raw)

    # ── fetch ─────────────────────────────────────────────────────────────

    def refresh(self) -> list[dict]:
        level = self.current_level
        endpoint, params = self.fetch_params()
        self.error = None
        try:
            data = self.client.engagement_level(endpoint, params)
        except ApiError as exc:
            logger.error("Error fetching %s data: %s", level, exc)
            self.raw = []
            self.rows = []
            self.error = f"Failed to fetch {level} data"
            return self.rows
        if isinstance(data, Mapping):
            data = data.get("members") or data.get("data") or []
        self.raw = list(data or [])
        self.rows = ROW_BUILDERS[level](self.raw)
        logger.debug("drilldown level=%s rows=%d", level, len(self.rows))
        return self.rows

    # ── transitions ───────────────────────────────────────────────────────

    def drill_target(self, row: Mapping[str, Any]) -> NavigationStackEntry | None:
        """The entry a click on *row* would push, or None if not drillable."""
        target = _ROW_TARGETS.get(self.current_level)
        if target is None:
            return None
        name_key, id_key = target
        name, ident = row.get(name_key), row.get(id_key)
        if not name or not ident:
            return None
        return NavigationStackEntry(level_for_depth(len(self.stack) + 1), int(ident), str(name))

    def row_click(self, row: Mapping[str, Any]) -> bool:
        """Drill into *row*; returns False when the row is not drillable."""
        entry = self.drill_target(row)
        if entry is None:
            return False
        self.stack.append(entry)
        self.refresh()
        return True

    def breadcrumb(self, index: int) -> None:
        """Truncate the stack to ``index + 1`` entries; -1 returns to national."""
        if not -1 <= index < len(self.stack):
            raise ValueError(f"Breadcrumb index out of range: {index}")
        del self.stack[index + 1:]
        self.refresh()

    def previous(self) -> bool:
        """Pop one level; False (and no fetch) when already at national."""
        if not self.stack:
            return False
        self.stack.pop()
        self.refresh()
        return True

    def set_filters(self, selected_event: str | None = None, selected_date: str | None = None) -> None:
        self.selected_event = selected_event or "all"
        self.selected_date = selected_date or None
        self.refresh()
