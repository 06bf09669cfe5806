"""
Organizational scope: selections, user scope, labels and the cascade.

The hierarchy is region → university → small group, with alumni groups
hanging directly off a region (siblings of universities, not children).

ScopeSelection is an immutable value; every ``with_*`` method returns a new
selection with the stricter descendants cleared, so a university can never
outlive the region it was picked under.  ScopeCascade drives one selection
plus the dependent option lists, fetching children only when a parent id is
present.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, Mapping

from ministry.client import ApiError, MinistryClient
from utils.config import KnownValues
from utils.query import normalize_id

logger = logging.getLogger(__name__)


# ── Selection value ───────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ScopeSelection:
    """The currently selected region/university/small group/alumni group."""

    region_id: int | None = None
    university_id: int | None = None
    small_group_id: int | None = None
    alumni_group_id: int | None = None

    def __post_init__(self) -> None:
        if self.university_id is not None and self.region_id is None:
            raise ValueError("universityId requires regionId")
        if self.small_group_id is not None and self.university_id is None:
            raise ValueError("smallGroupId requires universityId")
        if self.alumni_group_id is not None and self.region_id is None:
            raise ValueError("alumniGroupId requires regionId")

    # Transitions: each clears every stricter descendant of the changed field.

    def with_region(self, region_id: Any) -> "ScopeSelection":
        return ScopeSelection(region_id=normalize_id(region_id))

    def with_university(self, university_id: Any) -> "ScopeSelection":
        return replace(self, university_id=normalize_id(university_id), small_group_id=None)

    def with_small_group(self, small_group_id: Any) -> "ScopeSelection":
        return replace(self, small_group_id=normalize_id(small_group_id))

    def with_alumni_group(self, alumni_group_id: Any) -> "ScopeSelection":
        return replace(self, alumni_group_id=normalize_id(alumni_group_id))

    @property
    def is_empty(self) -> bool:
        return self.region_id is None

    def to_params(self) -> dict[str, int | None]:
        return {
            "regionId": self.region_id,
            "universityId": self.university_id,
            "smallGroupId": self.small_group_id,
            "alumniGroupId": self.alumni_group_id,
        }

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "ScopeSelection":
        """Build a selection from request params; "all"/"" mean unset."""
        return cls(
            region_id=normalize_id(params.get("regionId")),
            university_id=normalize_id(params.get("universityId")),
            small_group_id=normalize_id(params.get("smallGroupId")),
            alumni_group_id=normalize_id(params.get("alumniGroupId")),
        )


# ── User scope ────────────────────────────────────────────────────────────────


def _name_of(payload: Mapping[str, Any], key: str) -> str | None:
    nested = payload.get(key)
    if isinstance(nested, Mapping):
        return nested.get("name") or None
    return None


@dataclass(frozen=True)
class UserScope:
    """The signed-in user's organizational scope."""

    scope: str
    region_id: int | None = None
    university_id: int | None = None
    small_group_id: int | None = None
    alumni_group_id: int | None = None
    region_name: str | None = None
    university_name: str | None = None
    small_group_name: str | None = None
    alumni_group_name: str | None = None

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> "UserScope":
        scope = payload.get("scope") or ""
        if scope not in KnownValues.USER_SCOPES:
            raise ValueError(f"Unknown user scope: {scope!r}")
        return cls(
            scope=scope,
            region_id=normalize_id(payload.get("regionId")),
            university_id=normalize_id(payload.get("universityId")),
            small_group_id=normalize_id(payload.get("smallGroupId")),
            alumni_group_id=normalize_id(payload.get("alumniGroupId")),
            region_name=_name_of(payload, "region"),
            university_name=_name_of(payload, "university"),
            small_group_name=_name_of(payload, "smallGroup"),
            alumni_group_name=_name_of(payload, "alumniGroup"),
        )

    @property
    def is_superadmin(self) -> bool:
        return self.scope == "superadmin"

    def visible_fields(self) -> dict[str, bool]:
        """Which scope selectors the user may change."""
        if self.scope in ("superadmin", "national"):
            return {"region": True, "university": True, "smallGroup": True, "alumniGroup": True}
        if self.scope == "region":
            return {"region": False, "university": True, "smallGroup": True, "alumniGroup": True}
        if self.scope == "university":
            return {"region": False, "university": False, "smallGroup": True, "alumniGroup": False}
        return {"region": False, "university": False, "smallGroup": False, "alumniGroup": False}

    def default_selection(self) -> ScopeSelection:
        """Selection pre-filled with the user's own ids.

        Ids whose parent is missing from the user record are dropped rather
        than producing an invalid selection.
        """
        region = self.region_id
        university = self.university_id if region is not None else None
        small_group = self.small_group_id if university is not None else None
        alumni = self.alumni_group_id if region is not None else None
        return ScopeSelection(region, university, small_group, alumni)

    def constrain(self, selection: ScopeSelection) -> ScopeSelection:
        """Replace every field the user may not change with the user's own id."""
        visible = self.visible_fields()
        own = self.default_selection()

        def pick(field: str, attr: str) -> int | None:
            return getattr(selection if visible[field] else own, attr)

        return ScopeSelection(
            pick("region", "region_id"),
            pick("university", "university_id"),
            pick("smallGroup", "small_group_id"),
            pick("alumniGroup", "alumni_group_id"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "scope": self.scope,
            "regionId": self.region_id,
            "universityId": self.university_id,
            "smallGroupId": self.small_group_id,
            "alumniGroupId": self.alumni_group_id,
        }


# ── Labels ────────────────────────────────────────────────────────────────────


def compute_hierarchical_scope_label(event: Mapping[str, Any]) -> str:
    """Join the names of an event's region/university/small group/alumni group.

    Falls back to a label for the most specific attached level when no
    names were included in the payload, and to "Super Admin" for events
    attached to no level at all.
    """
    parts = [
        name for name in (
            _name_of(event, "region"),
            _name_of(event, "university"),
            _name_of(event, "smallGroup"),
            _name_of(event, "alumniGroup"),
        ) if name
    ]
    if parts:
        return " ".join(parts)
    if event.get("alumniGroupId"):
        return "Alumni Small Group"
    if event.get("smallGroupId"):
        return "Small Group"
    if event.get("universityId"):
        return "University"
    if event.get("regionId"):
        return "Region"
    return "Super Admin"


def get_scope_level(event: Mapping[str, Any]) -> str:
    """Badge text for the level an event is attached to."""
    if event.get("alumniGroupId"):
        return "Alumni Group"
    if event.get("smallGroupId"):
        return "Small Group"
    if event.get("universityId"):
        return "University"
    if event.get("regionId"):
        return "Region"
    return "Super Admin"


# ── Cascade controller ────────────────────────────────────────────────────────


class ScopeCascade:
    """Dependent region → university → small group / alumni group selects.

    A failed child-list fetch is logged, empties that list and records a
    message in ``errors``; the parent selection is kept.
    """

    def __init__(self, client: MinistryClient, selection: ScopeSelection | None = None) -> None:
        self.client = client
        self.selection = selection or ScopeSelection()
        self.regions: list[dict] = []
        self.universities: list[dict] = []
        self.small_groups: list[dict] = []
        self.alumni_groups: list[dict] = []
        self.errors: dict[str, str] = {}

    def _fetch(self, name: str, loader: Callable[[], list[dict]]) -> list[dict]:
        self.errors.pop(name, None)
        try:
            return list(loader())
        except ApiError as exc:
            logger.error("Error fetching %s: %s", name, exc)
            self.errors[name] = f"Failed to load {name.replace('_', ' ')}"
            return []

    def load_regions(self) -> list[dict]:
        self.regions = self._fetch("regions", self.client.list_regions)
        return self.regions

    def select_region(self, region_id: Any) -> ScopeSelection:
        self.selection = self.selection.with_region(region_id)
        self.universities = []
        self.small_groups = []
        self.alumni_groups = []
        region = self.selection.region_id
        if region is not None:
            self.universities = self._fetch(
                "universities", lambda: self.client.list_universities(region))
            self.alumni_groups = self._fetch(
                "alumni_groups", lambda: self.client.list_alumni_groups(region))
        return self.selection

    def select_university(self, university_id: Any) -> ScopeSelection:
        self.selection = self.selection.with_university(university_id)
        self.small_groups = []
        university = self.selection.university_id
        if university is not None:
            self.small_groups = self._fetch(
                "small_groups", lambda: self.client.list_small_groups(university))
        return self.selection

    def select_small_group(self, small_group_id: Any) -> ScopeSelection:
        self.selection = self.selection.with_small_group(small_group_id)
        return self.selection

    def select_alumni_group(self, alumni_group_id: Any) -> ScopeSelection:
        self.selection = self.selection.with_alumni_group(alumni_group_id)
        return self.selection

    def restore(self, selection: ScopeSelection) -> ScopeSelection:
        """Adopt a complete selection, loading the option lists it needs."""
        self.select_region(selection.region_id)
        if selection.university_id is not None:
            self.select_university(selection.university_id)
        if selection.small_group_id is not None:
            self.select_small_group(selection.small_group_id)
        if selection.alumni_group_id is not None:
            self.select_alumni_group(selection.alumni_group_id)
        return self.selection

    def enabled(self) -> dict[str, bool]:
        """Whether each descendant selector may be used."""
        return {
            "region": True,
            "university": self.selection.region_id is not None,
            "smallGroup": self.selection.university_id is not None,
            "alumniGroup": self.selection.region_id is not None,
        }

    def options(self) -> dict[str, list[dict]]:
        return {
            "regions": self.regions,
            "universities": self.universities,
            "smallGroups": self.small_groups,
            "alumniGroups": self.alumni_groups,
        }
