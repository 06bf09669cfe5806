"""Shared query-parameter builders for ministry API requests.

The scope cascade, event resolver, date resolver, marking session, record
browser and drilldown controller all send some subset of the same
parameters.  Building them here keeps the "all means unset" rule and the
scope priority order in one place.
"""

import re
from typing import Any, Mapping

# Parameter names in the order the API documents them.
SCOPE_PARAM_NAMES = ("regionId", "universityId", "smallGroupId", "alumniGroupId")

# Most specific first; only the first set one is sent for member rosters.
SCOPE_PRIORITY = ("smallGroupId", "alumniGroupId", "universityId", "regionId")

_UNSET_STRINGS = {"", "all"}

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def is_unset(value: Any) -> bool:
    """Return True for values the UI uses to mean "no selection".

    ``None``, ``""``, ``"all"`` and ``0`` are all unset; ids are positive.
    """
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip().lower() in _UNSET_STRINGS
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return value == 0
    return False


def normalize_id(value: Any) -> int | None:
    """Coerce a select-box value to a positive int id or None.

    Args:
        value: int, numeric string, "all", "" or None.

    Returns:
        The id as int, or None when unset.

    Raises:
        ValueError: If *value* is set but not a positive integer.
    """
    if is_unset(value):
        return None
    try:
        ident = int(str(value).strip())
    except (TypeError, ValueError):
        raise ValueError(f"Invalid id: {value!r}") from None
    if ident <= 0:
        raise ValueError(f"Invalid id: {value!r}")
    return ident


def clean_params(params: Mapping[str, Any]) -> dict[str, str]:
    """Drop ``None``/``""``/``"all"`` entries and stringify the rest.

    Insertion order is preserved so request URLs are deterministic.
    """
    cleaned: dict[str, str] = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, str) and value.strip().lower() in _UNSET_STRINGS:
            continue
        cleaned[key] = str(value)
    return cleaned


def build_scope_params(selection: Any) -> dict[str, str]:
    """Return every set scope field of *selection* as API parameters.

    Args:
        selection: Anything with a ``to_params()`` method returning a
            mapping keyed by SCOPE_PARAM_NAMES, or such a mapping itself.
    """
    mapping = selection.to_params() if hasattr(selection, "to_params") else selection
    return clean_params({name: mapping.get(name) for name in SCOPE_PARAM_NAMES})


def most_specific_scope_param(selection: Any) -> dict[str, str]:
    """Return the single most specific set scope field as a one-item dict.

    Priority is smallGroup > alumniGroup > university > region.  An empty
    dict is returned when nothing is selected.
    """
    params = build_scope_params(selection)
    for name in SCOPE_PRIORITY:
        if name in params:
            return {name: params[name]}
    return {}


def build_date_params(date_from: str | None, date_to: str | None) -> dict[str, str]:
    """Return ``dateFrom``/``dateTo`` params when both bounds are known."""
    if not date_from or not date_to:
        return {}
    return {"dateFrom": date_from, "dateTo": date_to}


def parse_event_key(key: str | None) -> tuple[str | None, int | None]:
    """Split an event select value into ``(type, id)``.

    Examples:
        parse_event_key("training-12") -> ("training", 12)
        parse_event_key("12") -> (None, 12)
        parse_event_key("all") -> (None, None)
    """
    if is_unset(key):
        return None, None
    text = str(key)
    if "-" in text:
        event_type, _, raw_id = text.partition("-")
        return event_type or None, normalize_id(raw_id)
    return None, normalize_id(text)


def make_event_key(event_type: str | None, event_id: int) -> str:
    """Inverse of parse_event_key for typed events."""
    return f"{event_type}-{event_id}" if event_type else str(event_id)


def parse_date_selection(value: str | None) -> tuple[str | None, str | None]:
    """Interpret a date filter value as ``(dateFrom, dateTo)``.

    Accepts a single ISO date, ``"YYYY-MM-DD to YYYY-MM-DD"``, or one of the
    unset markers (``"all"``, ``"latest"``, empty).

    Raises:
        ValueError: If a date part is not in YYYY-MM-DD form.
    """
    if value is None:
        return None, None
    text = value.strip()
    if text.lower() in _UNSET_STRINGS or text.lower() == "latest":
        return None, None
    if " to " in text:
        date_from, date_to = (part.strip() for part in text.split(" to ", 1))
    else:
        date_from = date_to = text
    for part in (date_from, date_to):
        if not _ISO_DATE.match(part):
            raise ValueError(f"Invalid date: {part!r} (expected YYYY-MM-DD)")
    return date_from, date_to


def format_date_selection(date_from: str | None, date_to: str | None) -> str:
    """Inverse of parse_date_selection: "" for none, a day, or "a to b"."""
    if not date_from or not date_to:
        return ""
    if date_from == date_to:
        return date_from
    return f"{date_from} to {date_to}"
