"""Output formatting utilities for the ministry reports tools.

Provides reusable functions for:
- Percentages, signed deltas and counts
- Display dates in the "Jan 5, 2025" and "1/5/2025" styles
- Text truncation for table cells and PDF columns
"""

from datetime import date, datetime
from typing import Optional, Union

DateLike = Union[str, date, datetime, None]


def format_percent(value: Optional[float], precision: int = 1) -> str:
    """Format a percentage for display.

    Args:
        value: Percentage value (0.0 to 100.0)
        precision: Decimal places (default: 1)

    Returns:
        Formatted string like "42.5%"

    Examples:
        format_percent(42.5) -> "42.5%"
        format_percent(None) -> "-"
    """
    if value is None:
        return "-"
    return f"{value:.{precision}f}%"


def format_signed_percent(value: Optional[float], precision: int = 1) -> str:
    """Format a trend percentage with an explicit sign.

    Examples:
        format_signed_percent(12.5) -> "+12.5%"
        format_signed_percent(-3) -> "-3.0%"
        format_signed_percent(0) -> "0.0%"
    """
    if not value:
        return f"{0:.{precision}f}%"
    sign = "+" if value > 0 else ""
    return f"{sign}{value:.{precision}f}%"


def format_count(value: Optional[Union[int, float]]) -> str:
    """Format a count with thousands separator.

    Examples:
        format_count(1234567) -> "1,234,567"
        format_count(12.5) -> "12.5"
        format_count(None) -> "-"
    """
    if value is None:
        return "-"
    if isinstance(value, float) and not value.is_integer():
        return f"{value:,.1f}".rstrip("0").rstrip(".")
    return f"{int(value):,d}"


def truncate_text(text: str, max_length: int = 100, suffix: str = "...") -> str:
    """Truncate text to maximum length with ellipsis.

    Args:
        text: Text to truncate
        max_length: Maximum length including suffix
        suffix: Suffix to add if truncated (default: "...")

    Examples:
        truncate_text("Long text here", 10) -> "Long te..."
        truncate_text("Short", 10) -> "Short"
    """
    if len(text) <= max_length:
        return text
    return text[:max_length - len(suffix)] + suffix


def truncate_cell(text: str, limit: int = 15, keep: int = 12) -> str:
    """Shorten a PDF table cell: longer than *limit* keeps *keep* chars + "...".

    Examples:
        truncate_cell("Leadership Training Weekend") -> "Leadership T..."
        truncate_cell("Present") -> "Present"
    """
    if len(text) > limit:
        return text[:keep] + "..."
    return text


def parse_date(value: DateLike) -> Optional[date]:
    """Parse an ISO date or timestamp string into a date.

    Returns None for empty input.

    Raises:
        ValueError: If *value* is a non-empty string that is not ISO 8601.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    if len(text) == 10:
        return date.fromisoformat(text)
    return datetime.fromisoformat(text).date()


def format_display_date(value: DateLike) -> str:
    """Format a date as "Jan 5, 2025".

    Returns "N/A" for empty input and "Invalid Date" when unparseable.
    """
    try:
        parsed = parse_date(value)
    except ValueError:
        return "Invalid Date"
    if parsed is None:
        return "N/A"
    return f"{parsed:%b} {parsed.day}, {parsed.year}"


def format_short_date(value: DateLike) -> str:
    """Format a date as "1/5/2025" (month/day/year, no padding)."""
    try:
        parsed = parse_date(value)
    except ValueError:
        return "Invalid Date"
    if parsed is None:
        return "N/A"
    return f"{parsed.month}/{parsed.day}/{parsed.year}"


def capitalize_level(level: str) -> str:
    """Upper-case the first letter of a level name ("region" -> "Region")."""
    return level[:1].upper() + level[1:]
