"""Shared utilities for the ministry reports tools."""

# Configuration
from utils.config import Config, ClientConfig, AppConfig, KnownValues

# Caching
from utils.cache import TTLCache

# HTTP utilities
from utils.http import RetryStrategy, SessionManager, TimeoutManager

# Query-parameter builders
from utils.query import (
    is_unset,
    normalize_id,
    clean_params,
    build_scope_params,
    most_specific_scope_param,
    build_date_params,
    parse_event_key,
    make_event_key,
    parse_date_selection,
    format_date_selection,
)

# Output formatting
from utils.formatting import (
    format_percent,
    format_signed_percent,
    format_count,
    truncate_text,
    truncate_cell,
    parse_date,
    format_display_date,
    format_short_date,
    capitalize_level,
)

__all__ = [
    # Config
    "Config",
    "ClientConfig",
    "AppConfig",
    "KnownValues",
    # Cache
    "TTLCache",
    # HTTP
    "RetryStrategy",
    "SessionManager",
    "TimeoutManager",
    # Query
    "is_unset",
    "normalize_id",
    "clean_params",
    "build_scope_params",
    "most_specific_scope_param",
    "build_date_params",
    "parse_event_key",
    "make_event_key",
    "parse_date_selection",
    "format_date_selection",
    # Formatting
    "format_percent",
    "format_signed_percent",
    "format_count",
    "truncate_text",
    "truncate_cell",
    "parse_date",
    "format_display_date",
    "format_short_date",
    "capitalize_level",
]
