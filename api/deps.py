"""
Shared dependencies for the reports gateway routes.

The gateway holds one MinistryClient for the process.  It is created lazily
from AppConfig the first time a route asks for it, or installed up front by
create_app(client=...) / set_client() (tests do the latter).

get_user_scope() resolves the caller's organizational scope through the
ministry API on every request; nothing about the user is cached here.
"""

from __future__ import annotations

from fastapi import Depends, Query

from ministry.client import MinistryClient
from ministry.scope import ScopeSelection, UserScope
from utils.config import AppConfig

_CLIENT: MinistryClient | None = None
_CONFIG: AppConfig | None = None


def get_config() -> AppConfig:
    """Return the process-wide AppConfig (read from the environment once)."""
    global _CONFIG
    if _CONFIG is None:
        _CONFIG = AppConfig.from_env()
    return _CONFIG


def set_client(client: MinistryClient | None) -> None:
    """Install (or clear, with None) the client used by get_client()."""
    global _CLIENT
    _CLIENT = client


def get_client() -> MinistryClient:
    """FastAPI dependency: the shared MinistryClient."""
    global _CLIENT
    if _CLIENT is None:
        _CLIENT = MinistryClient(get_config().client_config())
    return _CLIENT


def close_client() -> None:
    global _CLIENT
    if _CLIENT is not None:
        _CLIENT.close()
        _CLIENT = None


def get_user_scope(client: MinistryClient = Depends(get_client)) -> UserScope:
    """FastAPI dependency: the caller's scope from the ministry API."""
    return UserScope.from_api(client.current_user_scope())


def scope_query(
    regionId: str | None = Query(None, description="Region id, or 'all'"),
    universityId: str | None = Query(None, description="University id, or 'all'"),
    smallGroupId: str | None = Query(None, description="Small group id, or 'all'"),
    alumniGroupId: str | None = Query(None, description="Alumni small group id, or 'all'"),
) -> ScopeSelection:
    """FastAPI dependency: a ScopeSelection from the standard query params."""
    return ScopeSelection.from_params({
        "regionId": regionId,
        "universityId": universityId,
        "smallGroupId": smallGroupId,
        "alumniGroupId": alumniGroupId,
    })


def effective_selection(
    selection: ScopeSelection = Depends(scope_query),
    user_scope: UserScope = Depends(get_user_scope),
) -> ScopeSelection:
    """FastAPI dependency: the requested selection limited to the user's scope."""
    return user_scope.constrain(selection)
