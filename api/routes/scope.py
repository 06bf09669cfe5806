"""
Scope selector endpoint.

GET /api/v1/scope/options  → cascade state for region/university/small group/alumni group
"""

from fastapi import APIRouter, Depends

from api.deps import effective_selection, get_client, get_user_scope
from api.models import ScopeOptionsOut
from ministry.client import MinistryClient
from ministry.scope import ScopeCascade, ScopeSelection, UserScope

router = APIRouter(prefix="/scope", tags=["scope"])


@router.get(
    "/options",
    response_model=ScopeOptionsOut,
    summary="Scope selector options",
)
def scope_options(
    selection: ScopeSelection = Depends(effective_selection),
    user_scope: UserScope = Depends(get_user_scope),
    client: MinistryClient = Depends(get_client),
) -> dict:
    """Run the scope cascade for a selection and return every option list.

    Child lists are only loaded for parents that are selected.  Selectors
    the caller may not change are pinned to the caller's own scope.
    """
    cascade = ScopeCascade(client)
    cascade.load_regions()
    if not selection.is_empty:
        cascade.restore(selection)
    return {
        "selection": cascade.selection.to_params(),
        "userScope": user_scope.scope,
        **cascade.options(),
        "visibleFields": user_scope.visible_fields(),
        "enabled": cascade.enabled(),
        "errors": cascade.errors,
    }
