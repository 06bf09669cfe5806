"""
Attendance marking and record endpoints.

GET  /api/v1/attendance/roster        → roster for an event with default statuses
POST /api/v1/attendance/mark          → load roster, apply edits, submit as one batch
GET  /api/v1/attendance/records       → filtered attendance records with stats
PUT  /api/v1/attendance/records/{id}  → change one record's status
"""

from fastapi import APIRouter, Depends, Path, Query, status
from fastapi.responses import JSONResponse

from api.deps import effective_selection, get_client, get_user_scope
from api.models import (
    AttendanceRecordsOut,
    ErrorResponse,
    MarkAttendanceIn,
    MarkAttendanceOut,
    RosterOut,
    StatusUpdateIn,
    StatusUpdateOut,
)
from ministry.client import MinistryClient
from ministry.marking import AttendanceMarkingSession
from ministry.records import AttendanceRecordBrowser, RecordFilters
from ministry.scope import ScopeSelection, UserScope

router = APIRouter(prefix="/attendance", tags=["attendance"])


@router.get(
    "/roster",
    response_model=RosterOut,
    summary="Member roster for marking",
)
def roster(
    event: str | None = Query(None, description="Event key (type-id)"),
    selection: ScopeSelection = Depends(effective_selection),
    client: MinistryClient = Depends(get_client),
) -> dict:
    """Members of the most specific selected scope, all marked present."""
    session = AttendanceMarkingSession(client)
    session.load_members(event, selection)
    return {
        "event": session.event_key,
        "members": session.roster(),
        "summary": session.summary(),
        "error": session.error,
    }


@router.post(
    "/mark",
    status_code=status.HTTP_201_CREATED,
    response_model=MarkAttendanceOut,
    responses={
        201: {"description": "Every record was saved"},
        400: {"model": ErrorResponse, "description": "Invalid status or member id"},
        422: {"model": MarkAttendanceOut, "description": "Nothing to submit, or some records failed"},
    },
    summary="Submit attendance for an event",
)
def mark_attendance(
    body: MarkAttendanceIn,
    user_scope: UserScope = Depends(get_user_scope),
    client: MinistryClient = Depends(get_client),
):
    """Run one marking session: roster load, edits, then a single batch write.

    Edits are applied in order: bulk status for the selected members,
    then per-member overrides, then notes.
    """
    selection = user_scope.constrain(ScopeSelection.from_params(body.scope.model_dump()))
    session = AttendanceMarkingSession(client)
    session.load_members(body.event, selection, event_name=body.eventName)

    for member_id in body.deselected:
        session.toggle_member(member_id)
    if body.bulk is not None:
        session.apply_bulk(body.bulk.status, body.bulk.memberIds)
    for member_id, member_status in body.statuses.items():
        session.set_status(member_id, member_status)
    for member_id, text in body.notes.items():
        session.set_notes(member_id, text)

    record_count = len(session.members)
    result = session.submit()
    content = {
        "success": result.success,
        "message": result.message,
        "error": result.error,
        "recordCount": record_count if result.success else 0,
    }
    if not result.success:
        return JSONResponse(status_code=422, content=content)
    return content


@router.get(
    "/records",
    response_model=AttendanceRecordsOut,
    summary="Browse attendance records",
)
def attendance_records(
    event: str = Query("all", description="Event key (type-id); required before records load"),
    record_status: str = Query("all", alias="status", description="present | absent | excused | all"),
    date: str = Query("latest", description="all, latest, YYYY-MM-DD or 'YYYY-MM-DD to YYYY-MM-DD'"),
    search: str = Query("", description="Member or event name substring"),
    selection: ScopeSelection = Depends(effective_selection),
    user_scope: UserScope = Depends(get_user_scope),
    client: MinistryClient = Depends(get_client),
) -> dict:
    """Attendance records for the filters, searched client-side.

    Nothing is fetched until an event is chosen; superadmins must also
    choose a region.
    """
    browser = AttendanceRecordBrowser(client, elevated=user_scope.is_superadmin)
    browser.filters = RecordFilters(
        event=event, status=record_status, date=date, selection=selection, search=search,
    )
    browser.fetch()
    return {
        "records": browser.visible_records(),
        "stats": browser.stats(),
        "ready": browser.can_fetch(),
        "error": browser.error,
    }


@router.put(
    "/records/{record_id}",
    response_model=StatusUpdateOut,
    responses={422: {"model": StatusUpdateOut, "description": "Update rejected upstream"}},
    summary="Update one attendance record",
)
def update_record(
    body: StatusUpdateIn,
    record_id: int = Path(..., gt=0, description="Attendance record id"),
    client: MinistryClient = Depends(get_client),
):
    """Save a new status for one record."""
    browser = AttendanceRecordBrowser(client)
    browser.start_edit(record_id, current_status=body.status)
    browser.set_edit_status(body.status)
    if browser.save_edit():
        return {"success": True, "message": browser.message}
    return JSONResponse(
        status_code=422,
        content={"success": False, "message": None, "error": browser.edit_error},
    )
