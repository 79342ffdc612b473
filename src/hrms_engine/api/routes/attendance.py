"""Attendance ledger endpoints."""

from datetime import date, timedelta
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query

from hrms_engine.api.dependencies import ActorId, AppSettings, Capabilities, Clock, DbSession
from hrms_engine.api.schemas import (
    AttendanceDayResponse,
    AttendanceListResponse,
    AttendanceUpsert,
    ErrorResponse,
)
from hrms_engine.errors import NotFoundError
from hrms_engine.services.attendance_ledger import AttendanceLedger
from hrms_engine.services.authorization import (
    ATTENDANCE_APPROVE,
    HR_MANAGE,
    HR_VIEW,
    ApprovalAuthorizer,
)
from hrms_engine.services.directory import EmployeeDirectory

router = APIRouter(prefix="/attendance", tags=["attendance"])


def _ledger(db, settings, today) -> AttendanceLedger:
    return AttendanceLedger(
        db,
        future_horizon_days=settings.attendance_future_horizon_days,
        max_rows=settings.attendance_list_max_rows,
        team_max_rows=settings.team_attendance_max_rows,
        today=today,
    )


@router.put(
    "/{employee_id}/{work_date}",
    response_model=AttendanceDayResponse,
    responses={400: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)
async def upsert_attendance_day(
    db: DbSession,
    actor_id: ActorId,
    capabilities: Capabilities,
    settings: AppSettings,
    today: Clock,
    employee_id: Annotated[UUID, Path()],
    work_date: Annotated[date, Path()],
    payload: AttendanceUpsert,
) -> AttendanceDayResponse:
    """Record a punch for one day; the last write for a day wins."""
    directory = EmployeeDirectory(db)
    await ApprovalAuthorizer(capabilities, directory).require_capability(actor_id, HR_MANAGE)
    if await directory.get(employee_id) is None:
        raise NotFoundError(f"Employee {employee_id} not found")

    ledger = _ledger(db, settings, today)
    await ledger.upsert(
        employee_id,
        work_date,
        payload.status,
        payload.source,
        payload.geofence_ok,
        in_time=payload.in_time,
        out_time=payload.out_time,
    )
    day = await ledger.get(employee_id, work_date)
    return AttendanceDayResponse.model_validate(day)


@router.get(
    "/team/{manager_id}",
    response_model=AttendanceListResponse,
    responses={403: {"model": ErrorResponse}},
)
async def team_attendance(
    db: DbSession,
    actor_id: ActorId,
    capabilities: Capabilities,
    settings: AppSettings,
    today: Clock,
    manager_id: Annotated[UUID, Path()],
    limit: Annotated[int | None, Query(ge=1)] = None,
) -> AttendanceListResponse:
    """Recent attendance of a manager's direct reports."""
    authorizer = ApprovalAuthorizer(capabilities, EmployeeDirectory(db))
    if actor_id == manager_id:
        await authorizer.require_capability(actor_id, ATTENDANCE_APPROVE)
    else:
        await authorizer.require_capability(actor_id, HR_VIEW)
    items = await _ledger(db, settings, today).list_for_team(manager_id, limit)
    return AttendanceListResponse(
        items=[AttendanceDayResponse.model_validate(item) for item in items]
    )


@router.get(
    "/{employee_id}",
    response_model=AttendanceListResponse,
    responses={400: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)
async def employee_attendance(
    db: DbSession,
    actor_id: ActorId,
    capabilities: Capabilities,
    settings: AppSettings,
    today: Clock,
    employee_id: Annotated[UUID, Path()],
    from_date: Annotated[date | None, Query(alias="from")] = None,
    to_date: Annotated[date | None, Query(alias="to")] = None,
    limit: Annotated[int | None, Query(ge=1)] = None,
) -> AttendanceListResponse:
    """An employee's recent attendance, newest first."""
    await ApprovalAuthorizer(capabilities, EmployeeDirectory(db)).ensure_can_view(
        actor_id, employee_id
    )
    end = to_date or today()
    start = from_date or end - timedelta(days=settings.attendance_list_max_rows - 1)
    items = await _ledger(db, settings, today).list_range(employee_id, start, end, limit)
    return AttendanceListResponse(
        items=[AttendanceDayResponse.model_validate(item) for item in items]
    )
