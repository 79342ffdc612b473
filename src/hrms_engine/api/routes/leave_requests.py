"""Leave request and leave balance endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from hrms_engine.api.dependencies import (
    ActorId,
    AppSettings,
    Capabilities,
    Clock,
    DatabaseHandle,
    DbSession,
)
from hrms_engine.api.schemas import (
    BalanceListResponse,
    BalanceResponse,
    DecisionRequest,
    DecisionResponse,
    ErrorResponse,
    LeaveRequestCreate,
    LeaveRequestCreated,
    LeaveRequestListResponse,
    LeaveRequestResponse,
)
from hrms_engine.services.authorization import ApprovalAuthorizer
from hrms_engine.services.directory import EmployeeDirectory
from hrms_engine.services.leave_balance import LeaveBalanceTracker
from hrms_engine.services.leave_requests import LeaveRequestService, decide_leave

router = APIRouter(tags=["leave"])


@router.post(
    "/leave-requests",
    response_model=LeaveRequestCreated,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
async def submit_leave_request(
    db: DbSession,
    actor_id: ActorId,
    capabilities: Capabilities,
    settings: AppSettings,
    today: Clock,
    payload: LeaveRequestCreate,
) -> LeaveRequestCreated:
    """Submit a leave request for the calling employee."""
    service = LeaveRequestService(db, capabilities, settings, today=today)
    request_id = await service.submit(
        actor_id,
        payload.category,
        payload.start_date,
        payload.end_date,
        payload.reason,
    )
    return LeaveRequestCreated(request_id=request_id, status="pending")


@router.get("/leave-requests/pending", response_model=LeaveRequestListResponse)
async def list_pending_leave_requests(
    db: DbSession,
    actor_id: ActorId,
    capabilities: Capabilities,
    settings: AppSettings,
) -> LeaveRequestListResponse:
    """Pending requests of the caller's direct reports."""
    service = LeaveRequestService(db, capabilities, settings)
    items = await service.list_pending_for_manager(actor_id)
    return LeaveRequestListResponse(
        items=[LeaveRequestResponse.model_validate(item) for item in items]
    )


@router.get("/leave-requests/mine", response_model=LeaveRequestListResponse)
async def list_my_leave_requests(
    db: DbSession,
    actor_id: ActorId,
    capabilities: Capabilities,
    settings: AppSettings,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
) -> LeaveRequestListResponse:
    service = LeaveRequestService(db, capabilities, settings)
    items = await service.list_for_employee(actor_id, limit=limit)
    return LeaveRequestListResponse(
        items=[LeaveRequestResponse.model_validate(item) for item in items]
    )


@router.get(
    "/leave-requests/{request_id}",
    response_model=LeaveRequestResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_leave_request(
    db: DbSession,
    actor_id: ActorId,
    capabilities: Capabilities,
    settings: AppSettings,
    request_id: Annotated[UUID, Path()],
) -> LeaveRequestResponse:
    """Get a leave request visible to the caller."""
    service = LeaveRequestService(db, capabilities, settings)
    leave = await service.get(request_id)
    await service.authorizer.ensure_can_view(actor_id, leave.employee_id)
    return LeaveRequestResponse.model_validate(leave)


@router.put(
    "/leave-requests/{request_id}/decision",
    response_model=DecisionResponse,
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def decide_leave_request(
    database: DatabaseHandle,
    actor_id: ActorId,
    capabilities: Capabilities,
    settings: AppSettings,
    today: Clock,
    request_id: Annotated[UUID, Path()],
    payload: DecisionRequest,
) -> DecisionResponse:
    """Approve or reject a pending request in one retried transaction."""
    decision = await decide_leave(
        database,
        request_id,
        payload.status,
        actor_id,
        capabilities=capabilities,
        settings=settings,
        today=today,
    )
    return DecisionResponse(
        request_id=decision.request_id,
        status=decision.status,
        approver_id=decision.approver_id,
        days_applied=decision.days_applied,
    )


@router.get(
    "/leave-balances/{employee_id}",
    response_model=BalanceListResponse,
    responses={403: {"model": ErrorResponse}},
)
async def leave_balances(
    db: DbSession,
    actor_id: ActorId,
    capabilities: Capabilities,
    today: Clock,
    employee_id: Annotated[UUID, Path()],
    year: Annotated[int | None, Query(ge=1, le=9999)] = None,
) -> BalanceListResponse:
    """Allocated, used and remaining days per category."""
    await ApprovalAuthorizer(capabilities, EmployeeDirectory(db)).ensure_can_view(
        actor_id, employee_id
    )
    period_year = year if year is not None else today().year
    views = await LeaveBalanceTracker(db, today=today).query(employee_id, period_year)
    return BalanceListResponse(
        employee_id=employee_id,
        period_year=period_year,
        items=[
            BalanceResponse(
                category=view.category,
                period_year=view.period_year,
                allocated=view.allocated,
                used=view.used,
                remaining=view.remaining,
            )
            for view in views
        ],
    )
