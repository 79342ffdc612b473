"""Payroll summary endpoint."""

from typing import Annotated

from fastapi import APIRouter, Query

from hrms_engine.api.dependencies import ActorId, AppSettings, Capabilities, DbSession
from hrms_engine.api.schemas import (
    ErrorResponse,
    PayrollSummaryResponse,
    PayrollSummaryRowResponse,
)
from hrms_engine.services.authorization import HR_VIEW, ApprovalAuthorizer
from hrms_engine.services.directory import EmployeeDirectory
from hrms_engine.services.payroll_summary import PayrollSummaryEngine, Period

router = APIRouter(prefix="/payroll", tags=["payroll"])


@router.get(
    "/summary",
    response_model=PayrollSummaryResponse,
    responses={400: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)
async def payroll_summary(
    db: DbSession,
    actor_id: ActorId,
    capabilities: Capabilities,
    settings: AppSettings,
    month: Annotated[str, Query(description="YYYY-MM")],
) -> PayrollSummaryResponse:
    """Live payroll summary computed from attendance and compensation."""
    await ApprovalAuthorizer(capabilities, EmployeeDirectory(db)).require_capability(
        actor_id, HR_VIEW
    )
    period = Period.parse(month)
    engine = PayrollSummaryEngine(db, settings.working_days_per_month)
    rows = await engine.compute(period)
    return PayrollSummaryResponse(
        month=str(period),
        working_days_per_month=settings.working_days_per_month,
        rows=[PayrollSummaryRowResponse.model_validate(row) for row in rows],
    )
