"""Leave request service - submission and the approval transaction."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from hrms_engine.config import Settings, get_settings
from hrms_engine.errors import NotFoundError, ValidationError
from hrms_engine.models import (
    AttendanceSource,
    AttendanceStatus,
    AuditEvent,
    Employee,
    LeaveRequest,
)
from hrms_engine.services.attendance_ledger import AttendanceLedger
from hrms_engine.services.authorization import ApprovalAuthorizer, CapabilityProvider
from hrms_engine.services.directory import EmployeeDirectory
from hrms_engine.services.leave_balance import LeaveBalanceTracker
from hrms_engine.services.state_machine import LeaveRequestStateMachine, LeaveRequestStatus

if TYPE_CHECKING:
    from hrms_engine.database import Database

logger = logging.getLogger(__name__)

NOT_FOUND_OR_PROCESSED = "Leave request not found or already processed"


@dataclass(frozen=True)
class LeaveDecision:
    """Outcome of a committed decision."""

    request_id: UUID
    status: str
    approver_id: UUID
    days_applied: int


class LeaveRequestService:
    """Service for the leave request lifecycle.

    Operations:
    - submit: create a pending request (no attendance or balance effects)
    - decide: pending → approved/rejected; on approval back-fill attendance
      and debit the balance, all inside the caller's transaction
    - get / list_pending_for_manager / list_for_employee: reads

    The service never commits. Run it inside ``Database.session()`` or
    ``Database.run_in_transaction`` so that a failure anywhere in ``decide``
    rolls back the status change as well.
    """

    def __init__(
        self,
        session: AsyncSession,
        capabilities: CapabilityProvider,
        settings: Settings | None = None,
        today: Callable[[], date] = date.today,
    ):
        self.session = session
        self.settings = settings or get_settings()
        self.directory = EmployeeDirectory(session)
        self.authorizer = ApprovalAuthorizer(capabilities, self.directory)
        self.ledger = AttendanceLedger(
            session,
            future_horizon_days=self.settings.attendance_future_horizon_days,
            max_rows=self.settings.attendance_list_max_rows,
            team_max_rows=self.settings.team_attendance_max_rows,
            today=today,
        )
        self.balances = LeaveBalanceTracker(session, today=today)

    async def submit(
        self,
        employee_id: UUID,
        category: str,
        start_date: date,
        end_date: date,
        reason: str | None = None,
    ) -> UUID:
        """Create a pending leave request and return its id."""
        code = (category or "").strip().upper()
        if start_date > end_date:
            raise ValidationError("End date must be on or after start date")
        if code not in self.settings.leave_categories:
            allowed = ", ".join(sorted(self.settings.leave_categories))
            raise ValidationError(f"Unknown leave category {category!r} (expected one of {allowed})")
        self.ledger.validate_date(end_date)
        await self.directory.require_active(employee_id)

        leave = LeaveRequest(
            employee_id=employee_id,
            category=code,
            start_date=start_date,
            end_date=end_date,
            reason=(reason or "").strip() or None,
            status=LeaveRequestStatus.PENDING.value,
        )
        self.session.add(leave)
        await self.session.flush()

        logger.info(
            "Leave request %s submitted by %s: %s %s..%s",
            leave.leave_request_id,
            employee_id,
            code,
            start_date,
            end_date,
        )
        return leave.leave_request_id

    async def decide(
        self,
        request_id: UUID,
        decision: str,
        approver_id: UUID,
    ) -> LeaveDecision:
        """Approve or reject a pending request.

        Steps, all in the current transaction:
        1. Lock the pending row (SELECT ... FOR UPDATE) and check authorization
        2. Flip the status with a conditional update guarded on 'pending'
        3. On approval, upsert every day of the range as leave
        4. On approval, debit the balance by the inclusive day count
        5. Record an audit event

        Raises:
            ValidationError: decision is not approved/rejected
            NotFoundError: unknown id, already decided, or lost a race;
                also when no balance row is provisioned
            AuthorizationError: approver may not decide for this employee
        """
        to_status = LeaveRequestStateMachine.parse_decision(decision)

        leave = await self._lock_pending(request_id)
        if leave is None:
            raise NotFoundError(NOT_FOUND_OR_PROCESSED)

        await self.authorizer.ensure_can_approve(approver_id, leave.employee_id)
        LeaveRequestStateMachine.validate_transition(leave.status, to_status)

        # Second guard: exactly one writer can move the row out of pending
        result = await self.session.execute(
            update(LeaveRequest)
            .where(
                LeaveRequest.leave_request_id == request_id,
                LeaveRequest.status == LeaveRequestStatus.PENDING.value,
            )
            .values(
                status=to_status.value,
                approver_id=approver_id,
                decided_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise NotFoundError(NOT_FOUND_OR_PROCESSED)

        days_applied = 0
        if LeaveRequestStateMachine.applies_leave(to_status):
            days_applied = await self.ledger.upsert_range(
                leave.employee_id,
                leave.start_date,
                leave.end_date,
                AttendanceStatus.LEAVE,
                AttendanceSource.LEAVE,
                valid=True,
            )
            await self.balances.debit(
                leave.employee_id,
                leave.category,
                leave.day_count,
                period_year=leave.start_date.year,
            )

        self.session.add(
            AuditEvent(
                actor_id=approver_id,
                entity_type="leave_request",
                entity_id=request_id,
                action=f"leave_request.{to_status.value}",
                after_json={
                    "status": to_status.value,
                    "category": leave.category,
                    "start_date": leave.start_date.isoformat(),
                    "end_date": leave.end_date.isoformat(),
                    "days_applied": days_applied,
                },
            )
        )
        await self.session.flush()
        await self.session.refresh(leave)

        logger.info(
            "Leave request %s %s by %s (%d day(s) applied)",
            request_id,
            to_status.value,
            approver_id,
            days_applied,
        )
        return LeaveDecision(
            request_id=request_id,
            status=to_status.value,
            approver_id=approver_id,
            days_applied=days_applied,
        )

    async def get(self, request_id: UUID) -> LeaveRequest:
        leave = await self.session.get(LeaveRequest, request_id, populate_existing=True)
        if leave is None:
            raise NotFoundError(f"Leave request {request_id} not found")
        return leave

    async def list_pending_for_manager(self, manager_id: UUID) -> list[LeaveRequest]:
        """Pending requests of a manager's direct reports, oldest first."""
        result = await self.session.execute(
            select(LeaveRequest)
            .join(Employee, Employee.employee_id == LeaveRequest.employee_id)
            .where(
                Employee.manager_id == manager_id,
                LeaveRequest.status == LeaveRequestStatus.PENDING.value,
            )
            .order_by(LeaveRequest.created_at, LeaveRequest.start_date)
        )
        return list(result.scalars().all())

    async def list_for_employee(self, employee_id: UUID, limit: int = 50) -> list[LeaveRequest]:
        """An employee's own requests, newest first."""
        result = await self.session.execute(
            select(LeaveRequest)
            .where(LeaveRequest.employee_id == employee_id)
            .order_by(LeaveRequest.created_at.desc(), LeaveRequest.start_date.desc())
            .limit(max(1, limit))
        )
        return list(result.scalars().all())

    async def _lock_pending(self, request_id: UUID) -> LeaveRequest | None:
        result = await self.session.execute(
            select(LeaveRequest)
            .where(
                LeaveRequest.leave_request_id == request_id,
                LeaveRequest.status == LeaveRequestStatus.PENDING.value,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()


async def decide_leave(
    database: Database,
    request_id: UUID,
    decision: str,
    approver_id: UUID,
    *,
    capabilities: CapabilityProvider,
    settings: Settings | None = None,
    today: Callable[[], date] = date.today,
) -> LeaveDecision:
    """Run ``decide`` as its own transaction, retrying whole on ConflictError."""

    async def work(session: AsyncSession) -> LeaveDecision:
        service = LeaveRequestService(session, capabilities, settings, today=today)
        return await service.decide(request_id, decision, approver_id)

    return await database.run_in_transaction(work)
