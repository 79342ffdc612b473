"""Payroll summary engine - live monthly payable estimate.

Joins the attendance ledger with the compensation effective at month start.
Nothing is cached or written: every call recomputes from current state.

    payable = round_half_up(base * max(0, presents + leaves) / working_days)

``working_days`` is a policy constant. The ratio is deliberately not clamped
at 1.0, so an employee with more present+leave days than the constant is paid
above base.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hrms_engine.errors import NotFoundError, ValidationError
from hrms_engine.models import AttendanceDay, AttendanceStatus, CompensationStructure, Employee

_PERIOD_RE = re.compile(r"^(\d{4})-(\d{1,2})$")

# Each ledger status lands in exactly one bucket
STATUS_BUCKETS: dict[str, str] = {
    AttendanceStatus.PRESENT.value: "presents",
    AttendanceStatus.WFH.value: "presents",
    AttendanceStatus.LEAVE.value: "leaves",
    AttendanceStatus.ABSENT.value: "absents",
}


@dataclass(frozen=True, order=True)
class Period:
    """A calendar month."""

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValidationError(f"Month must be between 1 and 12, got {self.month}")
        if not 1 <= self.year <= 9998:
            raise ValidationError(f"Year out of range: {self.year}")

    @classmethod
    def parse(cls, value: str) -> Period:
        """Parse ``YYYY-MM``."""
        match = _PERIOD_RE.match((value or "").strip())
        if not match:
            raise ValidationError("month must be formatted as YYYY-MM")
        return cls(int(match.group(1)), int(match.group(2)))

    @classmethod
    def containing(cls, day: date) -> Period:
        return cls(day.year, day.month)

    @property
    def start(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def next_start(self) -> date:
        """Exclusive upper bound of the month."""
        if self.month == 12:
            return date(self.year + 1, 1, 1)
        return date(self.year, self.month + 1, 1)

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


@dataclass(frozen=True)
class PayrollSummaryRow:
    """Derived per-employee view for one period; never persisted."""

    employee_id: UUID
    employee_code: str
    employee_name: str
    base_compensation: Decimal
    presents: int
    leaves: int
    absents: int
    payable: Decimal


def compute_payable(base: Decimal, presents: int, leaves: int, working_days: int) -> Decimal:
    """Prorate base by paid days, rounded half-up to whole currency units."""
    if working_days <= 0:
        raise ValidationError("working_days_per_month must be positive")
    paid_days = max(0, presents + leaves)
    amount = Decimal(base) * Decimal(paid_days) / Decimal(working_days)
    return amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP)


class PayrollSummaryEngine:
    """Read-only monthly payroll aggregator.

    Takes no locks. A concurrent leave decision is either fully visible or not
    at all, because the decision commits atomically.
    """

    def __init__(self, session: AsyncSession, working_days_per_month: int = 26):
        if working_days_per_month <= 0:
            raise ValidationError("working_days_per_month must be positive")
        self.session = session
        self.working_days_per_month = working_days_per_month

    async def compute(self, period: Period) -> list[PayrollSummaryRow]:
        """Summary rows for every employee, ordered by employee code."""
        return await self._compute(period, employee_id=None)

    async def compute_for_employee(self, employee_id: UUID, period: Period) -> PayrollSummaryRow:
        rows = await self._compute(period, employee_id=employee_id)
        if not rows:
            raise NotFoundError(f"Employee {employee_id} not found")
        return rows[0]

    async def _compute(
        self, period: Period, employee_id: UUID | None
    ) -> list[PayrollSummaryRow]:
        employees_query = select(Employee).order_by(Employee.code)
        if employee_id is not None:
            employees_query = employees_query.where(Employee.employee_id == employee_id)
        employees = list((await self.session.execute(employees_query)).scalars().all())
        if not employees:
            return []

        counts = await self._attendance_counts(period, employee_id)
        bases = await self._base_compensation(period, employee_id)

        rows: list[PayrollSummaryRow] = []
        for employee in employees:
            buckets = counts.get(employee.employee_id, {})
            presents = buckets.get("presents", 0)
            leaves = buckets.get("leaves", 0)
            absents = buckets.get("absents", 0)
            base = bases.get(employee.employee_id, Decimal("0"))
            rows.append(
                PayrollSummaryRow(
                    employee_id=employee.employee_id,
                    employee_code=employee.code,
                    employee_name=employee.full_name,
                    base_compensation=base,
                    presents=presents,
                    leaves=leaves,
                    absents=absents,
                    payable=compute_payable(
                        base, presents, leaves, self.working_days_per_month
                    ),
                )
            )
        return rows

    async def _attendance_counts(
        self, period: Period, employee_id: UUID | None
    ) -> dict[UUID, dict[str, int]]:
        """Count rows in ``[period.start, period.next_start)`` per bucket."""
        bucket_columns = {
            bucket: func.sum(
                case(
                    (
                        AttendanceDay.status.in_(
                            [s for s, b in STATUS_BUCKETS.items() if b == bucket]
                        ),
                        1,
                    ),
                    else_=0,
                )
            ).label(bucket)
            for bucket in ("presents", "leaves", "absents")
        }
        query = (
            select(AttendanceDay.employee_id, *bucket_columns.values())
            .where(
                AttendanceDay.work_date >= period.start,
                AttendanceDay.work_date < period.next_start,
            )
            .group_by(AttendanceDay.employee_id)
        )
        if employee_id is not None:
            query = query.where(AttendanceDay.employee_id == employee_id)

        result = await self.session.execute(query)
        return {
            row.employee_id: {
                "presents": int(row.presents or 0),
                "leaves": int(row.leaves or 0),
                "absents": int(row.absents or 0),
            }
            for row in result
        }

    async def _base_compensation(
        self, period: Period, employee_id: UUID | None
    ) -> dict[UUID, Decimal]:
        """Latest compensation with ``effective_from <= period.start`` per employee."""
        latest = (
            select(
                CompensationStructure.employee_id,
                func.max(CompensationStructure.effective_from).label("effective_from"),
            )
            .where(CompensationStructure.effective_from <= period.start)
            .group_by(CompensationStructure.employee_id)
        )
        if employee_id is not None:
            latest = latest.where(CompensationStructure.employee_id == employee_id)
        latest = latest.subquery()

        result = await self.session.execute(
            select(CompensationStructure).join(
                latest,
                (CompensationStructure.employee_id == latest.c.employee_id)
                & (CompensationStructure.effective_from == latest.c.effective_from),
            )
        )
        return {
            structure.employee_id: Decimal(structure.base_amount)
            for structure in result.scalars().all()
        }
