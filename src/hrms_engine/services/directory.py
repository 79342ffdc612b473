"""Employee directory: read-only view of employees and compensation."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hrms_engine.errors import ValidationError
from hrms_engine.models import CompensationStructure, Employee

# Guards against cycles in malformed manager data
MAX_CHAIN_DEPTH = 32


class EmployeeDirectory:
    """Lookups over the onboarding subsystem's employee tables."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, employee_id: UUID) -> Employee | None:
        return await self.session.get(Employee, employee_id)

    async def require_active(self, employee_id: UUID) -> Employee:
        """Get an employee with an active profile or raise ValidationError."""
        employee = await self.get(employee_id)
        if employee is None:
            raise ValidationError(f"Employee {employee_id} does not exist")
        if not employee.is_active:
            raise ValidationError(
                f"Employee {employee_id} has no active profile (status: {employee.status})"
            )
        return employee

    async def management_chain(self, employee_id: UUID) -> list[UUID]:
        """Manager ids from the direct manager upward."""
        chain: list[UUID] = []
        current = await self.get(employee_id)
        while current is not None and current.manager_id is not None:
            if current.manager_id in chain or len(chain) >= MAX_CHAIN_DEPTH:
                break
            chain.append(current.manager_id)
            current = await self.get(current.manager_id)
        return chain

    async def direct_reports(self, manager_id: UUID) -> list[Employee]:
        result = await self.session.execute(
            select(Employee).where(Employee.manager_id == manager_id).order_by(Employee.code)
        )
        return list(result.scalars().all())

    async def compensation_as_of(
        self, employee_id: UUID, as_of_date: date
    ) -> CompensationStructure | None:
        """Most recent compensation effective on or before ``as_of_date``."""
        result = await self.session.execute(
            select(CompensationStructure)
            .where(
                CompensationStructure.employee_id == employee_id,
                CompensationStructure.effective_from <= as_of_date,
            )
            .order_by(CompensationStructure.effective_from.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def base_compensation_as_of(self, employee_id: UUID, as_of_date: date) -> Decimal:
        """Base compensation figure, zero when nothing is effective yet."""
        structure = await self.compensation_as_of(employee_id, as_of_date)
        if structure is None:
            return Decimal("0")
        return structure.base_amount
