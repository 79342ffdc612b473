"""Leave balance tracker."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from hrms_engine.errors import NotFoundError, ValidationError, translate_storage_errors
from hrms_engine.models import LeaveBalance

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BalanceView:
    """Balance for one leave category.

    ``remaining`` is not clamped; it goes negative when a category has been
    over-debited and callers must handle that.
    """

    category: str
    period_year: int
    allocated: int
    used: int

    @property
    def remaining(self) -> int:
        return self.allocated - self.used


class LeaveBalanceTracker:
    """Allocated/used leave counts per (employee, category, leave year).

    Balances are provisioned at the start of a leave year by an allocation
    process; debit and credit never create rows.
    """

    def __init__(self, session: AsyncSession, today: Callable[[], date] = date.today):
        self.session = session
        self._today = today

    async def debit(
        self, employee_id: UUID, category: str, days: int, period_year: int
    ) -> None:
        """Consume ``days`` from the balance (``used += days``)."""
        await self._apply(
            employee_id, category, period_year, days, used=LeaveBalance.used + days
        )

    async def credit(
        self, employee_id: UUID, category: str, days: int, period_year: int
    ) -> None:
        """Grant ``days`` extra allocation (``allocated += days``)."""
        await self._apply(
            employee_id,
            category,
            period_year,
            days,
            allocated=LeaveBalance.allocated + days,
        )

    async def query(
        self, employee_id: UUID, period_year: int | None = None
    ) -> list[BalanceView]:
        """Balances for every provisioned category, sorted by category."""
        year = period_year if period_year is not None else self._today().year
        result = await self.session.execute(
            select(LeaveBalance)
            .where(
                LeaveBalance.employee_id == employee_id,
                LeaveBalance.period_year == year,
            )
            .order_by(LeaveBalance.category)
            .execution_options(populate_existing=True)
        )
        return [
            BalanceView(
                category=row.category,
                period_year=row.period_year,
                allocated=row.allocated,
                used=row.used,
            )
            for row in result.scalars().all()
        ]

    async def provision(
        self,
        employee_id: UUID,
        category: str,
        period_year: int,
        allocated: int,
    ) -> LeaveBalance:
        """Create the balance row for a leave year if it does not exist yet.

        Used by the yearly allocation job and by seed scripts. An existing row
        is returned untouched.
        """
        if allocated < 0:
            raise ValidationError("Allocation cannot be negative")
        code = category.strip().upper()
        result = await self.session.execute(
            select(LeaveBalance).where(
                LeaveBalance.employee_id == employee_id,
                LeaveBalance.category == code,
                LeaveBalance.period_year == period_year,
            )
        )
        existing = result.scalar_one_or_none()
        if existing is not None:
            return existing

        balance = LeaveBalance(
            employee_id=employee_id,
            category=code,
            period_year=period_year,
            allocated=allocated,
            used=0,
        )
        self.session.add(balance)
        # A concurrent provision of the same row loses on the unique key
        with translate_storage_errors(unique_is_conflict=True):
            await self.session.flush()
        return balance

    async def provision_defaults(
        self,
        employee_id: UUID,
        period_year: int,
        allocations: dict[str, int],
    ) -> list[LeaveBalance]:
        """Provision every configured category for one employee."""
        return [
            await self.provision(employee_id, category, period_year, days)
            for category, days in sorted(allocations.items())
        ]

    async def _apply(
        self,
        employee_id: UUID,
        category: str,
        period_year: int,
        days: int,
        **values,
    ) -> None:
        if days <= 0:
            raise ValidationError("Days must be a positive number")

        result = await self.session.execute(
            update(LeaveBalance)
            .where(
                LeaveBalance.employee_id == employee_id,
                LeaveBalance.category == category.strip().upper(),
                LeaveBalance.period_year == period_year,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise NotFoundError(
                f"No {category} balance provisioned for employee {employee_id} "
                f"in {period_year}"
            )
        logger.debug(
            "Balance %s/%s/%s adjusted by %d (%s)",
            employee_id,
            category,
            period_year,
            days,
            ", ".join(values),
        )
