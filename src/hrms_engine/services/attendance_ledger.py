"""Attendance ledger: one current-state fact per (employee, work_date).

Writes are upserts keyed on the natural key, so the ledger never holds two
rows for the same day and the last writer wins. No history is kept.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date, datetime, timedelta
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from hrms_engine.errors import ValidationError
from hrms_engine.models import AttendanceDay, AttendanceStatus, Employee

logger = logging.getLogger(__name__)

_UPDATABLE_COLUMNS = ("status", "source", "geofence_ok", "in_time", "out_time")

# Days per INSERT statement; asyncpg caps a statement at 32767 bind parameters
UPSERT_BATCH_DAYS = 1000


def iter_dates(start: date, end: date) -> list[date]:
    """Every calendar date in the inclusive range."""
    return [start + timedelta(days=offset) for offset in range((end - start).days + 1)]


class AttendanceLedger:
    """Service owning per-day attendance facts.

    Operations:
    - upsert: write one day, overwriting any earlier status
    - upsert_range: write every day of an inclusive range in one statement
    - list_range / list_for_team: bounded, most-recent-first reads
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        future_horizon_days: int = 366,
        max_rows: int = 60,
        team_max_rows: int = 200,
        today: Callable[[], date] = date.today,
    ):
        self.session = session
        self.future_horizon_days = future_horizon_days
        self.max_rows = max_rows
        self.team_max_rows = team_max_rows
        self._today = today

    @property
    def horizon(self) -> date:
        """Latest date the ledger accepts."""
        return self._today() + timedelta(days=self.future_horizon_days)

    def validate_date(self, work_date: date) -> None:
        if work_date > self.horizon:
            raise ValidationError(
                f"Attendance date {work_date.isoformat()} is beyond the "
                f"{self.future_horizon_days}-day horizon ({self.horizon.isoformat()})"
            )

    async def upsert(
        self,
        employee_id: UUID,
        work_date: date,
        status: str,
        source: str,
        valid: bool,
        in_time: datetime | None = None,
        out_time: datetime | None = None,
    ) -> None:
        """Write the attendance fact for one day.

        Calling twice with the same arguments leaves the same state as calling
        once; a different status overwrites the earlier one.
        """
        await self.upsert_range(
            employee_id,
            work_date,
            work_date,
            status,
            source,
            valid,
            in_time=in_time,
            out_time=out_time,
        )

    async def upsert_range(
        self,
        employee_id: UUID,
        start: date,
        end: date,
        status: str,
        source: str,
        valid: bool,
        in_time: datetime | None = None,
        out_time: datetime | None = None,
    ) -> int:
        """Write the same fact for every day in ``[start, end]``.

        Returns the number of days written (inserted or overwritten).
        """
        status_value = _normalise_status(status)
        source_value = str(getattr(source, "value", source) or "").strip().lower()
        if not source_value:
            raise ValidationError("Attendance source is required")
        if end < start:
            raise ValidationError("End date must be on or after start date")
        self.validate_date(end)

        rows: list[dict[str, Any]] = [
            {
                "attendance_day_id": uuid4(),
                "employee_id": employee_id,
                "work_date": day,
                "status": status_value,
                "source": source_value,
                "geofence_ok": bool(valid),
                "in_time": in_time,
                "out_time": out_time,
            }
            for day in iter_dates(start, end)
        ]

        insert = self._insert()
        for offset in range(0, len(rows), UPSERT_BATCH_DAYS):
            stmt = insert(AttendanceDay).values(rows[offset : offset + UPSERT_BATCH_DAYS])
            stmt = stmt.on_conflict_do_update(
                index_elements=["employee_id", "work_date"],
                set_={
                    **{column: stmt.excluded[column] for column in _UPDATABLE_COLUMNS},
                    "updated_at": func.now(),
                },
            )
            await self.session.execute(stmt)

        logger.debug(
            "Upserted %d attendance day(s) for %s as %s (%s..%s)",
            len(rows),
            employee_id,
            status_value,
            start,
            end,
        )
        return len(rows)

    async def get(self, employee_id: UUID, work_date: date) -> AttendanceDay | None:
        """Get the fact for one day, if any."""
        result = await self.session.execute(
            select(AttendanceDay).where(
                AttendanceDay.employee_id == employee_id,
                AttendanceDay.work_date == work_date,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_range(
        self,
        employee_id: UUID,
        from_date: date,
        to_date: date,
        limit: int | None = None,
    ) -> list[AttendanceDay]:
        """List an employee's days in ``[from_date, to_date]``, newest first.

        A reversed range is empty rather than an error.
        """
        if to_date < from_date:
            return []

        result = await self.session.execute(
            select(AttendanceDay)
            .where(
                AttendanceDay.employee_id == employee_id,
                AttendanceDay.work_date >= from_date,
                AttendanceDay.work_date <= to_date,
            )
            .order_by(AttendanceDay.work_date.desc())
            .limit(_bounded(limit, self.max_rows))
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def list_for_team(
        self,
        manager_id: UUID,
        max_rows: int | None = None,
    ) -> list[AttendanceDay]:
        """List days for all direct reports of a manager, newest first."""
        result = await self.session.execute(
            select(AttendanceDay)
            .join(Employee, Employee.employee_id == AttendanceDay.employee_id)
            .where(Employee.manager_id == manager_id)
            .order_by(AttendanceDay.work_date.desc(), Employee.code)
            .limit(_bounded(max_rows, self.team_max_rows))
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    def _insert(self):
        # ON CONFLICT upserts are dialect constructs; both dialects share the API
        if self.session.get_bind().dialect.name == "sqlite":
            return sqlite.insert
        return postgresql.insert


def _normalise_status(status: str) -> str:
    value = str(getattr(status, "value", status) or "").strip().lower()
    try:
        return AttendanceStatus(value).value
    except ValueError:
        allowed = ", ".join(s.value for s in AttendanceStatus)
        raise ValidationError(f"Attendance status must be one of: {allowed}") from None


def _bounded(requested: int | None, ceiling: int) -> int:
    """Clamp a caller's row limit into ``[1, ceiling]``."""
    if requested is None:
        return ceiling
    return max(1, min(requested, ceiling))
