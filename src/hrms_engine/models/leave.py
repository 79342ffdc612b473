"""Leave request and leave balance models."""

from __future__ import annotations

from datetime import date, datetime
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrms_engine.models.base import Base, TimestampMixin
from hrms_engine.models.employee import Employee


class LeaveRequest(Base, TimestampMixin):
    """A leave request; decided exactly once."""

    __tablename__ = "leave_request"

    leave_request_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    category: Mapped[str] = mapped_column(String, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="pending")
    approver_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("employee.employee_id"),
        nullable=True,
    )
    decided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="leave_request_status_check",
        ),
        CheckConstraint("end_date >= start_date", name="leave_request_dates_check"),
    )

    employee: Mapped[Employee] = relationship(foreign_keys=[employee_id])

    @property
    def day_count(self) -> int:
        """Inclusive number of calendar days covered."""
        return (self.end_date - self.start_date).days + 1


class LeaveBalance(Base):
    """Allocated and used days per (employee, category, leave year)."""

    __tablename__ = "leave_balance"

    leave_balance_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    category: Mapped[str] = mapped_column(String, nullable=False)
    period_year: Mapped[int] = mapped_column(Integer, nullable=False)
    allocated: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint(
            "employee_id", "category", "period_year", name="leave_balance_period_unique"
        ),
        CheckConstraint("used >= 0", name="leave_balance_used_check"),
    )

    @property
    def remaining(self) -> int:
        """Allocated minus used; negative when over-debited."""
        return self.allocated - self.used
