"""Employee and compensation models.

Both tables belong to the onboarding subsystem; the leave and payroll services
only read them.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Date, ForeignKey, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hrms_engine.models.base import Base, TimestampMixin


class EmployeeStatus(str, Enum):
    """Employee lifecycle status values."""

    PRE_JOIN = "pre_join"
    ACTIVE = "active"
    INACTIVE = "inactive"


class Employee(Base, TimestampMixin):
    """Employee record."""

    __tablename__ = "employee"

    employee_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    code: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    full_name: Mapped[str] = mapped_column(String, nullable=False)
    manager_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("employee.employee_id"),
        nullable=True,
    )
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=EmployeeStatus.PRE_JOIN.value
    )
    date_of_joining: Mapped[date | None] = mapped_column(Date, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('pre_join', 'active', 'inactive')",
            name="employee_status_check",
        ),
    )

    # Relationships
    manager: Mapped[Employee | None] = relationship(remote_side=[employee_id])
    compensation: Mapped[list[CompensationStructure]] = relationship(
        back_populates="employee"
    )

    @property
    def is_active(self) -> bool:
        """Check if the employee has an active profile."""
        return self.status == EmployeeStatus.ACTIVE.value


class CompensationStructure(Base, TimestampMixin):
    """Effective-dated compensation (CTC) for an employee."""

    __tablename__ = "compensation_structure"

    compensation_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    effective_from: Mapped[date] = mapped_column(Date, nullable=False)
    basic: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    hra: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    special: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )

    __table_args__ = (
        UniqueConstraint(
            "employee_id", "effective_from", name="compensation_employee_effective_unique"
        ),
    )

    employee: Mapped[Employee] = relationship(back_populates="compensation")

    @property
    def base_amount(self) -> Decimal:
        """Monthly base used for payroll: basic + hra + special."""
        return self.basic + self.hra + self.special
