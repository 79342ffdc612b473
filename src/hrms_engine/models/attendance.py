"""Attendance ledger model."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from hrms_engine.models.base import Base


class AttendanceStatus(str, Enum):
    """Per-day attendance status values."""

    PRESENT = "present"
    ABSENT = "absent"
    LEAVE = "leave"
    WFH = "wfh"


class AttendanceSource(str, Enum):
    """Where an attendance fact came from."""

    GPS = "gps"
    QR = "qr"
    WEB = "web"
    IP = "ip"
    LEAVE = "leave"


class AttendanceDay(Base):
    """One attendance fact per (employee, work_date)."""

    __tablename__ = "attendance_day"

    attendance_day_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False)
    source: Mapped[str] = mapped_column(String, nullable=False)
    geofence_ok: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    in_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    out_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("employee_id", "work_date", name="attendance_employee_date_unique"),
        CheckConstraint(
            "status IN ('present', 'absent', 'leave', 'wfh')",
            name="attendance_status_check",
        ),
    )
