"""ORM models."""

from hrms_engine.models.attendance import AttendanceDay, AttendanceSource, AttendanceStatus
from hrms_engine.models.audit import AuditEvent
from hrms_engine.models.base import Base, TimestampMixin
from hrms_engine.models.employee import CompensationStructure, Employee, EmployeeStatus
from hrms_engine.models.leave import LeaveBalance, LeaveRequest

__all__ = [
    "AttendanceDay",
    "AttendanceSource",
    "AttendanceStatus",
    "AuditEvent",
    "Base",
    "CompensationStructure",
    "Employee",
    "EmployeeStatus",
    "LeaveBalance",
    "LeaveRequest",
    "TimestampMixin",
]
