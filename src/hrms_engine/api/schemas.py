"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Leave request schemas
# ============================================================================


class LeaveRequestCreate(BaseModel):
    """Schema for submitting a leave request."""

    category: str = Field(min_length=1)
    start_date: date
    end_date: date
    reason: str | None = None


class LeaveRequestCreated(BaseModel):
    request_id: UUID
    status: str


class LeaveRequestResponse(BaseModel):
    """Schema for leave request response."""

    model_config = ConfigDict(from_attributes=True)

    leave_request_id: UUID
    employee_id: UUID
    category: str
    start_date: date
    end_date: date
    reason: str | None = None
    status: str
    approver_id: UUID | None = None
    decided_at: datetime | None = None
    created_at: datetime


class LeaveRequestListResponse(BaseModel):
    items: list[LeaveRequestResponse]


class DecisionRequest(BaseModel):
    """Manager decision on a pending request."""

    status: str = Field(description="approved or rejected")


class DecisionResponse(BaseModel):
    request_id: UUID
    status: str
    approver_id: UUID
    days_applied: int


# ============================================================================
# Leave balance schemas
# ============================================================================


class BalanceResponse(BaseModel):
    category: str
    period_year: int
    allocated: int
    used: int
    remaining: int


class BalanceListResponse(BaseModel):
    employee_id: UUID
    period_year: int
    items: list[BalanceResponse]


# ============================================================================
# Attendance schemas
# ============================================================================


class AttendanceUpsert(BaseModel):
    """Attendance fact pushed by an ingestion device."""

    status: str
    source: str
    geofence_ok: bool = False
    in_time: datetime | None = None
    out_time: datetime | None = None


class AttendanceDayResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    employee_id: UUID
    work_date: date
    status: str
    source: str
    geofence_ok: bool
    in_time: datetime | None = None
    out_time: datetime | None = None


class AttendanceListResponse(BaseModel):
    items: list[AttendanceDayResponse]


# ============================================================================
# Payroll schemas
# ============================================================================


class PayrollSummaryRowResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    employee_id: UUID
    employee_code: str
    employee_name: str
    base_compensation: Decimal
    presents: int
    leaves: int
    absents: int
    payable: Decimal


class PayrollSummaryResponse(BaseModel):
    month: str
    working_days_per_month: int
    rows: list[PayrollSummaryRowResponse]


# ============================================================================
# Error schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error responses."""

    detail: str
    code: str | None = None
