"""HRMS engine services."""

from hrms_engine.services.attendance_ledger import AttendanceLedger
from hrms_engine.services.authorization import (
    ApprovalAuthorizer,
    CapabilityProvider,
    StaticCapabilityProvider,
)
from hrms_engine.services.directory import EmployeeDirectory
from hrms_engine.services.leave_balance import BalanceView, LeaveBalanceTracker
from hrms_engine.services.leave_requests import LeaveDecision, LeaveRequestService, decide_leave
from hrms_engine.services.payroll_summary import Period, PayrollSummaryEngine, PayrollSummaryRow
from hrms_engine.services.state_machine import (
    InvalidTransitionError,
    LeaveRequestStateMachine,
    LeaveRequestStatus,
)

__all__ = [
    "ApprovalAuthorizer",
    "AttendanceLedger",
    "BalanceView",
    "CapabilityProvider",
    "EmployeeDirectory",
    "InvalidTransitionError",
    "LeaveBalanceTracker",
    "LeaveDecision",
    "LeaveRequestService",
    "LeaveRequestStateMachine",
    "LeaveRequestStatus",
    "PayrollSummaryEngine",
    "PayrollSummaryRow",
    "Period",
    "StaticCapabilityProvider",
    "decide_leave",
]
