"""API routes."""

from hrms_engine.api.routes.attendance import router as attendance_router
from hrms_engine.api.routes.health import router as health_router
from hrms_engine.api.routes.leave_requests import router as leave_router
from hrms_engine.api.routes.payroll import router as payroll_router

__all__ = ["attendance_router", "health_router", "leave_router", "payroll_router"]
