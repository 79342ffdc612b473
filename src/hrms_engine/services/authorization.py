"""Approval authorization boundary.

Capability codes come from an external provider (the auth subsystem). This
module only combines them with the management chain to answer "may this
approver decide leave for this employee".
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Protocol, runtime_checkable
from uuid import UUID

from hrms_engine.errors import AuthorizationError
from hrms_engine.services.directory import EmployeeDirectory

logger = logging.getLogger(__name__)

LEAVE_APPROVE = "LEAVE_APPROVE"
ATTENDANCE_APPROVE = "ATTENDANCE_APPROVE"
HR_VIEW = "HR_VIEW"
HR_MANAGE = "HR_MANAGE"


@runtime_checkable
class CapabilityProvider(Protocol):
    """Supplies the capability codes held by an actor."""

    async def capabilities_for(self, actor_id: UUID) -> frozenset[str]:
        ...


class StaticCapabilityProvider:
    """Capability provider backed by a fixed mapping."""

    def __init__(self, grants: Mapping[UUID, Iterable[str]] | None = None):
        self._grants = {actor: frozenset(codes) for actor, codes in (grants or {}).items()}

    def grant(self, actor_id: UUID, *codes: str) -> None:
        self._grants[actor_id] = self._grants.get(actor_id, frozenset()) | frozenset(codes)

    async def capabilities_for(self, actor_id: UUID) -> frozenset[str]:
        return self._grants.get(actor_id, frozenset())


class ApprovalAuthorizer:
    """Checks that an approver may decide an employee's leave.

    The approver must hold LEAVE_APPROVE and sit in the employee's
    management chain.
    """

    def __init__(self, capabilities: CapabilityProvider, directory: EmployeeDirectory):
        self.capabilities = capabilities
        self.directory = directory

    async def require_capability(self, actor_id: UUID, code: str) -> None:
        granted = await self.capabilities.capabilities_for(actor_id)
        if code not in granted:
            logger.info("Actor %s lacks capability %s", actor_id, code)
            raise AuthorizationError(f"Missing capability {code}")

    async def ensure_can_approve(self, approver_id: UUID, employee_id: UUID) -> None:
        await self.require_capability(approver_id, LEAVE_APPROVE)
        chain = await self.directory.management_chain(employee_id)
        if approver_id not in chain:
            logger.info(
                "Approver %s is not in the management chain of %s", approver_id, employee_id
            )
            raise AuthorizationError(
                "Approver is not in the employee's management chain"
            )

    async def ensure_can_view(self, actor_id: UUID, employee_id: UUID) -> None:
        """Self, anyone up the management chain, or an HR_VIEW holder."""
        if actor_id == employee_id:
            return
        if actor_id in await self.directory.management_chain(employee_id):
            return
        await self.require_capability(actor_id, HR_VIEW)
