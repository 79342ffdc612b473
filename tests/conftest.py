"""Pytest fixtures for HRMS engine tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from hrms_engine.api.app import create_app
from hrms_engine.config import Settings
from hrms_engine.database import Database, create_engine_for
from hrms_engine.models import CompensationStructure, Employee, EmployeeStatus
from hrms_engine.services.authorization import (
    ATTENDANCE_APPROVE,
    HR_MANAGE,
    HR_VIEW,
    LEAVE_APPROVE,
    StaticCapabilityProvider,
)
from hrms_engine.services.leave_balance import LeaveBalanceTracker

# Frozen clock so horizon checks and default periods are deterministic
TODAY = date(2024, 3, 15)


def fixed_today() -> date:
    return TODAY


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings pointing at a file-backed SQLite database.

    A file (not :memory:) so that separate sessions see each other's
    commits and contend for the writer lock like real connections do.
    """
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'hrms_test.db'}",
        conflict_retry_attempts=10,
        conflict_retry_backoff_seconds=0.01,
        db_pool_timeout_seconds=0.2,
    )


@pytest_asyncio.fixture
async def database(settings) -> AsyncGenerator[Database, None]:
    """Create the schema in a fresh database for each test."""
    db = Database(
        create_engine_for(settings.database_url, settings.db_pool_timeout_seconds),
        retry_attempts=settings.conflict_retry_attempts,
        retry_backoff_seconds=settings.conflict_retry_backoff_seconds,
    )
    await db.create_all()
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def session(database) -> AsyncGenerator[AsyncSession, None]:
    """A session that commits on exit, like a request-scoped one."""
    async with database.session() as session:
        yield session


@dataclass
class Org:
    """A small reporting line: director > manager > two reports."""

    director_id: UUID
    manager_id: UUID
    alice_id: UUID
    bob_id: UUID
    inactive_id: UUID


@pytest_asyncio.fixture
async def org(database) -> Org:
    """Seed employees, compensation and this year's leave balances."""
    async with database.session() as session:
        director = Employee(code="E001", full_name="Dana Director", status=EmployeeStatus.ACTIVE.value)
        session.add(director)
        await session.flush()

        manager = Employee(
            code="E002",
            full_name="Morgan Manager",
            status=EmployeeStatus.ACTIVE.value,
            manager_id=director.employee_id,
        )
        session.add(manager)
        await session.flush()

        alice = Employee(
            code="E003",
            full_name="Alice Able",
            status=EmployeeStatus.ACTIVE.value,
            manager_id=manager.employee_id,
            date_of_joining=date(2022, 1, 10),
        )
        bob = Employee(
            code="E004",
            full_name="Bob Baker",
            status=EmployeeStatus.ACTIVE.value,
            manager_id=manager.employee_id,
        )
        inactive = Employee(
            code="E005",
            full_name="Ivy Inactive",
            status=EmployeeStatus.PRE_JOIN.value,
            manager_id=manager.employee_id,
        )
        session.add_all([alice, bob, inactive])
        await session.flush()

        session.add_all(
            [
                CompensationStructure(
                    employee_id=alice.employee_id,
                    effective_from=date(2023, 1, 1),
                    basic=Decimal("15000"),
                    hra=Decimal("6000"),
                    special=Decimal("3000"),
                ),
                CompensationStructure(
                    employee_id=alice.employee_id,
                    effective_from=date(2024, 1, 1),
                    basic=Decimal("18000"),
                    hra=Decimal("7500"),
                    special=Decimal("4500"),
                ),
                CompensationStructure(
                    employee_id=bob.employee_id,
                    effective_from=date(2023, 6, 1),
                    basic=Decimal("20000"),
                    hra=Decimal("8000"),
                    special=Decimal("0"),
                ),
            ]
        )

        tracker = LeaveBalanceTracker(session, today=fixed_today)
        for employee in (alice, bob, manager):
            await tracker.provision_defaults(
                employee.employee_id, TODAY.year, {"CL": 12, "SL": 8, "PL": 12}
            )

        ids = Org(
            director_id=director.employee_id,
            manager_id=manager.employee_id,
            alice_id=alice.employee_id,
            bob_id=bob.employee_id,
            inactive_id=inactive.employee_id,
        )
    return ids


@pytest.fixture
def capabilities(org) -> StaticCapabilityProvider:
    """Managers approve leave; the director also holds HR capabilities."""
    provider = StaticCapabilityProvider()
    provider.grant(org.manager_id, LEAVE_APPROVE, ATTENDANCE_APPROVE)
    provider.grant(org.director_id, LEAVE_APPROVE, ATTENDANCE_APPROVE, HR_VIEW, HR_MANAGE)
    return provider


@pytest_asyncio.fixture
async def client(database, settings, capabilities) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client wired to an app sharing the test database."""
    app = create_app(
        settings=settings,
        database=database,
        capabilities=capabilities,
        today=fixed_today,
    )
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def actor(employee_id: UUID) -> dict[str, str]:
    """Headers identifying the calling employee."""
    return {"X-Actor-ID": str(employee_id)}
