"""Pytest fixtures for salary advance tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import datetime, timezone
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from salary_advance.database import create_tables, get_engine, make_session_factory
from salary_advance.events import AdvanceEvent, EventEmitter
from salary_advance.gateway import StubGateway
from salary_advance.models import Advance, Employee, Employer
from salary_advance.services import AdvanceService, CallbackReconciler

# Use in-memory SQLite for tests (with async support)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# 15 September 2026: a 30-day month, so 60000/month has earned exactly 30000
FIXED_NOW = datetime(2026, 9, 15, 9, 30, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory database per test."""
    engine = get_engine(TEST_DATABASE_URL)
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def file_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """File-backed database; sessions get separate connections."""
    engine = get_engine(f"sqlite+aiosqlite:///{tmp_path / 'advances.db'}")
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with make_session_factory(engine)() as session:
        yield session


async def add_employer(session: AsyncSession, **policy) -> Employer:
    values = {
        "company_name": "Test Corp",
        "company_email": "hr@testcorp.example",
        "auto_approve_advances": True,
        "max_advance_percentage": Decimal("50"),
        "max_advances_per_month": 4,
        "fee_percentage": Decimal("4"),
        "flat_fee": Decimal("0"),
    }
    values.update(policy)
    employer = Employer(**values)
    session.add(employer)
    await session.commit()
    return employer


async def add_employee(
    session: AsyncSession,
    employer: Employer,
    monthly_salary: Decimal = Decimal("60000"),
    **fields,
) -> Employee:
    values = {
        "employer_id": employer.employer_id,
        "employee_number": "E-001",
        "first_name": "Wanjiru",
        "last_name": "Kamau",
        "phone_number": "+254712345678",
        "mpesa_number": "0712345678",
        "monthly_salary": monthly_salary,
    }
    values.update(fields)
    employee = Employee(**values)
    session.add(employee)
    await session.commit()
    return employee


@pytest_asyncio.fixture
async def employer(session: AsyncSession) -> Employer:
    """Employer with the default policy: auto-approve, 50%, 4/month, 4% fee."""
    return await add_employer(session)


@pytest_asyncio.fixture
async def manual_employer(session: AsyncSession) -> Employer:
    """Employer that reviews every advance."""
    return await add_employer(session, company_name="Manual Ltd", auto_approve_advances=False)


@pytest_asyncio.fixture
async def employee(session: AsyncSession, employer: Employer) -> Employee:
    return await add_employee(session, employer)


@pytest_asyncio.fixture
async def manual_employee(session: AsyncSession, manual_employer: Employer) -> Employee:
    return await add_employee(session, manual_employer, employee_number="M-001")


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def gateway() -> StubGateway:
    return StubGateway()


@pytest.fixture
def events() -> list[AdvanceEvent]:
    return []


@pytest.fixture
def emitter(events: list[AdvanceEvent]) -> EventEmitter:
    emitter = EventEmitter()
    emitter.on_all(events.append)
    return emitter


@pytest.fixture
def service(session, gateway, emitter, clock) -> AdvanceService:
    return AdvanceService(session, gateway=gateway, emitter=emitter, clock=clock)


@pytest.fixture
def reconciler(service: AdvanceService) -> CallbackReconciler:
    return CallbackReconciler(service)


def result_callback(
    correlation_id: str,
    *,
    result_code: int = 0,
    result_desc: str = "The service request is processed successfully.",
    transaction_id: str = "SIX1234ABC",
) -> dict:
    """B2C result body as the provider posts it."""
    return {
        "Result": {
            "ResultType": 0,
            "ResultCode": result_code,
            "ResultDesc": result_desc,
            "OriginatorConversationID": correlation_id,
            "ConversationID": "AG_20260915_000000000000",
            "TransactionID": transaction_id,
            "ResultParameters": {
                "ResultParameter": [
                    {"Key": "TransactionAmount", "Value": 10000},
                    {"Key": "TransactionReceipt", "Value": transaction_id},
                    {"Key": "TransactionID", "Value": transaction_id},
                ]
            },
        }
    }


@pytest.fixture
def make_callback():
    return result_callback


@pytest.fixture
def make_employer(session: AsyncSession):
    """Factory for employers with a custom policy."""

    async def _make(**policy) -> Employer:
        return await add_employer(session, **policy)

    return _make


@pytest.fixture
def make_employee(session: AsyncSession):
    """Factory for employees of a given employer."""

    async def _make(employer: Employer, **fields) -> Employee:
        return await add_employee(session, employer, **fields)

    return _make


@pytest_asyncio.fixture
async def file_advance(file_engine: AsyncEngine, emitter: EventEmitter, clock) -> Advance:
    """Approved 10000 advance awaiting its callback, on the file-backed database."""
    async with make_session_factory(file_engine)() as session:
        employee = await add_employee(session, await add_employer(session))
        service = AdvanceService(session, gateway=StubGateway(), emitter=emitter, clock=clock)
        outcome = await service.request_advance(employee.employee_id, Decimal("10000"))
    return outcome.advance
