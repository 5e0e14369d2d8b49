"""
Test configuration and fixtures.

Provides:
- Database session with savepoint (rollback after each test)
- Employee / number factories
- JWT bearer token minting for authenticated tests
- HTTPX AsyncClient with proper headers
- A recording EmailSender for batch runs
"""
import os
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import AsyncGenerator, Generator

# In-memory SQLite unless a test database is provided
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["TESTING"] = "1"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import Session

from phone_registry.core.deps import get_db
from phone_registry.core.security import create_access_token
from phone_registry.db.base import Base
from phone_registry.db.enums import TokenStatus
from phone_registry.db.models import Employee, MobileNumber, VerificationToken
from phone_registry.db.session import SessionLocal, engine
from phone_registry.main import app
from phone_registry.services import employee_service, number_service
from phone_registry.services.email_sender import EmailResult
from phone_registry.services.verification_batch_service import generate_token
from phone_registry.utils.dates import utc_now

Base.metadata.create_all(engine)


# =============================================================================
# Database Fixtures (Savepoint pattern)
# =============================================================================

@pytest.fixture(scope="session")
def db_engine():
    return engine


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Creates a database session with savepoint for test isolation.

    Service code may call commit() and rollback(); both only act on a
    savepoint inside the outer transaction, which is rolled back at the end.
    """
    connection = engine.connect()
    transaction = connection.begin()
    session = SessionLocal(bind=connection, join_transaction_mode="create_savepoint")

    yield session

    session.close()
    transaction.rollback()
    connection.close()


# =============================================================================
# Domain factories
# =============================================================================

@pytest.fixture
def make_employee(db: Session):
    counter = {"n": 0}

    def _make(
        full_name: str | None = None,
        email: str | None = "auto",
        department: str | None = "Sales",
    ) -> Employee:
        counter["n"] += 1
        n = counter["n"]
        if email == "auto":
            email = f"employee{n}@example.com"
        return employee_service.create_employee(
            db,
            full_name=full_name or f"Employee {n}",
            email=email,
            department=department,
            hire_date=date(2020, 1, 1),
        )

    return _make


@pytest.fixture
def make_number(db: Session):
    counter = {"n": 0}

    def _make(applicant: Employee, phone_number: str | None = None, **kwargs) -> MobileNumber:
        counter["n"] += 1
        return number_service.create_number(
            db,
            phone_number=phone_number or f"1380000{counter['n']:04d}",
            application_date=kwargs.pop("application_date", date(2024, 1, 1)),
            applicant_employee_id=applicant.employee_id,
            **kwargs,
        )

    return _make


@pytest.fixture
def operator(make_employee) -> Employee:
    return make_employee(full_name="Olivia Operator", department="IT")


@pytest.fixture
def make_token(db: Session):
    def _make(
        employee: Employee,
        expires_in: timedelta = timedelta(days=7),
        batch_task_id: str | None = None,
    ) -> VerificationToken:
        token = VerificationToken(
            token=generate_token(),
            employee_id=employee.employee_id,
            batch_task_id=batch_task_id,
            status=TokenStatus.PENDING.value,
            expires_at=utc_now() + expires_in,
        )
        db.add(token)
        db.commit()
        return token

    return _make


# =============================================================================
# Email
# =============================================================================

@dataclass
class RecordingEmailSender:
    """EmailSender that records calls; addresses in `fail_for` fail delivery."""
    key: str = "recording"
    fail_for: set[str] = field(default_factory=set)
    sent: list[dict] = field(default_factory=list)

    async def send_verification_email(
        self, *, to_address, employee_name, verification_link, duration_days
    ) -> EmailResult:
        self.sent.append(
            {
                "to_address": to_address,
                "employee_name": employee_name,
                "verification_link": verification_link,
                "duration_days": duration_days,
            }
        )
        if to_address in self.fail_for:
            return EmailResult(success=False, error="Mailbox unavailable")
        return EmailResult(success=True, message_id=f"msg-{len(self.sent)}")


@pytest.fixture
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


# =============================================================================
# Auth Fixtures
# =============================================================================

@dataclass
class TestAuth:
    """Test authentication context."""
    operator: Employee
    token: str


@pytest.fixture(scope="function")
def test_auth(operator: Employee) -> TestAuth:
    """Create bearer JWT for the test operator."""
    return TestAuth(operator=operator, token=create_access_token(operator.employee_id))


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """
    Create unauthenticated AsyncClient for testing public endpoints.
    """
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def authed_client(
    db: Session,
    test_auth: TestAuth
) -> AsyncGenerator[AsyncClient, None]:
    """
    Create authenticated AsyncClient with a bearer token.
    """
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"Authorization": f"Bearer {test_auth.token}"},
    ) as c:
        yield c

    app.dependency_overrides.clear()
