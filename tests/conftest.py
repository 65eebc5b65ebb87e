from collections.abc import AsyncGenerator
from datetime import date
from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from src.core.database import get_db
from src.core.database.base import Base
from src.main import app
from src.modules.payments.models import (
    Debt,
    DebtStatus,
    Payment,
    PaymentConcept,
    PaymentMethod,
)
from src.modules.students.models import Group, Student

# In-memory SQLite shared by every session of one test
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Engine bound to the test's own event loop."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    yield engine
    await engine.dispose()


@pytest.fixture(autouse=True)
async def setup_database(test_engine: AsyncEngine):
    """Create tables before each test and drop after."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def db_session(test_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Get test database session."""
    test_async_session = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with test_async_session() as session:
        yield session


@pytest.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Get test HTTP client with overridden database dependency."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()


# --- Ledger builders ---


class LedgerBuilder:
    """Adds groups, students, concepts, debts and payments, committing each row."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def group(self, name: str = "3A Primaria", level: str = "Primaria") -> Group:
        group = Group(name=name, level=level, school_year="2024-2025")
        self.session.add(group)
        await self.session.commit()
        return group

    async def student(
        self, full_name: str = "Sofía Hernández", group: Group | None = None
    ) -> Student:
        student = Student(
            full_name=full_name,
            group_id=group.id if group else None,
            level=group.level if group else "Primaria",
        )
        self.session.add(student)
        await self.session.commit()
        return student

    async def concept(
        self, name: str = "Colegiatura", base_amount: str = "1000.00"
    ) -> PaymentConcept:
        concept = PaymentConcept(name=name, base_amount=Decimal(base_amount))
        self.session.add(concept)
        await self.session.commit()
        return concept

    async def debt(
        self,
        student: Student,
        concept: PaymentConcept,
        amount: str,
        due_date: date,
        status: DebtStatus = DebtStatus.PENDING,
    ) -> Debt:
        debt = Debt(
            student_id=student.id,
            concept_id=concept.id,
            amount_total=Decimal(amount),
            due_date=due_date,
            status=status.value,
        )
        self.session.add(debt)
        await self.session.commit()
        return debt

    async def payment(
        self,
        student: Student,
        concept: PaymentConcept,
        amount: str,
        payment_date: date,
        debt: Debt | None = None,
        method: PaymentMethod = PaymentMethod.CASH,
    ) -> Payment:
        payment = Payment(
            student_id=student.id,
            concept_id=concept.id,
            debt_id=debt.id if debt else None,
            amount=Decimal(amount),
            payment_date=payment_date,
            method=method.value,
        )
        self.session.add(payment)
        await self.session.commit()
        return payment


@pytest.fixture
def ledger(db_session: AsyncSession) -> LedgerBuilder:
    return LedgerBuilder(db_session)
