"""PaymentConcept, Debt and Payment models (the ledger)."""

from datetime import date, datetime
from decimal import Decimal
from enum import StrEnum

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.database.base import Base, BaseModel, BigIntPK, MoneyColumn


class ApplicationType(StrEnum):
    """How often a concept is charged."""

    MONTHLY = "monthly"
    ANNUAL = "annual"
    ONE_TIME = "one_time"


class DebtStatus(StrEnum):
    """Debt status options.

    OVERDUE is a display classification (due_date < today and still open);
    the engine never writes it, but rows written by other subsystems may carry it.
    """

    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"


class PaymentMethod(StrEnum):
    """Payment method options."""

    CASH = "cash"
    TRANSFER = "transfer"
    CARD = "card"
    SPEI = "spei"


class PaymentConcept(BaseModel):
    """Fee concept (tuition, enrollment, uniform...) that debts and payments refer to."""

    __tablename__ = "payment_concepts"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    base_amount: Mapped[Decimal] = mapped_column(MoneyColumn, nullable=False)
    applicable_level: Mapped[str | None] = mapped_column(String(50), nullable=True)
    application_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ApplicationType.MONTHLY.value
    )


class Debt(Base):
    """
    Debt (adeudo) - an amount assessed to a student for a fee concept.

    A debt is settled when the payments linked to it add up to amount_total.
    Never deleted once payments reference it.
    """

    __tablename__ = "debts"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)

    student_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("students.id"), nullable=False, index=True
    )
    concept_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("payment_concepts.id"), nullable=False, index=True
    )

    amount_total: Mapped[Decimal] = mapped_column(MoneyColumn, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=DebtStatus.PENDING.value, index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # Relationships
    student: Mapped["Student"] = relationship("Student", back_populates="debts")
    concept: Mapped["PaymentConcept"] = relationship("PaymentConcept")
    payments: Mapped[list["Payment"]] = relationship("Payment", back_populates="debt")

    __table_args__ = (
        CheckConstraint("amount_total > 0", name="amount_total_positive"),
        Index("ix_debts_student_status_due", "student_id", "status", "due_date"),
    )

    @property
    def is_paid(self) -> bool:
        return self.status == DebtStatus.PAID.value


class Payment(Base):
    """
    Payment (pago) - money recorded as received from a student.

    debt_id is null while the payment is unassigned; it is set once, when the
    payment is applied to a debt, and never reassigned. amount and
    payment_date never change after creation.
    """

    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)

    student_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("students.id"), nullable=False, index=True
    )
    concept_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("payment_concepts.id"), nullable=False, index=True
    )
    debt_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("debts.id"), nullable=True, index=True
    )

    amount: Mapped[Decimal] = mapped_column(MoneyColumn, nullable=False)
    payment_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    method: Mapped[str] = mapped_column(String(20), nullable=False)

    reference: Mapped[str | None] = mapped_column(
        String(100), nullable=True
    )  # bank/SPEI tracking key, card authorization
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Relationships
    student: Mapped["Student"] = relationship("Student", back_populates="payments")
    concept: Mapped["PaymentConcept"] = relationship("PaymentConcept")
    debt: Mapped["Debt | None"] = relationship("Debt", back_populates="payments")

    __table_args__ = (
        CheckConstraint("amount > 0", name="amount_positive"),
    )

    @property
    def is_assigned(self) -> bool:
        return self.debt_id is not None


# Import for type hints
from src.modules.students.models import Student
