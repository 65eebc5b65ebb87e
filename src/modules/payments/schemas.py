"""Pydantic schemas for Payments module."""

from datetime import date
from enum import StrEnum

from pydantic import Field

from src.shared.schemas.base import BaseSchema, MoneyAmount


class RiskStatus(StrEnum):
    """Payment risk of a student account."""

    ON_TRACK = "on_track"  # nothing owed
    ATTENTION = "attention"  # owes, nothing overdue yet
    AT_RISK = "at_risk"  # at least one overdue debt


# --- Reconciliation Schemas ---


class ReconcileResult(BaseSchema):
    """Outcome of one reconciliation run."""

    student_id: int
    debts_settled: list[int]
    payments_applied: list[int]
    amount_applied: MoneyAmount


class PaymentApplyRequest(BaseSchema):
    """Manual settlement: link one unassigned payment to one open debt."""

    debt_id: int = Field(gt=0)


class ApplyPaymentResult(BaseSchema):
    """Outcome of a manual settlement."""

    payment_id: int
    debt_id: int
    debt_status: str
    outstanding: MoneyAmount


# --- Statement Schemas ---


class PendingDebtEntry(BaseSchema):
    """One open debt in a statement."""

    id: int
    concept_id: int
    concept_name: str
    amount_total: MoneyAmount
    amount_applied: MoneyAmount
    outstanding: MoneyAmount
    due_date: date
    days_from_due: int  # today - due_date; negative = days until due
    status: str  # pending | overdue (display)


class StatementResponse(BaseSchema):
    """Student account statement at query time."""

    student_id: int
    student_name: str
    as_at_date: date
    total_owed: MoneyAmount
    total_paid: MoneyAmount
    balance: MoneyAmount  # max(0, total_owed - total_paid)
    unapplied_credit: MoneyAmount  # payments not linked to any debt
    last_payment_date: date | None
    overdue_count: int
    compliance_percent: float
    risk_status: RiskStatus
    pending_debts: list[PendingDebtEntry]


class ReconcileResponse(BaseSchema):
    """Reconciliation result plus the statement computed right after it."""

    result: ReconcileResult
    statement: StatementResponse
