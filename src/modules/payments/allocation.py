"""FIFO planning of unassigned payments against open debts.

Pure functions over plain values so the rule can be tested without a database.

Rule: debts are served oldest due date first. Each debt takes, in payment
date order, every remaining payment whose whole amount fits in what is still
outstanding on the debt. Payments are never split; a payment larger than the
current debt's remaining balance waits for a later debt, and one that fits no
debt stays unassigned as credit in favour of the student. Running the plan
again over its own result assigns nothing, which keeps reconciliation
idempotent.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from src.shared.types import DebtId, PaymentId
from src.shared.utils.money import clamp_non_negative, round_money


@dataclass(frozen=True)
class OpenDebt:
    id: DebtId
    due_date: date
    amount_total: Decimal
    amount_applied: Decimal = Decimal("0.00")

    @property
    def outstanding(self) -> Decimal:
        return clamp_non_negative(self.amount_total - self.amount_applied)


@dataclass(frozen=True)
class UnassignedPayment:
    id: PaymentId
    payment_date: date
    amount: Decimal


@dataclass(frozen=True)
class Assignment:
    payment_id: PaymentId
    debt_id: DebtId
    amount: Decimal


@dataclass
class AllocationPlan:
    assignments: list[Assignment] = field(default_factory=list)
    settled_debt_ids: list[DebtId] = field(default_factory=list)

    @property
    def amount_applied(self) -> Decimal:
        return round_money(sum((a.amount for a in self.assignments), Decimal("0")))

    @property
    def payment_ids(self) -> list[PaymentId]:
        return [a.payment_id for a in self.assignments]

    @property
    def is_empty(self) -> bool:
        return not self.assignments and not self.settled_debt_ids


def order_debts(debts: list[OpenDebt]) -> list[OpenDebt]:
    return sorted(debts, key=lambda d: (d.due_date, d.id))


def order_payments(payments: list[UnassignedPayment]) -> list[UnassignedPayment]:
    return sorted(payments, key=lambda p: (p.payment_date, p.id))


def plan_allocation(
    debts: list[OpenDebt],
    payments: list[UnassignedPayment],
) -> AllocationPlan:
    """Decide which payment goes to which debt and which debts end up paid."""
    plan = AllocationPlan()
    queue = order_payments(payments)

    for debt in order_debts(debts):
        remaining = debt.outstanding
        if remaining > 0 and queue:
            kept: list[UnassignedPayment] = []
            for payment in queue:
                if payment.amount <= remaining:
                    plan.assignments.append(
                        Assignment(
                            payment_id=payment.id,
                            debt_id=debt.id,
                            amount=round_money(payment.amount),
                        )
                    )
                    remaining -= payment.amount
                else:
                    kept.append(payment)
            queue = kept

        if remaining <= 0:
            plan.settled_debt_ids.append(debt.id)

    return plan
