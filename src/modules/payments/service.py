"""Service for Payments module: reconciliation, manual settlement, statements."""

import logging
from collections import defaultdict
from datetime import date
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database.errors import translate_store_errors
from src.core.exceptions import ConcurrencyConflictError, NotFoundError, ValidationError
from src.modules.payments.allocation import OpenDebt, UnassignedPayment, plan_allocation
from src.modules.payments.locks import StudentLedgerGuard, ledger_guard
from src.modules.payments.models import Debt, DebtStatus, Payment, PaymentConcept
from src.modules.payments.schemas import (
    ApplyPaymentResult,
    PendingDebtEntry,
    ReconcileResult,
    RiskStatus,
    StatementResponse,
)
from src.modules.students.models import Student
from src.shared.types import DebtId, PaymentId, StudentId
from src.shared.utils.dates import days_between
from src.shared.utils.money import clamp_non_negative, percent_of, round_money, sum_money

logger = logging.getLogger(__name__)


class PaymentService:
    """Service for matching payments to debts and reporting a student's account."""

    def __init__(self, db: AsyncSession, guard: StudentLedgerGuard | None = None):
        self.db = db
        self.guard = guard or ledger_guard

    # --- Reconciliation ---

    @translate_store_errors
    async def reconcile(self, student_id: StudentId) -> ReconcileResult:
        """
        Apply the student's unassigned payments to their open debts.

        Debts are served oldest due date first, payments oldest payment date
        first (ties by id). A payment is linked to a debt only when its whole
        amount fits in the debt's outstanding balance; debts whose
        outstanding balance reaches zero become paid. Only Debt.status and
        Payment.debt_id are written, in a single transaction. Re-running
        against an unchanged ledger writes nothing.
        """
        with self.guard.hold(student_id):
            try:
                result = await self._reconcile_locked(student_id)
            except Exception:
                await self.db.rollback()
                raise
            await self.db.commit()

        logger.info(
            "Reconciled student %s: %d payments applied (%s), %d debts settled",
            student_id,
            len(result.payments_applied),
            result.amount_applied,
            len(result.debts_settled),
        )
        return result

    async def _reconcile_locked(self, student_id: StudentId) -> ReconcileResult:
        await self._lock_student(student_id)

        payments_result = await self.db.execute(
            select(Payment)
            .where(Payment.student_id == student_id, Payment.debt_id.is_(None))
            .order_by(Payment.payment_date, Payment.id)
        )
        payments = list(payments_result.scalars().all())

        debts_result = await self.db.execute(
            select(Debt)
            .where(Debt.student_id == student_id, Debt.status != DebtStatus.PAID.value)
            .order_by(Debt.due_date, Debt.id)
        )
        debts = list(debts_result.scalars().all())

        applied = await self._applied_amounts([DebtId(d.id) for d in debts])

        plan = plan_allocation(
            [
                OpenDebt(
                    id=DebtId(d.id),
                    due_date=d.due_date,
                    amount_total=d.amount_total,
                    amount_applied=applied.get(DebtId(d.id), Decimal("0.00")),
                )
                for d in debts
            ],
            [
                UnassignedPayment(
                    id=PaymentId(p.id),
                    payment_date=p.payment_date,
                    amount=p.amount,
                )
                for p in payments
            ],
        )

        for assignment in plan.assignments:
            await self._assign_payment(student_id, assignment.payment_id, assignment.debt_id)
        for debt_id in plan.settled_debt_ids:
            await self._mark_paid(student_id, debt_id)

        return ReconcileResult(
            student_id=student_id,
            debts_settled=list(plan.settled_debt_ids),
            payments_applied=plan.payment_ids,
            amount_applied=plan.amount_applied,
        )

    # --- Manual settlement ---

    @translate_store_errors
    async def apply_payment(self, payment_id: PaymentId, debt_id: DebtId) -> ApplyPaymentResult:
        """Link one unassigned payment to one open debt of the same student."""
        payment = await self._get_payment(payment_id)
        student_id = StudentId(payment.student_id)

        with self.guard.hold(student_id):
            try:
                debt = await self._get_debt(debt_id)
                if debt.student_id != payment.student_id:
                    raise ValidationError("Debt does not belong to the payment's student", "debt_id")

                await self._lock_student(student_id)
                # Re-read under the lock: another process may have assigned it meanwhile
                await self.db.refresh(payment)
                await self.db.refresh(debt)
                if payment.is_assigned:
                    raise ValidationError(
                        f"Payment {payment_id} is already applied to debt {payment.debt_id}",
                        "payment_id",
                    )
                if debt.is_paid:
                    raise ValidationError(f"Debt {debt_id} is already paid", "debt_id")

                applied = await self._applied_amounts([debt_id])
                outstanding = clamp_non_negative(
                    debt.amount_total - applied.get(debt_id, Decimal("0.00"))
                )
                if payment.amount > outstanding:
                    raise ValidationError(
                        f"Payment exceeds debt outstanding balance. "
                        f"Outstanding: {outstanding}, Payment: {payment.amount}",
                        "debt_id",
                    )

                await self._assign_payment(student_id, payment_id, debt_id)
                remaining = clamp_non_negative(outstanding - payment.amount)
                status = debt.status
                if remaining == 0:
                    await self._mark_paid(student_id, debt_id)
                    status = DebtStatus.PAID.value
            except Exception:
                await self.db.rollback()
                raise
            await self.db.commit()

        logger.info(
            "Applied payment %s (%s) to debt %s for student %s",
            payment_id,
            payment.amount,
            debt_id,
            student_id,
        )
        return ApplyPaymentResult(
            payment_id=payment_id,
            debt_id=debt_id,
            debt_status=status,
            outstanding=remaining,
        )

    # --- Statement ---

    @translate_store_errors
    async def get_statement(
        self,
        student_id: StudentId,
        today: date | None = None,
    ) -> StatementResponse:
        """
        Build the student's account statement at query time.

        total_paid counts every payment (linked or not), total_owed every
        non-paid debt, and balance = max(0, total_owed - total_paid). Does not
        reconcile; call reconcile() first for up-to-date debt statuses.
        """
        student = await self._get_student(student_id)
        as_at = today or date.today()

        payments_result = await self.db.execute(
            select(Payment.amount, Payment.debt_id, Payment.payment_date).where(
                Payment.student_id == student_id
            )
        )
        payment_rows = payments_result.all()

        debts_result = await self.db.execute(
            select(Debt)
            .where(Debt.student_id == student_id)
            .order_by(Debt.due_date, Debt.id)
        )
        debts = list(debts_result.scalars().all())
        concept_names = await self._concept_names(sorted({d.concept_id for d in debts}))

        applied_by_debt: dict[int, Decimal] = defaultdict(lambda: Decimal("0"))
        unapplied = Decimal("0")
        for amount, linked_debt_id, _ in payment_rows:
            if linked_debt_id is None:
                unapplied += amount
            else:
                applied_by_debt[linked_debt_id] += amount

        total_paid = sum_money(amount for amount, _, _ in payment_rows)
        last_payment_date = max((row[2] for row in payment_rows), default=None)

        open_debts = [d for d in debts if not d.is_paid]
        total_owed = sum_money(d.amount_total for d in open_debts)

        pending_entries: list[PendingDebtEntry] = []
        overdue_count = 0
        for debt in open_debts:
            days = days_between(debt.due_date, as_at)
            is_overdue = days > 0
            if is_overdue:
                overdue_count += 1
            applied = round_money(applied_by_debt[debt.id])
            pending_entries.append(
                PendingDebtEntry(
                    id=debt.id,
                    concept_id=debt.concept_id,
                    concept_name=concept_names.get(debt.concept_id, f"Concept {debt.concept_id}"),
                    amount_total=round_money(debt.amount_total),
                    amount_applied=applied,
                    outstanding=clamp_non_negative(debt.amount_total - applied),
                    due_date=debt.due_date,
                    days_from_due=days,
                    status=DebtStatus.OVERDUE.value if is_overdue else DebtStatus.PENDING.value,
                )
            )

        all_time_debts = sum_money(d.amount_total for d in debts)
        total_linked = sum_money(applied_by_debt.values())
        if all_time_debts > 0:
            compliance = min(100.0, percent_of(total_linked, all_time_debts))
        else:
            compliance = 100.0

        if total_owed == 0:
            risk = RiskStatus.ON_TRACK
        elif overdue_count > 0:
            risk = RiskStatus.AT_RISK
        else:
            risk = RiskStatus.ATTENTION

        return StatementResponse(
            student_id=student.id,
            student_name=student.full_name,
            as_at_date=as_at,
            total_owed=total_owed,
            total_paid=total_paid,
            balance=clamp_non_negative(total_owed - total_paid),
            unapplied_credit=round_money(unapplied),
            last_payment_date=last_payment_date,
            overdue_count=overdue_count,
            compliance_percent=compliance,
            risk_status=risk,
            pending_debts=pending_entries,
        )

    # --- Helper Methods ---

    async def _get_student(self, student_id: StudentId) -> Student:
        """Get student by ID."""
        result = await self.db.execute(select(Student).where(Student.id == student_id))
        student = result.scalar_one_or_none()
        if not student:
            raise NotFoundError("Student", student_id)
        return student

    async def _lock_student(self, student_id: StudentId) -> Student:
        """Row-lock the student so ledger writers in other processes queue behind us."""
        result = await self.db.execute(
            select(Student).where(Student.id == student_id).with_for_update()
        )
        student = result.scalar_one_or_none()
        if not student:
            raise NotFoundError("Student", student_id)
        return student

    async def _get_debt(self, debt_id: DebtId) -> Debt:
        result = await self.db.execute(select(Debt).where(Debt.id == debt_id))
        debt = result.scalar_one_or_none()
        if not debt:
            raise NotFoundError("Debt", debt_id)
        return debt

    async def _get_payment(self, payment_id: PaymentId) -> Payment:
        result = await self.db.execute(select(Payment).where(Payment.id == payment_id))
        payment = result.scalar_one_or_none()
        if not payment:
            raise NotFoundError("Payment", payment_id)
        return payment

    async def _applied_amounts(self, debt_ids: list[DebtId]) -> dict[DebtId, Decimal]:
        """Sum of payments already linked to each debt."""
        if not debt_ids:
            return {}
        result = await self.db.execute(
            select(Payment.debt_id, Payment.amount).where(Payment.debt_id.in_(debt_ids))
        )
        applied: dict[DebtId, Decimal] = defaultdict(lambda: Decimal("0"))
        for linked_debt_id, amount in result.all():
            applied[DebtId(linked_debt_id)] += amount
        return {debt_id: round_money(total) for debt_id, total in applied.items()}

    async def _assign_payment(
        self, student_id: StudentId, payment_id: PaymentId, debt_id: DebtId
    ) -> None:
        """Set debt_id only if the payment is still unassigned."""
        result = await self.db.execute(
            update(Payment)
            .where(Payment.id == payment_id, Payment.debt_id.is_(None))
            .values(debt_id=debt_id)
        )
        if result.rowcount != 1:
            raise ConcurrencyConflictError(
                student_id,
                message=f"Payment {payment_id} was applied by another writer, retry the reconciliation",
            )

    async def _mark_paid(self, student_id: StudentId, debt_id: DebtId) -> None:
        result = await self.db.execute(
            update(Debt)
            .where(Debt.id == debt_id, Debt.status != DebtStatus.PAID.value)
            .values(status=DebtStatus.PAID.value)
        )
        if result.rowcount != 1:
            raise ConcurrencyConflictError(
                student_id,
                message=f"Debt {debt_id} was settled by another writer, retry the reconciliation",
            )

    async def _concept_names(self, concept_ids: list[int]) -> dict[int, str]:
        if not concept_ids:
            return {}
        result = await self.db.execute(
            select(PaymentConcept.id, PaymentConcept.name).where(
                PaymentConcept.id.in_(concept_ids)
            )
        )
        return {r[0]: r[1] for r in result.all()}
