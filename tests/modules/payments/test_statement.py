"""Tests for PaymentService.get_statement."""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import NotFoundError
from src.modules.payments.models import DebtStatus
from src.modules.payments.schemas import RiskStatus
from src.modules.payments.service import PaymentService
from src.shared.types import StudentId


class TestStatement:
    async def test_empty_account(self, db_session: AsyncSession, ledger):
        student = await ledger.student()

        statement = await PaymentService(db_session).get_statement(
            StudentId(student.id), today=date(2025, 4, 1)
        )

        assert statement.total_owed == Decimal("0.00")
        assert statement.total_paid == Decimal("0.00")
        assert statement.balance == Decimal("0.00")
        assert statement.pending_debts == []
        assert statement.last_payment_date is None
        assert statement.compliance_percent == 100.0
        assert statement.risk_status == RiskStatus.ON_TRACK

    async def test_totals_and_overdue_classification(self, db_session: AsyncSession, ledger):
        student = await ledger.student("Santiago Rodríguez")
        tuition = await ledger.concept("Colegiatura Primaria")
        uniform = await ledger.concept("Uniforme", "1200.00")
        march = await ledger.debt(student, tuition, "3200.00", date(2025, 3, 10))
        april = await ledger.debt(student, tuition, "3200.00", date(2025, 4, 10))
        await ledger.debt(student, uniform, "1200.00", date(2025, 2, 1), status=DebtStatus.PAID)
        await ledger.payment(student, tuition, "1000.00", date(2025, 3, 5), debt=march)
        await ledger.payment(student, uniform, "1200.00", date(2025, 1, 20))

        statement = await PaymentService(db_session).get_statement(
            StudentId(student.id), today=date(2025, 4, 1)
        )

        assert statement.student_name == "Santiago Rodríguez"
        assert statement.total_owed == Decimal("6400.00")
        assert statement.total_paid == Decimal("2200.00")
        assert statement.balance == Decimal("4200.00")
        assert statement.unapplied_credit == Decimal("1200.00")
        assert statement.last_payment_date == date(2025, 3, 5)

        by_id = {d.id: d for d in statement.pending_debts}
        assert list(by_id) == [march.id, april.id]
        assert by_id[march.id].status == DebtStatus.OVERDUE.value
        assert by_id[march.id].days_from_due == 22
        assert by_id[march.id].amount_applied == Decimal("1000.00")
        assert by_id[march.id].outstanding == Decimal("2200.00")
        assert by_id[march.id].concept_name == "Colegiatura Primaria"
        assert by_id[april.id].status == DebtStatus.PENDING.value
        assert by_id[april.id].days_from_due == -9

        assert statement.overdue_count == 1
        assert statement.risk_status == RiskStatus.AT_RISK
        # 1000 linked of 7600 assessed
        assert statement.compliance_percent == 13.16

    async def test_balance_never_negative(self, db_session: AsyncSession, ledger):
        student = await ledger.student()
        concept = await ledger.concept()
        await ledger.debt(student, concept, "500.00", date(2025, 5, 1))
        await ledger.payment(student, concept, "2000.00", date(2025, 4, 1))

        statement = await PaymentService(db_session).get_statement(
            StudentId(student.id), today=date(2025, 4, 15)
        )

        assert statement.balance == Decimal("0.00")
        assert statement.risk_status == RiskStatus.ATTENTION

    async def test_unknown_student(self, db_session: AsyncSession):
        with pytest.raises(NotFoundError):
            await PaymentService(db_session).get_statement(StudentId(404))
