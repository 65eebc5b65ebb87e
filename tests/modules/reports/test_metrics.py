"""Tests for ReportsService.period_metrics."""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import InvalidFilterError, NotFoundError
from src.modules.payments.models import DebtStatus
from src.modules.reports.service import ReportsService
from src.shared.types import ConceptId, GroupId

TODAY = date(2025, 5, 1)


class TestCollectedAndOutstanding:
    async def test_payment_nets_matching_debt(self, db_session: AsyncSession, ledger):
        """Collected 2000 in April and a pending April debt of 2000 for the same pair."""
        student = await ledger.student()
        concept = await ledger.concept()
        await ledger.payment(student, concept, "2000.00", date(2025, 4, 3))
        await ledger.debt(student, concept, "2000.00", date(2025, 4, 10))

        report = await ReportsService(db_session).period_metrics(2025, 4, today=TODAY)

        assert report.collected == Decimal("2000.00")
        assert report.outstanding == Decimal("0.00")
        assert report.compliance_pct == 100.0
        assert report.top_debtors == []
        assert report.top_debtor_group is None

    async def test_empty_period(self, db_session: AsyncSession):
        report = await ReportsService(db_session).period_metrics(2025, 1, today=TODAY)

        assert report.collected == Decimal("0.00")
        assert report.outstanding == Decimal("0.00")
        assert report.compliance_pct == 0.0
        assert report.top_debtors == []
        assert report.top_concept is None
        assert report.top_debtor_group is None
        assert report.monthly_trend == []
        assert report.concept_distribution == []
        assert report.prior_year is None
        assert report.variation_pct.collected is None
        assert report.variation_pct.outstanding is None
        assert report.variation_pct.compliance is None

    async def test_compliance_rounded(self, db_session: AsyncSession, ledger):
        student = await ledger.student()
        tuition = await ledger.concept("Colegiatura")
        uniform = await ledger.concept("Uniforme")
        await ledger.payment(student, uniform, "1000.00", date(2025, 4, 2))
        await ledger.debt(student, tuition, "2000.00", date(2025, 4, 10))

        report = await ReportsService(db_session).period_metrics(2025, 4, today=TODAY)

        assert report.collected == Decimal("1000.00")
        assert report.outstanding == Decimal("2000.00")
        assert report.compliance_pct == 33.33

    async def test_paid_debts_and_other_months_excluded(self, db_session: AsyncSession, ledger):
        student = await ledger.student()
        concept = await ledger.concept()
        await ledger.debt(student, concept, "900.00", date(2025, 4, 5), status=DebtStatus.PAID)
        await ledger.debt(student, concept, "800.00", date(2025, 3, 31))
        await ledger.debt(student, concept, "700.00", date(2025, 5, 1))
        await ledger.payment(student, concept, "50.00", date(2025, 3, 31))
        await ledger.payment(student, concept, "60.00", date(2025, 5, 1))

        report = await ReportsService(db_session).period_metrics(2025, 4, today=TODAY)

        assert report.collected == Decimal("0.00")
        assert report.outstanding == Decimal("0.00")

    async def test_payment_pool_applied_once_oldest_first(
        self, db_session: AsyncSession, ledger
    ):
        """An unassigned 1500 reduces two April debts of 1000 by 1500 in total, not 3000."""
        student = await ledger.student()
        concept = await ledger.concept()
        await ledger.debt(student, concept, "1000.00", date(2025, 4, 20))
        await ledger.debt(student, concept, "1000.00", date(2025, 4, 5))
        await ledger.payment(student, concept, "1500.00", date(2025, 3, 28))

        report = await ReportsService(db_session).period_metrics(2025, 4, today=TODAY)

        assert report.outstanding == Decimal("500.00")
        [debtor] = report.top_debtors
        assert debtor.amount == Decimal("500.00")
        # Earliest debt still outstanding is the one due 2025-04-20
        assert debtor.days_overdue == 11
        assert debtor.last_payment_date == date(2025, 3, 28)

    async def test_payments_linked_to_settled_debts_still_net(
        self, db_session: AsyncSession, ledger
    ):
        """The linked March payment counts against April tuition of the same pair."""
        student = await ledger.student()
        concept = await ledger.concept()
        march = await ledger.debt(
            student, concept, "1000.00", date(2025, 3, 10), status=DebtStatus.PAID
        )
        await ledger.payment(student, concept, "1000.00", date(2025, 3, 8), debt=march)
        await ledger.debt(student, concept, "1000.00", date(2025, 4, 10))

        report = await ReportsService(db_session).period_metrics(2025, 4, today=TODAY)

        assert report.outstanding == Decimal("0.00")
        assert report.top_debtors == []

    async def test_partial_linked_payment_nets_its_debt(self, db_session: AsyncSession, ledger):
        student = await ledger.student()
        concept = await ledger.concept()
        debt = await ledger.debt(student, concept, "1000.00", date(2025, 4, 10))
        await ledger.payment(student, concept, "400.00", date(2025, 4, 2), debt=debt)

        report = await ReportsService(db_session).period_metrics(2025, 4, today=TODAY)

        assert report.collected == Decimal("400.00")
        assert report.outstanding == Decimal("600.00")
        assert report.compliance_pct == 40.0

    async def test_other_concept_payment_does_not_net(self, db_session: AsyncSession, ledger):
        student = await ledger.student()
        tuition = await ledger.concept("Colegiatura")
        uniform = await ledger.concept("Uniforme")
        await ledger.debt(student, tuition, "1000.00", date(2025, 4, 10))
        await ledger.payment(student, uniform, "1000.00", date(2025, 4, 2))

        report = await ReportsService(db_session).period_metrics(2025, 4, today=TODAY)

        assert report.outstanding == Decimal("1000.00")


class TestRankings:
    async def test_top_group_and_top_debtors(self, db_session: AsyncSession, ledger):
        group_a = await ledger.group("3A Primaria")
        group_b = await ledger.group("3B Primaria")
        concept = await ledger.concept()
        amounts = ["100.00", "600.00", "300.00", "300.00", "500.00", "200.00"]
        students = []
        for index, amount in enumerate(amounts):
            group = group_a if index < 3 else group_b
            student = await ledger.student(f"Student {index}", group=group)
            await ledger.debt(student, concept, amount, date(2025, 4, 10))
            students.append(student.id)

        report = await ReportsService(db_session).period_metrics(2025, 4, today=TODAY)

        # A: 100 + 600 + 300 = 1000, B: 300 + 500 + 200 = 1000 -> tie, lowest id
        assert report.top_debtor_group.group_id == group_a.id
        assert report.top_debtor_group.outstanding == Decimal("1000.00")

        assert len(report.top_debtors) == 5
        assert [r.student_id for r in report.top_debtors] == [
            students[1],
            students[4],
            students[2],
            students[3],
            students[5],
        ]
        assert report.top_debtors[0].group_name == "3A Primaria"
        assert report.top_debtors[0].days_overdue == 21
        assert report.top_debtors[0].last_payment_date is None

    async def test_not_yet_due_has_zero_days_overdue(self, db_session: AsyncSession, ledger):
        student = await ledger.student()
        concept = await ledger.concept()
        await ledger.debt(student, concept, "100.00", date(2025, 4, 28))

        report = await ReportsService(db_session).period_metrics(
            2025, 4, today=date(2025, 4, 15)
        )

        assert report.top_debtors[0].days_overdue == 0

    async def test_top_concept_and_distribution(self, db_session: AsyncSession, ledger):
        student = await ledger.student()
        tuition = await ledger.concept("Colegiatura")
        uniform = await ledger.concept("Uniforme")
        books = await ledger.concept("Libros")
        await ledger.payment(student, books, "250.00", date(2025, 4, 1))
        await ledger.payment(student, uniform, "750.00", date(2025, 4, 2))
        await ledger.payment(student, tuition, "500.00", date(2025, 4, 3))
        await ledger.payment(student, tuition, "250.00", date(2025, 4, 4))

        report = await ReportsService(db_session).period_metrics(2025, 4, today=TODAY)

        # Tuition and uniform tie at 750: lowest concept id wins
        assert report.top_concept.concept_id == tuition.id
        assert report.top_concept.concept_name == "Colegiatura"
        assert report.top_concept.collected == Decimal("750.00")
        assert [c.concept_id for c in report.concept_distribution] == [
            tuition.id,
            uniform.id,
            books.id,
        ]
        assert [c.share_pct for c in report.concept_distribution] == [42.86, 42.86, 14.29]


class TestTrendAndYearOverYear:
    async def test_trend_four_months_oldest_first(self, db_session: AsyncSession, ledger):
        student = await ledger.student()
        concept = await ledger.concept()
        await ledger.payment(student, concept, "100.00", date(2024, 12, 15))
        await ledger.payment(student, concept, "300.00", date(2025, 2, 1))
        await ledger.payment(student, concept, "400.00", date(2025, 2, 28))
        await ledger.payment(student, concept, "999.00", date(2024, 11, 30))

        report = await ReportsService(db_session).period_metrics(2025, 2, today=TODAY)

        assert [(p.year, p.month) for p in report.monthly_trend] == [
            (2024, 11),
            (2024, 12),
            (2025, 1),
            (2025, 2),
        ]
        assert [p.amount for p in report.monthly_trend] == [
            Decimal("999.00"),
            Decimal("100.00"),
            Decimal("0.00"),
            Decimal("700.00"),
        ]
        assert report.monthly_trend[0].label == "Nov 2024"

    async def test_year_over_year(self, db_session: AsyncSession, ledger):
        student = await ledger.student()
        concept = await ledger.concept()
        await ledger.payment(student, concept, "1000.00", date(2024, 4, 5))
        await ledger.payment(student, concept, "1500.00", date(2025, 4, 5))
        await ledger.debt(student, concept, "1500.00", date(2025, 4, 10), status=DebtStatus.PAID)

        report = await ReportsService(db_session).period_metrics(2025, 4, today=TODAY)

        assert report.prior_year is not None
        assert report.prior_year.year == 2024
        assert report.prior_year.collected == Decimal("1000.00")
        assert report.prior_year.compliance_pct == 100.0
        assert report.variation_pct.collected == 50.0
        # No prior outstanding: no baseline
        assert report.variation_pct.outstanding is None
        assert report.variation_pct.compliance == 0.0

    async def test_compliance_variation_in_points(self, db_session: AsyncSession, ledger):
        current_student = await ledger.student("Current")
        prior_student = await ledger.student("Prior")
        tuition = await ledger.concept("Colegiatura")
        uniform = await ledger.concept("Uniforme")
        # 2024-04: 1000 collected on uniform, 1000 tuition still owed
        await ledger.payment(prior_student, uniform, "1000.00", date(2024, 4, 5))
        await ledger.debt(prior_student, tuition, "1000.00", date(2024, 4, 10))
        # 2025-04: 1500 collected, nothing owed
        await ledger.payment(current_student, tuition, "1500.00", date(2025, 4, 5))
        await ledger.debt(
            current_student, tuition, "1500.00", date(2025, 4, 10), status=DebtStatus.PAID
        )

        report = await ReportsService(db_session).period_metrics(2025, 4, today=TODAY)

        assert report.prior_year.compliance_pct == 50.0
        assert report.compliance_pct == 100.0
        assert report.variation_pct.compliance == 50.0
        assert report.variation_pct.collected == 50.0
        assert report.variation_pct.outstanding == -100.0

    async def test_prior_year_zero_collected_is_null_variation(
        self, db_session: AsyncSession, ledger
    ):
        student = await ledger.student()
        concept = await ledger.concept()
        await ledger.debt(student, concept, "800.00", date(2024, 4, 10))
        await ledger.payment(student, concept, "500.00", date(2025, 4, 5))

        report = await ReportsService(db_session).period_metrics(2025, 4, today=TODAY)

        assert report.prior_year.outstanding == Decimal("300.00")
        assert report.prior_year.collected == Decimal("0.00")
        assert report.variation_pct.collected is None
        assert report.variation_pct.compliance is None


class TestFilters:
    async def test_group_filter(self, db_session: AsyncSession, ledger):
        group_a = await ledger.group("1A Preescolar", "Preescolar")
        group_b = await ledger.group("3B Primaria")
        concept = await ledger.concept()
        in_group = await ledger.student("In Group", group=group_a)
        other = await ledger.student("Other Group", group=group_b)
        await ledger.payment(in_group, concept, "100.00", date(2025, 4, 1))
        await ledger.payment(other, concept, "900.00", date(2025, 4, 1))
        await ledger.debt(other, concept, "5000.00", date(2025, 4, 10))

        report = await ReportsService(db_session).period_metrics(
            2025, 4, group_id=GroupId(group_a.id), today=TODAY
        )

        assert report.group_id == group_a.id
        assert report.collected == Decimal("100.00")
        assert report.outstanding == Decimal("0.00")
        assert [p.amount for p in report.monthly_trend][-1] == Decimal("100.00")

    async def test_concept_filter(self, db_session: AsyncSession, ledger):
        student = await ledger.student()
        tuition = await ledger.concept("Colegiatura")
        uniform = await ledger.concept("Uniforme")
        await ledger.payment(student, tuition, "100.00", date(2025, 4, 1))
        await ledger.payment(student, uniform, "900.00", date(2025, 4, 1))
        await ledger.debt(student, uniform, "5000.00", date(2025, 4, 10))

        report = await ReportsService(db_session).period_metrics(
            2025, 4, concept_id=ConceptId(tuition.id), today=TODAY
        )

        assert report.collected == Decimal("100.00")
        assert report.outstanding == Decimal("0.00")
        assert report.top_concept.concept_id == tuition.id

    async def test_invalid_month(self, db_session: AsyncSession):
        service = ReportsService(db_session)
        with pytest.raises(InvalidFilterError):
            await service.period_metrics(2025, 13)
        with pytest.raises(InvalidFilterError):
            await service.period_metrics(2025, 0)

    async def test_invalid_year(self, db_session: AsyncSession):
        with pytest.raises(InvalidFilterError):
            await ReportsService(db_session).period_metrics(1, 4)

    async def test_unknown_group_and_concept(self, db_session: AsyncSession):
        service = ReportsService(db_session)
        with pytest.raises(NotFoundError):
            await service.period_metrics(2025, 4, group_id=GroupId(999))
        with pytest.raises(NotFoundError):
            await service.period_metrics(2025, 4, concept_id=ConceptId(999))
