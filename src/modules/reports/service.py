"""Service for reports: monthly collection and receivables metrics."""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import MINYEAR, date
from decimal import Decimal

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import settings
from src.core.database.errors import translate_store_errors
from src.core.exceptions import InvalidFilterError, NotFoundError
from src.modules.payments.models import Debt, DebtStatus, Payment, PaymentConcept
from src.modules.reports.schemas import (
    ConceptShare,
    PeriodReport,
    PeriodTotals,
    TopConcept,
    TopDebtorRow,
    TopGroup,
    TrendPoint,
    VariationPct,
)
from src.modules.students.models import Group, Student
from src.shared.types import ConceptId, GroupId
from src.shared.utils.dates import days_between, is_valid_period, month_bounds, month_label, trailing_months
from src.shared.utils.money import (
    clamp_non_negative,
    percent_of,
    points_difference,
    round_money,
    sum_money,
    variation_percent,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _CollectedPayment:
    student_id: int
    concept_id: int
    amount: Decimal


@dataclass(frozen=True)
class _DebtBalance:
    debt_id: int
    student_id: int
    concept_id: int
    due_date: date
    outstanding: Decimal


@dataclass
class _PeriodFigures:
    """Accumulated figures for one month; built fresh on every call."""

    year: int
    month: int
    payments: list[_CollectedPayment] = field(default_factory=list)
    balances: list[_DebtBalance] = field(default_factory=list)

    @property
    def collected(self) -> Decimal:
        return sum_money(p.amount for p in self.payments)

    @property
    def outstanding(self) -> Decimal:
        return sum_money(b.outstanding for b in self.balances)

    @property
    def compliance_pct(self) -> float:
        collected = self.collected
        return percent_of(collected, collected + self.outstanding)

    @property
    def is_empty(self) -> bool:
        return self.collected == 0 and self.outstanding == 0

    def totals(self) -> PeriodTotals:
        return PeriodTotals(
            year=self.year,
            month=self.month,
            collected=self.collected,
            outstanding=self.outstanding,
            compliance_pct=self.compliance_pct,
        )


class ReportsService:
    """Build report data."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @translate_store_errors
    async def period_metrics(
        self,
        year: int,
        month: int,
        group_id: GroupId | None = None,
        concept_id: ConceptId | None = None,
        today: date | None = None,
    ) -> PeriodReport:
        """
        Financial metrics for one calendar month.

        Collected = payments dated in the month. Outstanding = non-paid debts
        due in the month, net of every payment of the same student and concept.
        Compliance = collected / (collected + outstanding) * 100. Also: top
        debtor group, top concept, collection trend, top debtors, per-concept
        distribution and a comparison with the same month of the previous year,
        where the compliance variation is a difference in percentage points.

        All queries run on one session; set METRICS_ISOLATION_LEVEL to read
        them from a single snapshot.
        """
        self._validate_period(year, month)
        await self._use_snapshot()
        if group_id is not None:
            await self._get_group(group_id)
        if concept_id is not None:
            await self._get_concept(concept_id)
        as_at = today or date.today()

        current = await self._period_figures(year, month, group_id, concept_id)
        prior = await self._period_figures(year - 1, month, group_id, concept_id)

        trend = await self._collection_trend(year, month, group_id, concept_id)

        outstanding_by_student: dict[int, Decimal] = defaultdict(lambda: Decimal("0"))
        oldest_due_by_student: dict[int, date] = {}
        for balance in current.balances:
            if balance.outstanding <= 0:
                continue
            outstanding_by_student[balance.student_id] += balance.outstanding
            oldest = oldest_due_by_student.get(balance.student_id)
            if oldest is None or balance.due_date < oldest:
                oldest_due_by_student[balance.student_id] = balance.due_date

        students = await self._student_info(list(outstanding_by_student))

        # Top debtor group
        outstanding_by_group: dict[int, Decimal] = defaultdict(lambda: Decimal("0"))
        group_names: dict[int, str] = {}
        for student_id, amount in outstanding_by_student.items():
            _, student_group_id, group_name = students.get(student_id, ("", None, None))
            if student_group_id is None:
                continue
            outstanding_by_group[student_group_id] += amount
            group_names[student_group_id] = group_name or ""
        top_group = None
        if outstanding_by_group:
            top_group_id = min(outstanding_by_group, key=lambda g: (-outstanding_by_group[g], g))
            top_group = TopGroup(
                group_id=top_group_id,
                group_name=group_names[top_group_id],
                outstanding=round_money(outstanding_by_group[top_group_id]),
            )

        # Collected per concept: top concept and distribution
        collected_by_concept: dict[int, Decimal] = defaultdict(lambda: Decimal("0"))
        for payment in current.payments:
            collected_by_concept[payment.concept_id] += payment.amount
        concept_names = await self._concept_names(list(collected_by_concept))
        ranked_concepts = sorted(collected_by_concept, key=lambda c: (-collected_by_concept[c], c))
        collected = current.collected
        distribution = [
            ConceptShare(
                concept_id=cid,
                concept_name=concept_names.get(cid, f"Concept {cid}"),
                amount=round_money(collected_by_concept[cid]),
                share_pct=percent_of(collected_by_concept[cid], collected),
            )
            for cid in ranked_concepts
            if collected_by_concept[cid] > 0
        ]
        top_concept = None
        if distribution:
            top_concept = TopConcept(
                concept_id=distribution[0].concept_id,
                concept_name=distribution[0].concept_name,
                collected=distribution[0].amount,
            )

        # Top debtors
        ranked_students = sorted(
            outstanding_by_student, key=lambda s: (-outstanding_by_student[s], s)
        )[: settings.top_debtors_limit]
        last_payments = await self._last_payment_dates(ranked_students)
        top_debtors = []
        for student_id in ranked_students:
            name, _, group_name = students.get(student_id, ("", None, None))
            top_debtors.append(
                TopDebtorRow(
                    student_id=student_id,
                    name=name,
                    group_name=group_name,
                    amount=round_money(outstanding_by_student[student_id]),
                    days_overdue=max(0, days_between(oldest_due_by_student[student_id], as_at)),
                    last_payment_date=last_payments.get(student_id),
                )
            )

        prior_totals = None if prior.is_empty else prior.totals()
        variation = VariationPct(
            collected=variation_percent(current.collected, prior.collected),
            outstanding=variation_percent(current.outstanding, prior.outstanding),
            compliance=points_difference(current.compliance_pct, prior.compliance_pct),
        )

        logger.debug(
            "Metrics %04d-%02d group=%s concept=%s: collected=%s outstanding=%s",
            year,
            month,
            group_id,
            concept_id,
            current.collected,
            current.outstanding,
        )

        return PeriodReport(
            year=year,
            month=month,
            month_label=month_label(month),
            group_id=group_id,
            concept_id=concept_id,
            collected=current.collected,
            outstanding=current.outstanding,
            compliance_pct=current.compliance_pct,
            top_debtor_group=top_group,
            top_concept=top_concept,
            monthly_trend=trend,
            top_debtors=top_debtors,
            concept_distribution=distribution,
            prior_year=prior_totals,
            variation_pct=variation,
        )

    # --- Period figures ---

    async def _period_figures(
        self,
        year: int,
        month: int,
        group_id: GroupId | None,
        concept_id: ConceptId | None,
    ) -> _PeriodFigures:
        figures = _PeriodFigures(year=year, month=month)
        figures.payments = await self._collected_payments(year, month, group_id, concept_id)
        figures.balances = await self._debt_balances(year, month, group_id, concept_id)
        return figures

    async def _collected_payments(
        self,
        year: int,
        month: int,
        group_id: GroupId | None,
        concept_id: ConceptId | None,
    ) -> list[_CollectedPayment]:
        start, end = month_bounds(year, month)
        q = select(Payment.student_id, Payment.concept_id, Payment.amount).where(
            Payment.payment_date >= start,
            Payment.payment_date <= end,
        )
        q = self._filter(q, Payment.student_id, Payment.concept_id, group_id, concept_id)
        result = await self.db.execute(q)
        return [
            _CollectedPayment(student_id=r[0], concept_id=r[1], amount=r[2])
            for r in result.all()
        ]

    async def _debt_balances(
        self,
        year: int,
        month: int,
        group_id: GroupId | None,
        concept_id: ConceptId | None,
    ) -> list[_DebtBalance]:
        """
        Net outstanding per non-paid debt due in the month.

        Every payment of the same (student, concept) pair is pooled, whatever
        its date or linked debt, and consumed by that pair's debts oldest
        first, so one payment never reduces two debts.
        """
        start, end = month_bounds(year, month)
        q = select(
            Debt.id, Debt.student_id, Debt.concept_id, Debt.amount_total, Debt.due_date
        ).where(
            Debt.due_date >= start,
            Debt.due_date <= end,
            Debt.status != DebtStatus.PAID.value,
        )
        q = self._filter(q, Debt.student_id, Debt.concept_id, group_id, concept_id)
        result = await self.db.execute(q.order_by(Debt.due_date, Debt.id))
        debts = result.all()
        if not debts:
            return []

        pairs = {(d[1], d[2]) for d in debts}
        pay_q = select(Payment.student_id, Payment.concept_id, Payment.amount).where(
            Payment.student_id.in_(sorted({p[0] for p in pairs})),
            Payment.concept_id.in_(sorted({p[1] for p in pairs})),
        )
        pay_res = await self.db.execute(pay_q)
        pool: dict[tuple[int, int], Decimal] = defaultdict(lambda: Decimal("0"))
        for student_id, pay_concept_id, amount in pay_res.all():
            if (student_id, pay_concept_id) in pairs:
                pool[(student_id, pay_concept_id)] += amount

        balances = []
        for debt_id, student_id, debt_concept_id, amount_total, due_date in debts:
            key = (student_id, debt_concept_id)
            covered = min(pool[key], amount_total)
            pool[key] -= covered
            balances.append(
                _DebtBalance(
                    debt_id=debt_id,
                    student_id=student_id,
                    concept_id=debt_concept_id,
                    due_date=due_date,
                    outstanding=clamp_non_negative(amount_total - covered),
                )
            )
        return balances

    async def _collection_trend(
        self,
        year: int,
        month: int,
        group_id: GroupId | None,
        concept_id: ConceptId | None,
    ) -> list[TrendPoint]:
        points = []
        for y, m in trailing_months(year, month, settings.trend_months):
            payments = await self._collected_payments(y, m, group_id, concept_id)
            points.append(
                TrendPoint(
                    year=y,
                    month=m,
                    label=f"{month_label(m)[:3]} {y}",
                    amount=sum_money(p.amount for p in payments),
                )
            )
        if all(p.amount == 0 for p in points):
            return []
        return points

    # --- Helper Methods ---

    @staticmethod
    def _validate_period(year: int, month: int) -> None:
        if not 1 <= month <= 12:
            raise InvalidFilterError("month must be between 1 and 12", "month")
        # The year-over-year comparison needs year - 1 to exist
        if year <= MINYEAR or not is_valid_period(year, month):
            raise InvalidFilterError(f"year must be between {MINYEAR + 1} and 9999", "year")

    @staticmethod
    def _filter(
        q: Select,
        student_col,
        concept_col,
        group_id: GroupId | None,
        concept_id: ConceptId | None,
    ) -> Select:
        if group_id is not None:
            q = q.join(Student, student_col == Student.id).where(Student.group_id == group_id)
        if concept_id is not None:
            q = q.where(concept_col == concept_id)
        return q

    async def _use_snapshot(self) -> None:
        """Pin the isolation level of this session's transaction before the first query."""
        level = settings.metrics_isolation_level
        if level:
            await self.db.connection(execution_options={"isolation_level": level})

    async def _get_group(self, group_id: GroupId) -> Group:
        result = await self.db.execute(select(Group).where(Group.id == group_id))
        group = result.scalar_one_or_none()
        if not group:
            raise NotFoundError("Group", group_id)
        return group

    async def _get_concept(self, concept_id: ConceptId) -> PaymentConcept:
        result = await self.db.execute(
            select(PaymentConcept).where(PaymentConcept.id == concept_id)
        )
        concept = result.scalar_one_or_none()
        if not concept:
            raise NotFoundError("PaymentConcept", concept_id)
        return concept

    async def _student_info(
        self, student_ids: list[int]
    ) -> dict[int, tuple[str, int | None, str | None]]:
        """student_id -> (full_name, group_id, group_name)."""
        if not student_ids:
            return {}
        q = (
            select(Student.id, Student.full_name, Student.group_id, Group.name)
            .outerjoin(Group, Student.group_id == Group.id)
            .where(Student.id.in_(student_ids))
        )
        result = await self.db.execute(q)
        return {r[0]: (r[1], r[2], r[3]) for r in result.all()}

    async def _concept_names(self, concept_ids: list[int]) -> dict[int, str]:
        if not concept_ids:
            return {}
        result = await self.db.execute(
            select(PaymentConcept.id, PaymentConcept.name).where(
                PaymentConcept.id.in_(concept_ids)
            )
        )
        return {r[0]: r[1] for r in result.all()}

    async def _last_payment_dates(self, student_ids: list[int]) -> dict[int, date]:
        if not student_ids:
            return {}
        q = (
            select(Payment.student_id, func.max(Payment.payment_date))
            .where(Payment.student_id.in_(student_ids))
            .group_by(Payment.student_id)
        )
        result = await self.db.execute(q)
        return {r[0]: r[1] for r in result.all()}
