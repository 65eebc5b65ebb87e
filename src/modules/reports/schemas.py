"""Schemas for reports API."""

from datetime import date

from src.shared.schemas.base import BaseSchema, MoneyAmount


class PeriodTotals(BaseSchema):
    """Collected / outstanding / compliance for one calendar month."""

    year: int
    month: int
    collected: MoneyAmount
    outstanding: MoneyAmount
    compliance_pct: float  # collected / (collected + outstanding) * 100, 0 if both are 0


class VariationPct(BaseSchema):
    """Relative change vs. the same month one year earlier. None without a prior baseline."""

    collected: float | None = None
    outstanding: float | None = None
    compliance: float | None = None  # percentage points


class TopGroup(BaseSchema):
    group_id: int
    group_name: str
    outstanding: MoneyAmount


class TopConcept(BaseSchema):
    concept_id: int
    concept_name: str
    collected: MoneyAmount


class TrendPoint(BaseSchema):
    """Collected amount for one month of the trend."""

    year: int
    month: int
    label: str
    amount: MoneyAmount


class TopDebtorRow(BaseSchema):
    """One row in the top debtors list."""

    student_id: int
    name: str
    group_name: str | None
    amount: MoneyAmount
    days_overdue: int
    last_payment_date: date | None


class ConceptShare(BaseSchema):
    """Collected amount per concept and its share of the month's total."""

    concept_id: int
    concept_name: str
    amount: MoneyAmount
    share_pct: float


class PeriodReport(BaseSchema):
    """Monthly financial metrics report."""

    year: int
    month: int
    month_label: str
    group_id: int | None
    concept_id: int | None

    collected: MoneyAmount
    outstanding: MoneyAmount
    compliance_pct: float

    top_debtor_group: TopGroup | None
    top_concept: TopConcept | None
    monthly_trend: list[TrendPoint]
    top_debtors: list[TopDebtorRow]
    concept_distribution: list[ConceptShare]

    prior_year: PeriodTotals | None
    variation_pct: VariationPct
