"""API for reports."""

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database.session import get_db
from src.modules.reports.schemas import PeriodReport
from src.modules.reports.service import ReportsService
from src.shared.schemas.base import ApiResponse
from src.shared.types import ConceptId, GroupId

router = APIRouter(prefix="/reports", tags=["Reports"])


@router.get(
    "/metrics",
    response_model=ApiResponse[PeriodReport],
)
async def get_period_metrics(
    year: int = Query(..., description="Calendar year of the report."),
    month: int = Query(..., description="Calendar month 1-12."),
    group_id: int | None = Query(None, description="Only students of this group."),
    concept_id: int | None = Query(None, description="Only this payment concept."),
    as_at_date: date | None = Query(
        None,
        description="Date used for days overdue (default: today).",
    ),
    db: AsyncSession = Depends(get_db),
):
    """
    Monthly metrics: collected, outstanding, compliance %, top debtor group,
    top concept, collection trend, top debtors, concept distribution and
    year-over-year comparison.

    Out-of-range month/year returns 400; unknown group/concept returns 404.
    """
    service = ReportsService(db)
    report = await service.period_metrics(
        year=year,
        month=month,
        group_id=GroupId(group_id) if group_id is not None else None,
        concept_id=ConceptId(concept_id) if concept_id is not None else None,
        today=as_at_date,
    )
    return ApiResponse(data=report)
