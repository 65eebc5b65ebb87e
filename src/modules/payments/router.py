"""API endpoints for Payments module."""

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database.session import get_db
from src.modules.payments.schemas import (
    ApplyPaymentResult,
    PaymentApplyRequest,
    ReconcileResponse,
    StatementResponse,
)
from src.modules.payments.service import PaymentService
from src.shared.schemas.base import ApiResponse
from src.shared.types import DebtId, PaymentId, StudentId

router = APIRouter(prefix="/payments", tags=["Payments"])


# --- Reconciliation Endpoints ---


@router.post(
    "/reconcile/{student_id}",
    response_model=ApiResponse[ReconcileResponse],
)
async def reconcile_student(
    student_id: int,
    db: AsyncSession = Depends(get_db),
):
    """
    Apply the student's unassigned payments to open debts (oldest first) and
    return the resulting statement.

    Safe to repeat: a second call on an unchanged ledger changes nothing.
    Returns 503 with Retry-After when another write for the student is in
    progress or the store is unavailable.
    """
    service = PaymentService(db)
    result = await service.reconcile(StudentId(student_id))
    statement = await service.get_statement(StudentId(student_id))
    return ApiResponse(
        data=ReconcileResponse(result=result, statement=statement),
        message="Reconciliation completed",
    )


@router.get(
    "/statement/{student_id}",
    response_model=ApiResponse[StatementResponse],
)
async def get_student_statement(
    student_id: int,
    as_at_date: date | None = Query(
        None,
        description="Date used to classify overdue debts (default: today).",
    ),
    db: AsyncSession = Depends(get_db),
):
    """Get the student's account statement. Does not reconcile."""
    service = PaymentService(db)
    statement = await service.get_statement(StudentId(student_id), today=as_at_date)
    return ApiResponse(data=statement)


@router.post(
    "/{payment_id}/apply",
    response_model=ApiResponse[ApplyPaymentResult],
)
async def apply_payment(
    payment_id: int,
    data: PaymentApplyRequest,
    db: AsyncSession = Depends(get_db),
):
    """Manually link an unassigned payment to an open debt of the same student."""
    service = PaymentService(db)
    result = await service.apply_payment(PaymentId(payment_id), DebtId(data.debt_id))
    return ApiResponse(
        data=result,
        message="Payment applied successfully",
    )
