from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from uuid import UUID

from shared.core.database import get_plaza_db as get_db
from shared.core.auth import allow_admin, validate_current_token
from shared.core.schemas import UserToken
from ...crud.financials import bill_lifecycle as crud
from ...schemas.financials.payments_schemas import (
    PaymentOut, PaymentRecordCreate, PaymentRejection, PaymentsRequest, PaymentsResponse,
    RecordedPayment
)

router = APIRouter(
    prefix="/api/payments",
    tags=["payments"],
    dependencies=[Depends(validate_current_token)]
)


@router.get("/all", response_model=PaymentsResponse)
def get_payments(
    params: PaymentsRequest = Depends(),
    db: Session = Depends(get_db),
):
    return crud.get_payments(db, params)


@router.put("/{payment_id:uuid}/approve", response_model=PaymentOut)
def approve_payment(
    payment_id: UUID,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(allow_admin)
):
    return crud.approve_payment(db, payment_id, current_user)


@router.put("/{payment_id:uuid}/reject", response_model=PaymentOut)
def reject_payment(
    payment_id: UUID,
    rejection: PaymentRejection,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(allow_admin)
):
    return crud.reject_payment(db, payment_id, rejection, current_user)


@router.post("/record", response_model=RecordedPayment)
def record_payment(
    payment: PaymentRecordCreate,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(allow_admin)
):
    return crud.record_payment(db, payment, current_user)
