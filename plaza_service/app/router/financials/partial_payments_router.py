from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from uuid import UUID

from shared.core.database import get_plaza_db as get_db
from shared.core.auth import allow_admin, validate_current_token
from shared.core.schemas import UserToken
from ...crud.financials import partial_payments_crud as crud
from ...schemas.financials.partial_payments_schemas import (
    PartialPaymentCreate, PartialPaymentOut, PartialPaymentsRequest,
    PartialPaymentsResponse, PaymentEntryIn
)

router = APIRouter(
    prefix="/api/partial-payments",
    tags=["partial-payments"],
    dependencies=[Depends(validate_current_token)]
)


@router.get("/all", response_model=PartialPaymentsResponse)
def get_partial_payments(
    params: PartialPaymentsRequest = Depends(),
    db: Session = Depends(get_db),
):
    return crud.get_partial_payments(db, params)


@router.post("/create", response_model=PartialPaymentOut)
def create_partial_payment(
    record: PartialPaymentCreate,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(allow_admin)
):
    return crud.create_partial_payment(db, record)


@router.get("/{partial_payment_id:uuid}", response_model=PartialPaymentOut)
def get_partial_payment(partial_payment_id: UUID, db: Session = Depends(get_db)):
    return crud.get_partial_payment(db, partial_payment_id)


@router.post("/{partial_payment_id:uuid}/payments", response_model=PartialPaymentOut)
def append_payment(
    partial_payment_id: UUID,
    entry: PaymentEntryIn,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(allow_admin)
):
    return crud.append_payment(db, partial_payment_id, entry, current_user)


@router.put("/{partial_payment_id:uuid}/cancel", response_model=PartialPaymentOut)
def cancel_partial_payment(
    partial_payment_id: UUID,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(allow_admin)
):
    return crud.cancel_partial_payment(db, partial_payment_id)
