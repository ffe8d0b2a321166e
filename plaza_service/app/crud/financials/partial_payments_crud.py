import logging
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from shared.core.exceptions import DuplicateRecord, InvalidAmount, NotFound, ValidationError
from shared.core.schemas import UserToken
from shared.helpers.db_helper import is_unique_violation, persistence_guard
from ...enum.billing_enum import ActivityAction, ActivityEntity, PartialPaymentStatus
from ...models.financials.partial_payments import PartialPayment, PartialPaymentEntry
from ...models.tenants.businesses import Business
from ...schemas.financials.partial_payments_schemas import (
    PartialPaymentCreate, PartialPaymentOut, PartialPaymentsRequest,
    PartialPaymentsResponse, PaymentEntryIn
)
from ..system.activity_logs_crud import log_activity
from .charges import money

logger = logging.getLogger(__name__)


def _load(db: Session, partial_payment_id: UUID, for_update: bool = False) -> PartialPayment:
    query = db.query(PartialPayment).filter(PartialPayment.id == partial_payment_id)
    if for_update:
        query = query.with_for_update().populate_existing()
    record = query.first()
    if not record:
        raise NotFound("Partial payment record not found")
    return record


def _paid_total(db: Session, partial_payment_id: UUID) -> Decimal:
    total = db.query(func.coalesce(func.sum(PartialPaymentEntry.amount), 0)).filter(
        PartialPaymentEntry.partial_payment_id == partial_payment_id
    ).scalar()
    return money(total)


def _next_sequence(db: Session, partial_payment_id: UUID) -> int:
    last = db.query(func.max(PartialPaymentEntry.sequence)).filter(
        PartialPaymentEntry.partial_payment_id == partial_payment_id
    ).scalar()
    return (last or 0) + 1


def _recompute(db: Session, record: PartialPayment):
    # the entries are the source of truth, never the running total
    record.total_paid_amount = _paid_total(db, record.id)
    if record.total_paid_amount >= money(record.total_rent_amount):
        record.status = PartialPaymentStatus.completed.value
    else:
        record.status = PartialPaymentStatus.active.value


def _validate_entry(amount: Decimal, remaining: Decimal):
    if amount <= 0:
        raise InvalidAmount("Payment amount must be greater than zero")
    if amount > remaining:
        raise InvalidAmount(
            f"Payment exceeds the remaining amount. Remaining payable amount is {remaining}",
            data={"remaining_amount": str(remaining)},
        )


def _existing_record(db: Session, business_id: UUID, month: int, year: int):
    return db.query(PartialPayment.id).filter(
        PartialPayment.business_id == business_id,
        PartialPayment.month == month,
        PartialPayment.year == year,
    ).first()


def create_partial_payment(
db: Session, payload: PartialPaymentCreate) -> PartialPaymentOut:
    if not 1 <= payload.month <= 12:
        raise ValidationError("Month must be between 1 and 12")

    business = db.query(Business).filter(Business.id == payload.business_id).first()
    if not business:
        raise NotFound("Business not found")

    total_obligation = money(
        payload.total_obligation if payload.total_obligation is not None else business.rent_amount
    )
    if total_obligation <= 0:
        raise ValidationError("Total obligation must be greater than zero")

    first_amount = money(payload.first_entry.amount)
    _validate_entry(first_amount, total_obligation)

    existing = _existing_record(db, payload.business_id, payload.month, payload.year)
    if existing:
        raise DuplicateRecord(
            f"A partial payment record already exists for {payload.month}/{payload.year}",
            data={"partial_payment_id": str(existing.id)},
        )

    record = PartialPayment(
        business_id=payload.business_id,
        month=payload.month,
        year=payload.year,
        total_rent_amount=total_obligation,
        total_paid_amount=first_amount,
        status=PartialPaymentStatus.active.value,
        description=payload.description,
    )
    record.entries.append(PartialPaymentEntry(
        sequence=1,
        amount=first_amount,
        payment_date=payload.first_entry.payment_date,
        description=payload.first_entry.description,
    ))

    try:
        with persistence_guard(db, "create partial payment"):
            db.add(record)
            db.flush()
            _recompute(db, record)
            db.commit()
    except IntegrityError as e:
        if is_unique_violation(e, "uq_partial_payments_business_period", "partial_payments",
                               ["business_id", "month", "year"]):
            raise DuplicateRecord(
                f"A partial payment record already exists for {payload.month}/{payload.year}"
            ) from e
        raise

    logger.info("Partial payment %s opened for business %s (%s/%s)",
                record.id, record.business_id, record.month, record.year)
    return get_partial_payment(db, record.id)


def append_payment(
    db: Session,
    partial_payment_id: UUID,
    entry: PaymentEntryIn,
    actor: Optional[UserToken] = None,
) -> PartialPaymentOut:
    """
    Appends one payment entry. The record row stays locked while the amount
    is validated; a rejected amount leaves the record untouched.
    """
    record = _load(db, partial_payment_id, for_update=True)
    if record.status == PartialPaymentStatus.cancelled.value:
        db.rollback()
        raise ValidationError("Partial payment record is cancelled")

    amount = money(entry.amount)
    remaining = max(Decimal("0"), money(record.total_rent_amount) - _paid_total(db, record.id))
    try:
        _validate_entry(amount, remaining)
    except InvalidAmount:
        db.rollback()
        raise

    with persistence_guard(db, "append partial payment"):
        db.add(PartialPaymentEntry(
            partial_payment_id=record.id,
            sequence=_next_sequence(db, record.id),
            amount=amount,
            payment_date=entry.payment_date,
            description=entry.description,
        ))
        db.flush()
        _recompute(db, record)
        log_activity(
            db, actor, ActivityAction.instalment_payment,
            f"Instalment of {amount} paid towards {record.month}/{record.year}, "
            f"{record.total_paid_amount} of {record.total_rent_amount} settled",
            entity_type=ActivityEntity.partial_payment,
            entity_id=record.id,
            entity_name=f"{record.month}/{record.year}",
            new_value={"status": record.status, "total_paid_amount": str(record.total_paid_amount)},
            amount=amount,
            notes=entry.description,
        )
        db.commit()

    logger.info("Payment of %s appended to %s, status %s", amount, record.id, record.status)
    return get_partial_payment(db, record.id)


def cancel_partial_payment(db: Session, partial_payment_id: UUID) -> PartialPaymentOut:
    record = _load(db, partial_payment_id, for_update=True)
    if record.status == PartialPaymentStatus.completed.value:
        db.rollback()
        raise ValidationError("A completed partial payment cannot be cancelled")

    record.status = PartialPaymentStatus.cancelled.value
    with persistence_guard(db, "cancel partial payment"):
        db.commit()
    return get_partial_payment(db, record.id)


def get_partial_payment(db: Session, partial_payment_id: UUID) -> PartialPaymentOut:
    record = db.query(PartialPayment).options(
        selectinload(PartialPayment.entries)
    ).filter(PartialPayment.id == partial_payment_id).populate_existing().first()
    if not record:
        raise NotFound("Partial payment record not found")
    return PartialPaymentOut.model_validate(record)


def get_partial_payments(db: Session, params: PartialPaymentsRequest) -> PartialPaymentsResponse:
    query = db.query(PartialPayment)

    if params.business_id:
        query = query.filter(PartialPayment.business_id == params.business_id)
    if params.status and params.status.lower() != "all":
        query = query.filter(PartialPayment.status == params.status)
    if params.month:
        query = query.filter(PartialPayment.month == params.month)
    if params.year:
        query = query.filter(PartialPayment.year == params.year)

    total = query.with_entities(func.count(PartialPayment.id)).scalar()

    query = query.options(selectinload(PartialPayment.entries)).order_by(
        PartialPayment.year.desc(), PartialPayment.month.desc()
    ).offset(params.skip)
    if params.limit:
        query = query.limit(params.limit)

    return PartialPaymentsResponse(
        partial_payments=[PartialPaymentOut.model_validate(r) for r in query.all()],
        total=total,
    )
