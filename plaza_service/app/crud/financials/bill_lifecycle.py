import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from shared.core.config import settings
from shared.core.exceptions import InvalidAmount, NotFound, ValidationError
from shared.core.schemas import UserToken
from shared.helpers.db_helper import persistence_guard
from shared.utils.enums import UserAccountType
from ...enum.billing_enum import (
    METER_READING_PREFIXES, ActivityAction, ActivityEntity, BillStatus, MeterType,
    PaymentApprovalStatus, PaymentMethod
)
from ...models.energy.meter_readings import MeterReading
from ...models.financials.bills import Bill
from ...models.financials.payments import Payment
from ...models.tenants.businesses import Business
from ...schemas.financials.bills_schemas import StatusChange
from ...schemas.financials.payments_schemas import (
    PaymentOut, PaymentRecordCreate, PaymentRejection, PaymentsRequest, PaymentsResponse,
    RecordedPayment
)
from ..system.activity_logs_crud import log_activity
from . import bill_numbers
from .charges import ZERO, money

logger = logging.getLogger(__name__)


ALLOWED_TRANSITIONS = {
    BillStatus.pending: {BillStatus.paid, BillStatus.waveoff, BillStatus.overdue},
    BillStatus.overdue: {BillStatus.paid, BillStatus.waveoff, BillStatus.pending},
    BillStatus.paid: {BillStatus.pending},
    BillStatus.waveoff: {BillStatus.pending},
}

# statuses that still count towards arrears
OPEN_STATUSES = (BillStatus.pending.value, BillStatus.overdue.value)


def check_transition(current: str, target: BillStatus) -> bool:
    """False for a same-status no-op, raises for a transition that is not allowed."""
    current = BillStatus(current)
    target = BillStatus(target)
    if current == target:
        return False
    if target not in ALLOWED_TRANSITIONS[current]:
        raise ValidationError(f"Cannot change status from {current.value} to {target.value}")
    return True


def _settled_amount(db: Session, bill_id: Optional[UUID] = None, meter_reading_id: Optional[UUID] = None) -> Decimal:
    """Sum of the payments against a bill or reading that were not rejected."""
    query = db.query(func.coalesce(func.sum(Payment.amount), 0)).filter(
        Payment.approval_status != PaymentApprovalStatus.rejected.value
    )
    if bill_id:
        query = query.filter(Payment.bill_id == bill_id)
    else:
        query = query.filter(Payment.meter_reading_id == meter_reading_id)
    return money(query.scalar())


def _record_payment(
    db: Session,
    current_user: UserToken,
    business_id: UUID,
    amount,
    bill_number: Optional[str],
    bill_id: Optional[UUID] = None,
    meter_reading_id: Optional[UUID] = None,
    payment_method: Optional[PaymentMethod] = None,
    reference_number: Optional[str] = None,
    notes: Optional[str] = None,
    payment_date: Optional[date] = None,
) -> Payment:
    is_admin = current_user.account_type == UserAccountType.ADMIN.value
    marked_by = current_user.name or current_user.user_id
    now = datetime.now(timezone.utc)

    payment = Payment(
        business_id=business_id,
        bill_id=bill_id,
        meter_reading_id=meter_reading_id,
        bill_number=bill_number,
        payment_date=payment_date or now.date(),
        amount=money(amount),
        payment_method=(payment_method or PaymentMethod(settings.DEFAULT_PAYMENT_METHOD)).value,
        reference_number=reference_number,
        notes=notes or (
            f"Marked as paid by admin: {marked_by}" if is_admin
            else f"Marked as paid by business user: {marked_by}"
        ),
        marked_paid_by=marked_by,
        marked_by_role=current_user.account_type,
        marked_by_user_id=current_user.user_id,
        marked_paid_at=now,
        approval_status=(
            PaymentApprovalStatus.approved.value if is_admin
            else PaymentApprovalStatus.pending_approval.value
        ),
        approved_by=marked_by if is_admin else None,
        approved_at=now if is_admin else None,
    )
    db.add(payment)
    return payment


def _log_status_change(db: Session, current_user: UserToken, entity_type: ActivityEntity,
                       entity_id: UUID, number: str, previous: str, new: str, amount):
    action = (ActivityAction.bill_status_changed if entity_type == ActivityEntity.bill
              else ActivityAction.meter_reading_status_changed)
    log_activity(
        db, current_user, action,
        f"{number} changed from {previous} to {new}",
        entity_type=entity_type,
        entity_id=entity_id,
        entity_name=number,
        old_value={"status": previous},
        new_value={"status": new},
        amount=amount if new == BillStatus.paid.value else None,
    )


def change_bill_status(db: Session, bill_id: UUID, change: StatusChange, current_user: UserToken) -> Bill:
    """
    Moves a bill through the status table. Marking it paid records a payment
    for whatever is still outstanding after earlier recorded payments.
    """
    bill = db.query(Bill).filter(Bill.id == bill_id).first()
    if not bill:
        raise NotFound("Bill not found")

    if not check_transition(bill.status, change.status):
        return bill

    previous = bill.status
    bill.status = change.status.value
    outstanding = ZERO
    if change.status == BillStatus.paid:
        outstanding = max(ZERO, money(bill.total_amount) - _settled_amount(db, bill_id=bill.id))
        if outstanding > 0:
            _record_payment(
                db, current_user,
                business_id=bill.business_id,
                amount=outstanding,
                bill_number=bill.bill_number,
                bill_id=bill.id,
                payment_method=change.payment_method,
                reference_number=change.reference_number,
                notes=change.notes,
            )
    _log_status_change(db, current_user, ActivityEntity.bill, bill.id, bill.bill_number,
                       previous, bill.status, outstanding)

    with persistence_guard(db, "change bill status"):
        db.commit()
    db.refresh(bill)

    logger.info("Bill %s: %s -> %s by %s", bill.bill_number, previous, bill.status, current_user.user_id)
    return bill


def ensure_reading_number(db: Session, reading: MeterReading) -> MeterReading:
    """Allocates a number for a reading stored without one. Caller commits."""
    if reading.bill_number:
        return reading

    def assign(number: str) -> MeterReading:
        reading.bill_number = number
        return reading

    prefix = METER_READING_PREFIXES[MeterType(reading.meter_type)]
    bill_numbers.allocate_and_insert(
        db, MeterReading.bill_number, prefix, reading.reading_date.year,
        build=assign, constraint="uq_meter_readings_bill_number",
    )
    logger.info("Meter reading %s numbered %s", reading.id, reading.bill_number)
    return reading


def change_meter_reading_status(db: Session, reading_id: UUID, change: StatusChange, current_user: UserToken) -> MeterReading:
    reading = db.query(MeterReading).filter(MeterReading.id == reading_id).first()
    if not reading:
        raise NotFound("Meter reading not found")

    if not check_transition(reading.payment_status, change.status):
        return reading

    with persistence_guard(db, "change meter reading status"):
        ensure_reading_number(db, reading)

        previous = reading.payment_status
        reading.payment_status = change.status.value
        outstanding = ZERO
        if change.status == BillStatus.paid:
            outstanding = max(ZERO, money(reading.amount) - _settled_amount(db, meter_reading_id=reading.id))
            if outstanding > 0:
                _record_payment(
                    db, current_user,
                    business_id=reading.business_id,
                    amount=outstanding,
                    bill_number=reading.bill_number,
                    meter_reading_id=reading.id,
                    payment_method=change.payment_method,
                    reference_number=change.reference_number,
                    notes=change.notes,
                )
        _log_status_change(db, current_user, ActivityEntity.meter_reading, reading.id,
                           reading.bill_number, previous, reading.payment_status, outstanding)
        db.commit()
    db.refresh(reading)

    logger.info("Meter reading %s: %s -> %s by %s",
                reading.bill_number, previous, reading.payment_status, current_user.user_id)
    return reading


def record_payment(db: Session, payload: PaymentRecordCreate, current_user: UserToken) -> RecordedPayment:
    """
    Applies a payment to the oldest open bill of the business. The bill turns
    paid once nothing remains; an amount above the remainder is rejected.
    """
    amount = money(payload.amount)
    if amount <= 0:
        raise InvalidAmount("Payment amount must be greater than zero")

    business = db.query(Business).filter(Business.id == payload.business_id).first()
    if not business:
        raise NotFound("Business not found")

    bill = db.query(Bill).filter(
        Bill.business_id == business.id,
        Bill.status.in_(OPEN_STATUSES),
    ).order_by(Bill.bill_date, Bill.created_at).with_for_update().populate_existing().first()
    if not bill:
        message = f"No unpaid bills found for {business.name}"
        db.rollback()
        raise ValidationError(message)

    remaining = max(ZERO, money(bill.total_amount) - _settled_amount(db, bill_id=bill.id))
    if amount > remaining:
        error = InvalidAmount(
            f"Payment exceeds the remaining amount of {bill.bill_number}. Remaining payable amount is {remaining}",
            data={"bill_id": str(bill.id), "remaining_amount": str(remaining)},
        )
        db.rollback()
        raise error

    with persistence_guard(db, "record payment"):
        payment = _record_payment(
            db, current_user,
            business_id=business.id,
            amount=amount,
            bill_number=bill.bill_number,
            bill_id=bill.id,
            payment_method=payload.payment_method,
            reference_number=payload.reference_number,
            notes=payload.notes or f"Payment recorded by {current_user.name or current_user.user_id}",
            payment_date=payload.payment_date,
        )
        remaining -= amount
        if remaining <= 0:
            bill.status = BillStatus.paid.value
        log_activity(
            db, current_user, ActivityAction.payment_recorded,
            f"Recorded payment of {amount} for {business.name} against {bill.bill_number}",
            entity_type=ActivityEntity.bill,
            entity_id=bill.id,
            entity_name=bill.bill_number,
            new_value={"status": bill.status, "remaining_amount": str(remaining)},
            amount=amount,
            notes=payload.notes,
        )
        db.commit()
    db.refresh(payment)

    logger.info("Payment of %s recorded against %s, remaining %s", amount, bill.bill_number, remaining)
    return RecordedPayment(
        payment=PaymentOut.model_validate(payment),
        bill_id=bill.id,
        bill_number=bill.bill_number,
        bill_status=bill.status,
        remaining_amount=remaining,
    )


def _load_payment(db: Session, payment_id: UUID) -> Payment:
    payment = db.query(Payment).filter(Payment.id == payment_id).first()
    if not payment:
        raise NotFound("Payment not found")
    return payment


def approve_payment(db: Session, payment_id: UUID, current_user: UserToken) -> PaymentOut:
    payment = _load_payment(db, payment_id)
    if payment.approval_status == PaymentApprovalStatus.approved.value:
        return PaymentOut.model_validate(payment)
    if payment.approval_status == PaymentApprovalStatus.rejected.value:
        raise ValidationError("A rejected payment cannot be approved")

    payment.approval_status = PaymentApprovalStatus.approved.value
    payment.approved_by = current_user.name or current_user.user_id
    payment.approved_at = datetime.now(timezone.utc)
    log_activity(
        db, current_user, ActivityAction.payment_approved,
        f"Approved payment of {payment.amount} for {payment.bill_number}",
        entity_type=ActivityEntity.payment,
        entity_id=payment.id,
        entity_name=payment.bill_number,
        amount=payment.amount,
    )
    with persistence_guard(db, "approve payment"):
        db.commit()
    db.refresh(payment)

    logger.info("Payment %s approved by %s", payment.id, payment.approved_by)
    return PaymentOut.model_validate(payment)


def reject_payment(db: Session, payment_id: UUID, rejection: PaymentRejection, current_user: UserToken) -> PaymentOut:
    """
    Rejects a payment awaiting approval. The bill or reading it marked paid
    goes back to pending.
    """
    payment = _load_payment(db, payment_id)
    if payment.approval_status != PaymentApprovalStatus.pending_approval.value:
        raise ValidationError("Only payments pending approval can be rejected")

    payment.approval_status = PaymentApprovalStatus.rejected.value
    payment.rejected_by = current_user.name or current_user.user_id
    payment.rejected_at = datetime.now(timezone.utc)
    payment.rejection_reason = rejection.reason

    if payment.bill_id:
        bill = db.query(Bill).filter(Bill.id == payment.bill_id).first()
        if bill and bill.status == BillStatus.paid.value:
            bill.status = BillStatus.pending.value
    elif payment.meter_reading_id:
        reading = db.query(MeterReading).filter(MeterReading.id == payment.meter_reading_id).first()
        if reading and reading.payment_status == BillStatus.paid.value:
            reading.payment_status = BillStatus.pending.value

    log_activity(
        db, current_user, ActivityAction.payment_rejected,
        f"Rejected payment of {payment.amount} for {payment.bill_number}",
        entity_type=ActivityEntity.payment,
        entity_id=payment.id,
        entity_name=payment.bill_number,
        amount=payment.amount,
        notes=rejection.reason,
    )
    with persistence_guard(db, "reject payment"):
        db.commit()
    db.refresh(payment)

    logger.info("Payment %s rejected by %s", payment.id, payment.rejected_by)
    return PaymentOut.model_validate(payment)


def get_payments(db: Session, params: PaymentsRequest) -> PaymentsResponse:
    query = db.query(Payment)

    if params.business_id:
        query = query.filter(Payment.business_id == params.business_id)
    if params.approval_status and params.approval_status.lower() != "all":
        query = query.filter(Payment.approval_status == params.approval_status)
    if params.search:
        query = query.filter(Payment.bill_number.ilike(f"%{params.search}%"))

    total = query.with_entities(func.count(Payment.id)).scalar()

    query = query.order_by(Payment.marked_paid_at.desc()).offset(params.skip)
    if params.limit:
        query = query.limit(params.limit)

    return PaymentsResponse(
        payments=[PaymentOut.model_validate(p) for p in query.all()],
        total=total,
    )


def mark_overdue_bills(db: Session, today: Optional[date] = None) -> int:
    """Moves pending bills past their due date to overdue."""
    today = today or date.today()

    bills = db.query(Bill).filter(
        Bill.status == BillStatus.pending.value,
        Bill.due_date < today,
    ).all()
    for bill in bills:
        bill.status = BillStatus.overdue.value

    with persistence_guard(db, "mark overdue bills"):
        db.commit()

    logger.info("Overdue sweep for %s marked %s bill(s)", today, len(bills))
    return len(bills)
