from datetime import date
from decimal import Decimal

import pytest

from shared.core.exceptions import InvalidAmount, ValidationError
from plaza_service.app.crud.financials import bill_lifecycle, bills_crud
from plaza_service.app.enum.billing_enum import BillKind, BillStatus, PaymentMethod
from plaza_service.app.models.energy.meter_readings import MeterReading
from plaza_service.app.models.financials.payments import Payment
from plaza_service.app.models.system.activity_logs import ActivityLog
from plaza_service.app.schemas.financials.bills_schemas import BillCreate, StatusChange
from plaza_service.app.schemas.financials.payments_schemas import PaymentRecordCreate, PaymentRejection
from conftest import ADMIN, TENANT


@pytest.fixture
def bill(db, make_business):
    business = make_business(rent_amount=Decimal("25000"))
    return bills_crud.create_bill(db, BillCreate(
        business_id=business.id,
        kind=BillKind.rent,
        month=5,
        year=2026,
        bill_date=date(2026, 5, 1),
        due_date=date(2026, 5, 16),
    ), ADMIN)


def _payments(db, bill_id):
    return db.query(Payment).filter(Payment.bill_id == bill_id).all()


def test_paying_materialises_a_payment_record(db, bill):
    updated = bill_lifecycle.change_bill_status(db, bill.id, StatusChange(status=BillStatus.paid), ADMIN)

    assert updated.status == "paid"
    [payment] = _payments(db, bill.id)
    assert payment.amount == Decimal("25000.00")
    assert payment.payment_method == "cash"
    assert payment.bill_number == bill.bill_number
    assert payment.marked_by_role == "admin"
    assert payment.approval_status == "approved"
    assert "Marked as paid by admin" in payment.notes


def test_leaving_paid_keeps_history(db, bill):
    bill_lifecycle.change_bill_status(db, bill.id, StatusChange(status=BillStatus.paid), ADMIN)
    reverted = bill_lifecycle.change_bill_status(db, bill.id, StatusChange(status=BillStatus.pending), ADMIN)

    assert reverted.status == "pending"
    assert len(_payments(db, bill.id)) == 1


def test_same_status_is_a_no_op(db, bill):
    bill_lifecycle.change_bill_status(db, bill.id, StatusChange(status=BillStatus.paid), ADMIN)
    bill_lifecycle.change_bill_status(db, bill.id, StatusChange(status=BillStatus.paid), ADMIN)

    assert len(_payments(db, bill.id)) == 1


@pytest.mark.parametrize("start,target", [
    (BillStatus.paid, BillStatus.waveoff),
    (BillStatus.waveoff, BillStatus.paid),
    (BillStatus.paid, BillStatus.overdue),
])
def test_disallowed_transitions(db, bill, start, target):
    bill_lifecycle.change_bill_status(db, bill.id, StatusChange(status=start), ADMIN)
    with pytest.raises(ValidationError):
        bill_lifecycle.change_bill_status(db, bill.id, StatusChange(status=target), ADMIN)


def test_tenant_payment_waits_for_approval(db, bill):
    bill_lifecycle.change_bill_status(db, bill.id, StatusChange(
        status=BillStatus.paid,
        payment_method=PaymentMethod.upi,
        reference_number="UPI-7781",
    ), TENANT)

    [payment] = _payments(db, bill.id)
    assert payment.approval_status == "pending_approval"
    assert payment.payment_method == "upi"
    assert payment.marked_paid_by == "Shop Owner"
    assert "business user" in payment.notes

    approved = bill_lifecycle.approve_payment(db, payment.id, ADMIN)
    assert approved.approval_status == "approved"
    assert approved.approved_by == "Plaza Admin"


def test_payment_survives_bill_delete(db, bill):
    bill_lifecycle.change_bill_status(db, bill.id, StatusChange(status=BillStatus.paid), ADMIN)
    bills_crud.delete_bill(db, bill.id)

    payment = db.query(Payment).filter(Payment.bill_number == bill.bill_number).one()
    assert payment.bill_id is None


def test_overdue_sweep(db, bill):
    assert bill_lifecycle.mark_overdue_bills(db, today=date(2026, 5, 16)) == 0
    assert bill_lifecycle.mark_overdue_bills(db, today=date(2026, 5, 17)) == 1

    assert bills_crud.get_bill(db, bill.id).status == "overdue"
    paid = bill_lifecycle.change_bill_status(db, bill.id, StatusChange(status=BillStatus.paid), ADMIN)
    assert paid.status == "paid"


def test_reading_without_number_gets_one_on_first_status_write(db, make_business):
    business = make_business()
    reading = MeterReading(
        business_id=business.id,
        meter_type="electricity",
        reading_date=date(2026, 4, 30),
        previous_reading=Decimal("100"),
        current_reading=Decimal("160"),
        units_consumed=Decimal("60"),
        rate_per_unit=Decimal("10"),
        amount=Decimal("600"),
        payment_status="pending",
    )
    db.add(reading)
    db.commit()

    updated = bill_lifecycle.change_meter_reading_status(
        db, reading.id, StatusChange(status=BillStatus.paid), ADMIN
    )

    assert updated.bill_number == "ELE-MR-2026-001"
    assert updated.payment_status == "paid"
    payment = db.query(Payment).filter(Payment.meter_reading_id == reading.id).one()
    assert payment.amount == Decimal("600.00")
    assert payment.bill_number == "ELE-MR-2026-001"


def test_status_changes_are_logged(db, bill):
    bill_lifecycle.change_bill_status(db, bill.id, StatusChange(status=BillStatus.paid), TENANT)

    entries = db.query(ActivityLog).filter(ActivityLog.entity_id == bill.id).all()
    changed = [e for e in entries if e.action_type == "bill_status_changed"]
    assert len(changed) == 1
    assert changed[0].user_type == "tenant"
    assert changed[0].old_value == {"status": "pending"}
    assert changed[0].new_value == {"status": "paid"}
    assert changed[0].amount == Decimal("25000.00")


def test_rejected_payment_reopens_the_bill(db, bill):
    bill_lifecycle.change_bill_status(db, bill.id, StatusChange(status=BillStatus.paid), TENANT)
    [payment] = _payments(db, bill.id)

    rejected = bill_lifecycle.reject_payment(db, payment.id, PaymentRejection(reason="No such transfer"), ADMIN)

    assert rejected.approval_status == "rejected"
    assert rejected.rejected_by == "Plaza Admin"
    assert rejected.rejection_reason == "No such transfer"
    assert bills_crud.get_bill(db, bill.id).status == "pending"

    with pytest.raises(ValidationError):
        bill_lifecycle.approve_payment(db, payment.id, ADMIN)

    # the rejected amount no longer counts, paying again records the full bill
    bill_lifecycle.change_bill_status(db, bill.id, StatusChange(status=BillStatus.paid), ADMIN)
    amounts = sorted(p.amount for p in _payments(db, bill.id))
    assert amounts == [Decimal("25000.00"), Decimal("25000.00")]


def test_only_pending_payments_can_be_rejected(db, bill):
    bill_lifecycle.change_bill_status(db, bill.id, StatusChange(status=BillStatus.paid), ADMIN)
    [payment] = _payments(db, bill.id)

    with pytest.raises(ValidationError):
        bill_lifecycle.reject_payment(db, payment.id, PaymentRejection(), ADMIN)
    assert bills_crud.get_bill(db, bill.id).status == "paid"


def _record(business, amount, day=10):
    return PaymentRecordCreate(
        business_id=business.id,
        amount=Decimal(str(amount)),
        payment_date=date(2026, 5, day),
        payment_method=PaymentMethod.bank_transfer,
    )


def test_recorded_payments_settle_the_oldest_open_bill(db, make_business):
    business = make_business(rent_amount=Decimal("10000"))
    april, may = (
        bills_crud.create_bill(db, BillCreate(
            business_id=business.id, kind=BillKind.rent, month=month, year=2026,
            bill_date=date(2026, month, 1), due_date=date(2026, month, 16),
        ), ADMIN)
        for month in (4, 5)
    )

    first = bill_lifecycle.record_payment(db, _record(business, 6000), ADMIN)
    assert first.bill_id == april.id
    assert first.bill_status == "pending"
    assert first.remaining_amount == Decimal("4000.00")
    assert first.payment.approval_status == "approved"

    with pytest.raises(InvalidAmount):
        bill_lifecycle.record_payment(db, _record(business, 4500), ADMIN)

    second = bill_lifecycle.record_payment(db, _record(business, 4000, day=12), ADMIN)
    assert second.bill_id == april.id
    assert second.bill_status == "paid"
    assert second.remaining_amount == Decimal("0.00")

    third = bill_lifecycle.record_payment(db, _record(business, 2500, day=14), ADMIN)
    assert third.bill_id == may.id

    # marking the bill paid records only what is still outstanding
    bill_lifecycle.change_bill_status(db, may.id, StatusChange(status=BillStatus.paid), ADMIN)
    assert sorted(p.amount for p in _payments(db, may.id)) == [Decimal("2500.00"), Decimal("7500.00")]

    recorded = db.query(ActivityLog).filter(ActivityLog.action_type == "payment_recorded").count()
    assert recorded == 3


def test_recording_needs_an_open_bill(db, make_business):
    business = make_business()
    with pytest.raises(ValidationError):
        bill_lifecycle.record_payment(db, _record(business, 100), ADMIN)


def test_overdue_sweep_leaves_meter_readings_alone(db, make_business):
    business = make_business()
    reading = MeterReading(
        business_id=business.id,
        meter_type="gas",
        reading_date=date(2026, 1, 31),
        previous_reading=Decimal("0"),
        current_reading=Decimal("10"),
        units_consumed=Decimal("10"),
        rate_per_unit=Decimal("50"),
        amount=Decimal("500"),
        payment_status="pending",
        bill_number="GAS-MR-2026-001",
    )
    db.add(reading)
    db.commit()

    assert bill_lifecycle.mark_overdue_bills(db, today=date(2026, 6, 1)) == 0
    db.refresh(reading)
    assert reading.payment_status == "pending"
