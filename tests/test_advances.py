from datetime import date
from decimal import Decimal

import pytest

from shared.core.exceptions import AdvanceFullyCoversObligation, DuplicateRecord, ValidationError
from plaza_service.app.crud.financials import advances_crud, bills_crud
from plaza_service.app.enum.billing_enum import AdvanceType, BillKind
from plaza_service.app.models.financials.advances import Advance
from plaza_service.app.models.system.activity_logs import ActivityLog
from plaza_service.app.schemas.financials.advances_schemas import AdvanceCreate
from plaza_service.app.schemas.financials.bills_schemas import BillCreate
from conftest import ADMIN


def _advance(business, amount, month=3, year=2026, advance_type=AdvanceType.rent):
    return AdvanceCreate(
        business_id=business.id,
        type=advance_type,
        month=month,
        year=year,
        amount=Decimal(str(amount)),
        advance_date=date(2026, 2, 20),
        purpose="Paid ahead",
    )


def _rent_bill(business, month=3, acknowledge=False):
    return BillCreate(
        business_id=business.id,
        kind=BillKind.rent,
        month=month,
        year=2026,
        bill_date=date(2026, month, 1),
        due_date=date(2026, month, 16),
        acknowledge_advance=acknowledge,
    )


def test_one_active_advance_per_period(db, make_business):
    business = make_business()
    first = advances_crud.create_advance(db, _advance(business, 20000))

    with pytest.raises(DuplicateRecord):
        advances_crud.create_advance(db, _advance(business, 5000))

    # another type or period is a different tuple
    advances_crud.create_advance(db, _advance(business, 5000, advance_type=AdvanceType.electricity))
    advances_crud.create_advance(db, _advance(business, 5000, month=4))

    advances_crud.cancel_advance(db, first.id)
    replacement = advances_crud.create_advance(db, _advance(business, 25000))
    assert replacement.status == "active"


def test_advance_amount_must_be_positive(db, make_business):
    business = make_business()
    with pytest.raises(ValidationError):
        advances_crud.create_advance(db, _advance(business, 0))


def test_resolve_partial_and_full_cover(db, make_business):
    business = make_business()
    advances_crud.create_advance(db, _advance(business, 20000))

    partial = advances_crud.resolve(db, business.id, BillKind.rent, 3, 2026, Decimal("50000"))
    assert partial.offset == Decimal("20000.00")
    assert partial.blocks_generation is False

    full = advances_crud.resolve(db, business.id, BillKind.rent, 3, 2026, Decimal("20000"))
    assert full.blocks_generation is True
    assert full.offset == Decimal("20000.00")

    none = advances_crud.resolve(db, business.id, BillKind.rent, 4, 2026, Decimal("50000"))
    assert none.offset == Decimal("0")
    assert none.advance_id is None


def test_resolve_ignores_kinds_not_configured_for_offsets(db, make_business):
    business = make_business()
    advances_crud.create_advance(db, _advance(business, 500, advance_type=AdvanceType.electricity))

    resolution = advances_crud.resolve(db, business.id, BillKind.electricity, 3, 2026, Decimal("1000"))
    assert resolution.offset == Decimal("0")
    assert resolution.advance_id is None


def test_partial_advance_offsets_rent_bill_and_is_restored_on_delete(db, make_business):
    business = make_business(rent_amount=Decimal("50000"))
    advance = advances_crud.create_advance(db, _advance(business, 20000))

    bill = bills_crud.create_bill(db, _rent_bill(business), ADMIN)

    assert bill.rent_charges == Decimal("30000.00")
    assert bill.total_amount == Decimal("30000.00")
    assert bill.advance_offset == Decimal("20000.00")

    stored = db.get(Advance, advance.id)
    assert stored.status == "used"
    assert stored.applied_bill_id == bill.id

    bills_crud.delete_bill(db, bill.id)

    db.refresh(stored)
    assert stored.status == "active"
    assert stored.applied_bill_id is None


def test_full_cover_needs_acknowledgement(db, make_business):
    business = make_business(rent_amount=Decimal("50000"))
    advances_crud.create_advance(db, _advance(business, 50000))

    with pytest.raises(AdvanceFullyCoversObligation) as exc:
        bills_crud.create_bill(db, _rent_bill(business), ADMIN)
    assert exc.value.data["blocks_generation"] is True
    assert bills_crud.find_existing_bill(db, business.id, BillKind.rent, 3, 2026) is None

    bill = bills_crud.create_bill(db, _rent_bill(business, acknowledge=True), ADMIN)
    assert bill.rent_charges == Decimal("0")
    assert bill.total_amount == Decimal("0")


def test_concurrent_advance_is_stopped_by_the_unique_index(db, make_business, monkeypatch):
    business = make_business()
    advances_crud.create_advance(db, _advance(business, 20000))

    # a second writer that checked before the first one committed
    monkeypatch.setattr(advances_crud, "_active_advance", lambda *args: None)
    with pytest.raises(DuplicateRecord):
        advances_crud.create_advance(db, _advance(business, 5000))

    assert db.query(Advance).filter(Advance.business_id == business.id).count() == 1


def test_advance_creation_is_logged(db, make_business):
    business = make_business()
    advance = advances_crud.create_advance(db, _advance(business, 20000), ADMIN)

    entry = db.query(ActivityLog).filter(ActivityLog.entity_id == advance.id).one()
    assert entry.action_type == "advance_created"
    assert entry.username == "Plaza Admin"
    assert entry.amount == Decimal("20000.00")
