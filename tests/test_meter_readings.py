from datetime import date
from decimal import Decimal

import pytest

from shared.core.exceptions import ValidationError
from plaza_service.app.crud.energy import meter_readings_crud as crud
from plaza_service.app.enum.billing_enum import BillStatus, MeterType
from plaza_service.app.schemas.energy.meter_readings_schemas import MeterReadingCreate
from plaza_service.app.schemas.financials.bills_schemas import StatusChange
from conftest import ADMIN


def _reading(business, current, reading_date, meter_type=MeterType.electricity, previous=None, rate="10"):
    return MeterReadingCreate(
        business_id=business.id,
        meter_type=meter_type,
        reading_date=reading_date,
        current_reading=Decimal(str(current)),
        rate_per_unit=Decimal(rate),
        previous_reading=Decimal(str(previous)) if previous is not None else None,
    )


def test_previous_reading_defaults_to_latest(db, make_business):
    business = make_business()
    first = crud.create_meter_reading(db, _reading(business, 1200, date(2026, 1, 31)))
    second = crud.create_meter_reading(db, _reading(business, 1450, date(2026, 2, 28)))

    assert first.previous_reading == Decimal("0")
    assert second.previous_reading == Decimal("1200.00")
    assert second.units_consumed == Decimal("250.00")
    assert second.amount == Decimal("2500.00")
    assert [first.bill_number, second.bill_number] == ["ELE-MR-2026-001", "ELE-MR-2026-002"]


def test_consumption_is_floored_at_zero(db, make_business):
    business = make_business()
    reading = crud.create_meter_reading(db, _reading(business, 40, date(2026, 3, 31), previous=900))

    assert reading.units_consumed == Decimal("0")
    assert reading.amount == Decimal("0")


def test_gas_readings_have_their_own_scope(db, make_business):
    business = make_business(gas_management=True)
    crud.create_meter_reading(db, _reading(business, 100, date(2026, 1, 31)))
    gas = crud.create_meter_reading(db, _reading(business, 30, date(2026, 1, 31), meter_type=MeterType.gas))

    assert gas.bill_number == "GAS-MR-2026-001"
    assert gas.previous_reading == Decimal("0")


def test_negative_inputs_rejected(db, make_business):
    business = make_business()
    with pytest.raises(ValidationError):
        crud.create_meter_reading(db, _reading(business, -1, date(2026, 1, 31)))
    with pytest.raises(ValidationError):
        crud.create_meter_reading(db, _reading(business, 10, date(2026, 1, 31), rate="-2"))


def test_statement_adds_unpaid_readings_and_surcharge(db, make_business):
    business = make_business()
    jan = crud.create_meter_reading(db, _reading(business, 100, date(2026, 1, 31)))
    feb = crud.create_meter_reading(db, _reading(business, 150, date(2026, 2, 28)))
    mar = crud.create_meter_reading(db, _reading(business, 230, date(2026, 3, 31)))

    crud.change_status(db, feb.id, StatusChange(status=BillStatus.paid), ADMIN)

    statement = crud.get_meter_reading_statement(db, mar.id)

    # jan (1000) is still open, feb is paid
    assert statement.arrears == Decimal("1000.00")
    assert statement.payable_within_due_date == Decimal("1800.00")
    assert statement.late_surcharge == Decimal("90.00")
    assert statement.payable_after_due_date == Decimal("1890.00")
    assert [r.id for r in statement.history] == [feb.id, jan.id]
