from decimal import Decimal

import pytest

from shared.core.exceptions import ValidationError
from plaza_service.app.crud.financials.charges import compute_charges, money, obligation_for
from plaza_service.app.enum.billing_enum import BillKind


def test_rent_reduced_by_advance_offset():
    charges = compute_charges(BillKind.rent, base_rent=50000, advance_offset=20000)

    assert charges.rent == Decimal("30000.00")
    assert charges.maintenance == Decimal("0")
    assert charges.total == Decimal("30000.00")


def test_offset_never_drives_rent_below_zero():
    charges = compute_charges(BillKind.rent, base_rent=10000, advance_offset=25000)
    assert charges.rent == Decimal("0")
    assert charges.total == Decimal("0")


def test_all_zero_inputs_total_zero():
    charges = compute_charges(BillKind.combined, rent_on_non_rent_bills=False)
    assert charges.total == Decimal("0")


def test_total_is_sum_of_components():
    charges = compute_charges(
        BillKind.combined,
        base_rent=12000,
        electricity_units=Decimal("123.5"),
        electricity_rate=Decimal("7.25"),
        gas_units=10,
        gas_rate=Decimal("95.5"),
        maintenance=1500,
        water=250,
        other=Decimal("99.99"),
    )

    assert charges.electricity == Decimal("895.38")
    assert charges.gas == Decimal("955.00")
    assert charges.total == (
        charges.rent + charges.maintenance + charges.electricity
        + charges.gas + charges.water + charges.other
    )
    assert charges.total == Decimal("15700.37")


def test_non_rent_bill_carries_business_rent_as_its_own_component():
    charges = compute_charges(
        BillKind.electricity, base_rent=8000, electricity_units=100, electricity_rate=10
    )
    assert charges.rent == Decimal("8000.00")
    assert charges.electricity == Decimal("1000.00")
    assert charges.total == Decimal("9000.00")


def test_non_rent_bill_without_rent_component():
    charges = compute_charges(
        BillKind.electricity, base_rent=8000, electricity_units=100, electricity_rate=10,
        rent_on_non_rent_bills=False,
    )
    assert charges.rent == Decimal("0")
    assert charges.total == Decimal("1000.00")


def test_offset_applies_to_primary_component_of_kind():
    charges = compute_charges(
        BillKind.electricity, electricity_units=100, electricity_rate=10,
        advance_offset=300, rent_on_non_rent_bills=False,
    )
    assert charges.electricity == Decimal("700.00")
    assert obligation_for(BillKind.maintenance, compute_charges(BillKind.maintenance, maintenance=1200)) == Decimal("1200.00")


def test_negative_inputs_rejected():
    with pytest.raises(ValidationError):
        compute_charges(BillKind.rent, base_rent=-1)
    with pytest.raises(ValidationError):
        compute_charges(BillKind.electricity, electricity_units=-5, electricity_rate=10)


def test_combined_bill_cannot_take_an_offset():
    with pytest.raises(ValidationError):
        compute_charges(BillKind.combined, base_rent=1000, advance_offset=100)


def test_money_rounds_half_up():
    assert money("2.345") == Decimal("2.35")
    assert money(None) == Decimal("0")
