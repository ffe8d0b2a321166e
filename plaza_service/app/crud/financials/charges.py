from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from shared.core.config import settings
from shared.core.exceptions import ValidationError
from ...enum.billing_enum import BillKind
from ...schemas.financials.bills_schemas import ChargeBreakdown

CENT = Decimal("0.01")
ZERO = Decimal("0")


def money(value) -> Decimal:
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _non_negative(name: str, value) -> Decimal:
    if value is None:
        return ZERO
    value = value if isinstance(value, Decimal) else Decimal(str(value))
    if value < 0:
        raise ValidationError(f"{name} cannot be negative")
    return value


def metered_charge(units, rate) -> Decimal:
    return money(_non_negative("units", units) * _non_negative("rate", rate))


def compute_charges(
    kind: BillKind,
    base_rent=None,
    advance_offset=None,
    electricity_units=None,
    electricity_rate=None,
    gas_units=None,
    gas_rate=None,
    maintenance=None,
    water=None,
    other=None,
    rent_on_non_rent_bills: Optional[bool] = None,
) -> ChargeBreakdown:
    """
    Pure charge calculation for one bill.

    Rent bills carry `max(0, base_rent - advance_offset)` in the rent field.
    Other kinds carry the business rent as its own component when
    RENT_ON_NON_RENT_BILLS is on. An advance offset always reduces the primary
    component of the bill kind and never drives it below zero.
    """
    kind = BillKind(kind)
    if rent_on_non_rent_bills is None:
        rent_on_non_rent_bills = settings.RENT_ON_NON_RENT_BILLS

    rent = money(_non_negative("rent", base_rent))
    offset = money(_non_negative("advance offset", advance_offset))

    breakdown = ChargeBreakdown(
        rent=rent if (kind == BillKind.rent or rent_on_non_rent_bills) else ZERO,
        maintenance=money(_non_negative("maintenance", maintenance)),
        electricity=metered_charge(electricity_units, electricity_rate),
        gas=metered_charge(gas_units, gas_rate),
        water=money(_non_negative("water", water)),
        other=money(_non_negative("other", other)),
    )

    if offset:
        primary = primary_component(kind)
        if primary is None:
            raise ValidationError(f"Advances cannot offset {kind.value} bills")
        setattr(breakdown, primary, max(ZERO, getattr(breakdown, primary) - offset))

    return breakdown


def primary_component(kind: BillKind) -> Optional[str]:
    return {
        BillKind.rent: "rent",
        BillKind.electricity: "electricity",
        BillKind.gas: "gas",
        BillKind.maintenance: "maintenance",
    }.get(BillKind(kind))


def obligation_for(kind: BillKind, breakdown: ChargeBreakdown) -> Decimal:
    """Full, un-offset amount of the bill's primary component."""
    primary = primary_component(kind)
    return getattr(breakdown, primary) if primary else ZERO
