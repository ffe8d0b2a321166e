import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import and_, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from shared.core.config import settings
from shared.core.exceptions import (
    AdvanceFullyCoversObligation, DuplicateRecord, NotFound, ValidationError
)
from shared.core.schemas import UserToken
from shared.helpers.db_helper import is_unique_violation, persistence_guard
from ...enum.billing_enum import (
    BILL_NUMBER_PREFIXES, ActivityAction, ActivityEntity, BillKind, BillStatus
)
from ...models.financials.bills import Bill
from ...models.financials.terms_conditions import TermsCondition
from ...models.tenants.businesses import Business
from ...schemas.financials.bills_schemas import (
    BillChargesUpdate, BillCreate, BillOut, BillsRequest, BillsResponse,
    BillStatement, ChargeBreakdown
)
from ...schemas.financials.terms_schemas import TermsConditionCreate, TermsConditionOut
from ..system.activity_logs_crud import log_activity
from . import advances_crud, bill_numbers
from .bill_lifecycle import OPEN_STATUSES
from .charges import ZERO, compute_charges, metered_charge, money, obligation_for

logger = logging.getLogger(__name__)


def bill_out(bill: Bill) -> BillOut:
    out = BillOut.model_validate(bill)
    if bill.business:
        out.business_name = bill.business.name
        out.shop_number = bill.business.shop_number
    return out


def breakdown_of(bill: Bill) -> ChargeBreakdown:
    return ChargeBreakdown(
        rent=money(bill.rent_charges),
        maintenance=money(bill.maintenance_charges),
        electricity=money(bill.electricity_charges),
        gas=money(bill.gas_charges),
        water=money(bill.water_charges),
        other=money(bill.other_charges),
    )


def _apply_breakdown(bill: Bill, breakdown: ChargeBreakdown):
    bill.rent_charges = breakdown.rent
    bill.maintenance_charges = breakdown.maintenance
    bill.electricity_charges = breakdown.electricity
    bill.gas_charges = breakdown.gas
    bill.water_charges = breakdown.water
    bill.other_charges = breakdown.other
    bill.total_amount = breakdown.total


# ----------------------------------------------------------------
# Terms & conditions
# ----------------------------------------------------------------

def create_terms(db: Session, payload: TermsConditionCreate) -> TermsConditionOut:
    terms = TermsCondition(**payload.model_dump())
    with persistence_guard(db, "create terms"):
        db.add(terms)
        db.commit()
    db.refresh(terms)
    return TermsConditionOut.model_validate(terms)


def get_terms(db: Session) -> List[TermsConditionOut]:
    terms = db.query(TermsCondition).order_by(TermsCondition.effective_date.desc()).all()
    return [TermsConditionOut.model_validate(t) for t in terms]


def render_terms(db: Session, terms_ids: Optional[List[UUID]]) -> Tuple[List[str], Optional[str]]:
    """Selected terms as stored on a bill: ids plus `title: description` blocks."""
    if not terms_ids:
        return [], None

    terms = db.query(TermsCondition).filter(TermsCondition.id.in_(terms_ids)).all()
    found = {t.id for t in terms}
    missing = [str(i) for i in terms_ids if i not in found]
    if missing:
        raise ValidationError("Unknown terms and conditions", data={"missing": missing})

    by_id = {t.id: t for t in terms}
    text = "\n\n".join(
        f"{by_id[i].title}: {by_id[i].description or ''}".rstrip() for i in terms_ids
    )
    return [str(i) for i in terms_ids], text


# ----------------------------------------------------------------
# Reads
# ----------------------------------------------------------------

def build_bills_filters(params: BillsRequest):
    filters = []

    if params.business_id:
        filters.append(Bill.business_id == params.business_id)
    if params.kind and params.kind.lower() != "all":
        filters.append(Bill.kind == params.kind)
    if params.status and params.status.lower() != "all":
        filters.append(Bill.status == params.status)
    if params.month:
        filters.append(Bill.period_month == params.month)
    if params.year:
        filters.append(Bill.period_year == params.year)

    # bill number OR business name OR shop number
    if params.search:
        search_term = f"%{params.search}%"
        filters.append(or_(
            Bill.bill_number.ilike(search_term),
            Business.name.ilike(search_term),
            Business.shop_number.ilike(search_term),
        ))

    return filters


def get_bills(db: Session, params: BillsRequest) -> BillsResponse:
    filters = build_bills_filters(params)

    total = db.query(func.count(Bill.id)).select_from(Bill).join(Business).filter(*filters).scalar()

    query = (
        db.query(Bill)
        .join(Business)
        .options(joinedload(Bill.business))
        .filter(*filters)
        .order_by(Bill.bill_date.desc(), Bill.bill_number.desc())
        .offset(params.skip)
    )
    if params.limit:
        query = query.limit(params.limit)

    return BillsResponse(bills=[bill_out(b) for b in query.all()], total=total)


def get_bill(db: Session, bill_id: UUID) -> Bill:
    bill = db.query(Bill).options(joinedload(Bill.business)).filter(Bill.id == bill_id).first()
    if not bill:
        raise NotFound("Bill not found")
    return bill


def find_existing_bill(db: Session, business_id: UUID, kind: BillKind, month: int, year: int) -> Optional[Bill]:
    return db.query(Bill).filter(
        Bill.business_id == business_id,
        Bill.kind == BillKind(kind).value,
        Bill.period_month == month,
        Bill.period_year == year,
    ).first()


# ----------------------------------------------------------------
# Writes
# ----------------------------------------------------------------

def insert_bill(
    db: Session,
    business: Business,
    kind: BillKind,
    month: int,
    year: int,
    bill_date: date,
    due_date: date,
    breakdown: ChargeBreakdown,
    advance_offset: Decimal = ZERO,
    terms_ids: Optional[List[str]] = None,
    terms_text: Optional[str] = None,
    electricity_units=None,
    electricity_rate=None,
    gas_units=None,
    gas_rate=None,
) -> Bill:
    """
    Numbers and flushes one bill. The number scope is the bill date's year.
    A clash on business, kind and period becomes DuplicateRecord. Caller commits.
    """
    kind = BillKind(kind)

    def build(number: str) -> Bill:
        bill = Bill(
            business_id=business.id,
            bill_number=number,
            kind=kind.value,
            period_month=month,
            period_year=year,
            bill_date=bill_date,
            due_date=due_date,
            electricity_units=electricity_units,
            electricity_rate=electricity_rate,
            gas_units=gas_units,
            gas_rate=gas_rate,
            advance_offset=money(advance_offset),
            status=BillStatus.pending.value,
            terms_conditions_ids=terms_ids or [],
            terms_conditions_text=terms_text,
        )
        _apply_breakdown(bill, breakdown)
        return bill

    try:
        return bill_numbers.allocate_and_insert(
            db, Bill.bill_number, BILL_NUMBER_PREFIXES[kind], bill_date.year,
            build=build, constraint="uq_bills_bill_number",
        )
    except IntegrityError as e:
        if is_unique_violation(e, "uq_bills_business_kind_period", "bills",
                               ["business_id", "kind", "period_month", "period_year"]):
            raise DuplicateRecord(
                f"A {kind.value} bill already exists for {business.name} for {month}/{year}"
            ) from e
        raise


def log_bill_generated(db: Session, bill: Bill, business: Business, actor: Optional[UserToken]):
    log_activity(
        db, actor, ActivityAction.bill_generated,
        f"Generated {bill.kind} bill {bill.bill_number} for {business.name} "
        f"for {bill.period_month}/{bill.period_year}",
        entity_type=ActivityEntity.bill,
        entity_id=bill.id,
        entity_name=bill.bill_number,
        new_value={"kind": bill.kind, "month": bill.period_month, "year": bill.period_year,
                   "advance_offset": str(bill.advance_offset)},
        amount=bill.total_amount,
    )


def create_bill(
db: Session, payload: BillCreate, current_user: UserToken) -> BillOut:
    if not 1 <= payload.month <= 12:
        raise ValidationError("Month must be between 1 and 12")

    business = db.query(Business).filter(Business.id == payload.business_id).first()
    if not business:
        raise NotFound("Business not found")

    bill_date = payload.bill_date or date.today()
    if payload.due_date < bill_date:
        raise ValidationError("Due date cannot be before the bill date")

    if find_existing_bill(db, business.id, payload.kind, payload.month, payload.year):
        raise DuplicateRecord(
            f"A {payload.kind.value} bill already exists for {business.name} for {payload.month}/{payload.year}"
        )

    charge_inputs = dict(
        base_rent=payload.rent_amount if payload.rent_amount is not None else business.rent_amount,
        electricity_units=payload.electricity_units,
        electricity_rate=payload.electricity_rate,
        gas_units=payload.gas_units,
        gas_rate=payload.gas_rate,
        maintenance=payload.maintenance_amount,
        water=payload.water_charges,
        other=payload.other_charges,
    )

    # full obligation first, then the offset the advance allows
    gross = compute_charges(payload.kind, **charge_inputs)
    resolution = advances_crud.resolve(
        db, business.id, payload.kind, payload.month, payload.year,
        obligation_for(payload.kind, gross),
    )
    if resolution.blocks_generation and not payload.acknowledge_advance:
        raise AdvanceFullyCoversObligation(
            f"An advance of {resolution.advance_amount} already covers the "
            f"{payload.kind.value} of {resolution.obligation} for {payload.month}/{payload.year}",
            data=resolution.model_dump(mode="json"),
        )

    breakdown = compute_charges(payload.kind, advance_offset=resolution.offset, **charge_inputs)
    terms_ids, terms_text = render_terms(db, payload.terms_conditions_ids)

    with persistence_guard(db, "create bill"):
        bill = insert_bill(
            db, business, payload.kind, payload.month, payload.year,
            bill_date=bill_date,
            due_date=payload.due_date,
            breakdown=breakdown,
            advance_offset=resolution.offset,
            terms_ids=terms_ids,
            terms_text=terms_text,
            electricity_units=payload.electricity_units,
            electricity_rate=payload.electricity_rate,
            gas_units=payload.gas_units,
            gas_rate=payload.gas_rate,
        )
        if resolution.advance_id:
            advances_crud.mark_applied(db, resolution.advance_id, bill.id)
        log_bill_generated(db, bill, business, current_user)
        db.commit()

    logger.info("Bill %s created for %s by %s: total %s",
                bill.bill_number, business.name, current_user.user_id, bill.total_amount)
    return bill_out(get_bill(db, bill.id))


def update_bill_charges(db: Session, bill_id: UUID, changes: BillChargesUpdate) -> BillOut:
    bill = get_bill(db, bill_id)
    if bill.status == BillStatus.paid.value:
        raise ValidationError("Charges of a paid bill cannot be changed")

    data = changes.model_dump(exclude_unset=True)
    breakdown = breakdown_of(bill)

    for field, component in (
        ("rent_charges", "rent"),
        ("maintenance_charges", "maintenance"),
        ("water_charges", "water"),
        ("other_charges", "other"),
    ):
        if data.get(field) is not None:
            value = money(data[field])
            if value < 0:
                raise ValidationError(f"{component} cannot be negative")
            setattr(breakdown, component, value)

    if {"electricity_units", "electricity_rate"} & data.keys():
        bill.electricity_units = data.get("electricity_units", bill.electricity_units)
        bill.electricity_rate = data.get("electricity_rate", bill.electricity_rate)
        breakdown.electricity = metered_charge(bill.electricity_units, bill.electricity_rate)

    if {"gas_units", "gas_rate"} & data.keys():
        bill.gas_units = data.get("gas_units", bill.gas_units)
        bill.gas_rate = data.get("gas_rate", bill.gas_rate)
        breakdown.gas = metered_charge(bill.gas_units, bill.gas_rate)

    if data.get("due_date"):
        if data["due_date"] < bill.bill_date:
            raise ValidationError("Due date cannot be before the bill date")
        bill.due_date = data["due_date"]

    _apply_breakdown(bill, breakdown)
    with persistence_guard(db, "update bill"):
        db.commit()

    logger.info("Bill %s charges updated: total %s", bill.bill_number, bill.total_amount)
    return bill_out(get_bill(db, bill.id))


def delete_bill(db: Session, bill_id: UUID):
    bill = get_bill(db, bill_id)
    bill_number = bill.bill_number

    with persistence_guard(db, "delete bill"):
        advances_crud.restore_for_bill(db, bill.id)
        # payments keep their bill number snapshot
        for payment in bill.payments:
            payment.bill_id = None
        db.delete(bill)
        db.commit()

    logger.info("Bill %s deleted", bill_number)


def preview_bill_number(db: Session, kind: BillKind, year: Optional[int] = None) -> str:
    return bill_numbers.preview_bill_number(db, kind, year)


# ----------------------------------------------------------------
# Statement for document rendering
# ----------------------------------------------------------------

def _surcharge(amount: Decimal, pct: float) -> Decimal:
    return money(amount * Decimal(str(pct)) / Decimal("100"))


def get_bill_statement(db: Session, bill_id: UUID) -> BillStatement:
    bill = get_bill(db, bill_id)

    earlier = or_(
        Bill.period_year < bill.period_year,
        and_(Bill.period_year == bill.period_year, Bill.period_month < bill.period_month),
    )
    arrears = money(
        db.query(func.coalesce(func.sum(Bill.total_amount), 0)).filter(
            Bill.business_id == bill.business_id,
            Bill.id != bill.id,
            Bill.status.in_(OPEN_STATUSES),
            earlier,
        ).scalar()
    )

    late_surcharge = _surcharge(arrears, settings.BILL_LATE_SURCHARGE_PCT)
    payable_within = money(bill.total_amount) + arrears

    return BillStatement(
        bill=bill_out(bill),
        breakdown=breakdown_of(bill),
        arrears=arrears,
        late_surcharge=late_surcharge,
        payable_within_due_date=payable_within,
        payable_after_due_date=payable_within + late_surcharge,
    )
