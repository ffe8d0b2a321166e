import logging
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from shared.core.config import settings
from shared.core.exceptions import NotFound, ValidationError
from shared.core.schemas import UserToken
from shared.helpers.db_helper import persistence_guard
from ...enum.billing_enum import METER_READING_PREFIXES, BillStatus, MeterType
from ...models.energy.meter_readings import MeterReading
from ...models.tenants.businesses import Business
from ...schemas.energy.meter_readings_schemas import (
    MeterReadingCreate, MeterReadingListResponse, MeterReadingOut,
    MeterReadingRequest, MeterReadingStatement
)
from ...schemas.financials.bills_schemas import StatusChange
from ..financials import bill_lifecycle, bill_numbers
from ..financials.bill_lifecycle import OPEN_STATUSES
from ..financials.charges import ZERO, money

logger = logging.getLogger(__name__)

STATEMENT_HISTORY_SIZE = 6


def reading_out(reading: MeterReading) -> MeterReadingOut:
    out = MeterReadingOut.model_validate(reading)
    if reading.business:
        out.business_name = reading.business.name
    return out


def latest_reading(db: Session, business_id: UUID, meter_type: MeterType) -> Optional[MeterReading]:
    return db.query(MeterReading).filter(
        MeterReading.business_id == business_id,
        MeterReading.meter_type == MeterType(meter_type).value,
    ).order_by(MeterReading.reading_date.desc(), MeterReading.created_at.desc()).first()


def create_meter_reading(db: Session, payload: MeterReadingCreate) -> MeterReadingOut:
    if payload.current_reading < 0:
        raise ValidationError("Current reading cannot be negative")
    if payload.rate_per_unit < 0:
        raise ValidationError("Rate per unit cannot be negative")

    business = db.query(Business).filter(Business.id == payload.business_id).first()
    if not business:
        raise NotFound("Business not found")

    previous = payload.previous_reading
    if previous is None:
        last = latest_reading(db, business.id, payload.meter_type)
        previous = last.current_reading if last else ZERO
    if previous < 0:
        raise ValidationError("Previous reading cannot be negative")

    # a meter reset or replacement never produces negative consumption
    units = max(ZERO, Decimal(str(payload.current_reading)) - Decimal(str(previous)))
    amount = money(units * Decimal(str(payload.rate_per_unit)))

    def build(number: str) -> MeterReading:
        return MeterReading(
            business_id=business.id,
            meter_type=payload.meter_type.value,
            reading_date=payload.reading_date,
            previous_reading=previous,
            current_reading=payload.current_reading,
            units_consumed=units,
            rate_per_unit=payload.rate_per_unit,
            amount=amount,
            payment_status=BillStatus.pending.value,
            bill_number=number,
        )

    with persistence_guard(db, "create meter reading"):
        reading = bill_numbers.allocate_and_insert(
            db, MeterReading.bill_number,
            METER_READING_PREFIXES[payload.meter_type], payload.reading_date.year,
            build=build, constraint="uq_meter_readings_bill_number",
        )
        db.commit()

    logger.info("Meter reading %s for %s: %s units, amount %s",
                reading.bill_number, business.name, units, amount)
    return get_meter_reading(db, reading.id)


def get_meter_reading(db: Session, reading_id: UUID) -> MeterReadingOut:
    return reading_out(_load(db, reading_id))


def _load(db: Session, reading_id: UUID) -> MeterReading:
    reading = db.query(MeterReading).options(joinedload(MeterReading.business)).filter(
        MeterReading.id == reading_id
    ).first()
    if not reading:
        raise NotFound("Meter reading not found")
    return reading


def get_meter_readings(db: Session, params: MeterReadingRequest) -> MeterReadingListResponse:
    query = db.query(MeterReading).join(Business)

    if params.business_id:
        query = query.filter(MeterReading.business_id == params.business_id)
    if params.meter_type and params.meter_type.lower() != "all":
        query = query.filter(MeterReading.meter_type == params.meter_type)
    if params.payment_status and params.payment_status.lower() != "all":
        query = query.filter(MeterReading.payment_status == params.payment_status)
    if params.search:
        search_term = f"%{params.search}%"
        query = query.filter(or_(
            MeterReading.bill_number.ilike(search_term),
            Business.name.ilike(search_term),
        ))

    total = query.with_entities(func.count(MeterReading.id)).scalar()

    query = query.options(joinedload(MeterReading.business)).order_by(
        MeterReading.reading_date.desc()
    ).offset(params.skip)
    if params.limit:
        query = query.limit(params.limit)

    return MeterReadingListResponse(
        readings=[reading_out(r) for r in query.all()],
        total=total,
    )


def change_status(db: Session, reading_id: UUID, change: StatusChange, current_user: UserToken) -> MeterReadingOut:
    reading = bill_lifecycle.change_meter_reading_status(db, reading_id, change, current_user)
    return get_meter_reading(db, reading.id)


def get_meter_reading_statement(db: Session, reading_id: UUID) -> MeterReadingStatement:
    reading = _load(db, reading_id)

    earlier = db.query(MeterReading).filter(
        MeterReading.business_id == reading.business_id,
        MeterReading.meter_type == reading.meter_type,
        MeterReading.id != reading.id,
        MeterReading.reading_date < reading.reading_date,
    )
    arrears = money(
        earlier.filter(MeterReading.payment_status.in_(OPEN_STATUSES))
        .with_entities(func.coalesce(func.sum(MeterReading.amount), 0))
        .scalar()
    )
    history = earlier.order_by(MeterReading.reading_date.desc()).limit(STATEMENT_HISTORY_SIZE).all()

    payable_within = money(reading.amount) + arrears
    late_surcharge = money(payable_within * Decimal(str(settings.METER_LATE_SURCHARGE_PCT)) / Decimal("100"))

    return MeterReadingStatement(
        reading=reading_out(reading),
        history=[reading_out(r) for r in history],
        arrears=arrears,
        late_surcharge=late_surcharge,
        payable_within_due_date=payable_within,
        payable_after_due_date=payable_within + late_surcharge,
    )
