import logging
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from shared.core.config import settings
from shared.core.exceptions import DuplicateRecord, NotFound, ValidationError
from shared.core.schemas import UserToken
from shared.helpers.db_helper import is_unique_violation, persistence_guard
from ...enum.billing_enum import (
    ADVANCE_TYPE_FOR_KIND, ActivityAction, ActivityEntity, AdvanceStatus, BillKind
)
from ...models.financials.advances import Advance
from ...models.tenants.businesses import Business
from ...schemas.financials.advances_schemas import (
    AdvanceCreate, AdvanceOut, AdvanceResolution, AdvancesRequest, AdvancesResponse
)
from ..system.activity_logs_crud import log_activity
from .charges import money

logger = logging.getLogger(__name__)


def _active_advance(db: Session, business_id: UUID, advance_type: str, month: int, year: int) -> Optional[Advance]:
    return db.query(Advance).filter(
        Advance.business_id == business_id,
        Advance.type == advance_type,
        Advance.month == month,
        Advance.year == year,
        Advance.status == AdvanceStatus.active.value,
    ).first()


def create_advance(db: Session, payload: AdvanceCreate, actor: Optional[UserToken] = None) -> AdvanceOut:
    amount = money(payload.amount)
    if amount <= 0:
        raise ValidationError("Advance amount must be greater than zero")
    if not 1 <= payload.month <= 12:
        raise ValidationError("Month must be between 1 and 12")

    business = db.query(Business).filter(Business.id == payload.business_id).first()
    if not business:
        raise NotFound("Business not found")

    if _active_advance(db, payload.business_id, payload.type.value, payload.month, payload.year):
        raise DuplicateRecord(
            f"An active {payload.type.value} advance already exists for {payload.month}/{payload.year}"
        )

    advance = Advance(
        business_id=payload.business_id,
        type=payload.type.value,
        month=payload.month,
        year=payload.year,
        amount=amount,
        advance_date=payload.advance_date,
        purpose=payload.purpose,
        status=AdvanceStatus.active.value,
    )
    try:
        with persistence_guard(db, "create advance"):
            db.add(advance)
            db.flush()
            log_activity(
                db, actor, ActivityAction.advance_created,
                f"Recorded {advance.type} advance of {amount} for {business.name} "
                f"for {advance.month}/{advance.year}",
                entity_type=ActivityEntity.advance,
                entity_id=advance.id,
                entity_name=business.name,
                amount=amount,
                notes=payload.purpose,
            )
            db.commit()
    except IntegrityError as e:
        if is_unique_violation(e, "uq_advances_active_period", "advances",
                               ["business_id", "type", "month", "year"]):
            raise DuplicateRecord(
                f"An active {payload.type.value} advance already exists for {payload.month}/{payload.year}"
            ) from e
        raise

    db.refresh(advance)
    logger.info("Advance %s recorded for business %s (%s %s/%s)",
                advance.id, advance.business_id, advance.type, advance.month, advance.year)
    return AdvanceOut.model_validate(advance)


def get_advances(db: Session, params: AdvancesRequest) -> AdvancesResponse:
    query = db.query(Advance)

    if params.business_id:
        query = query.filter(Advance.business_id == params.business_id)
    if params.type and params.type.lower() != "all":
        query = query.filter(Advance.type == params.type)
    if params.status and params.status.lower() != "all":
        query = query.filter(Advance.status == params.status)
    if params.month:
        query = query.filter(Advance.month == params.month)
    if params.year:
        query = query.filter(Advance.year == params.year)

    total = query.with_entities(func.count(Advance.id)).scalar()

    query = query.order_by(Advance.year.desc(), Advance.month.desc()).offset(params.skip)
    if params.limit:
        query = query.limit(params.limit)

    return AdvancesResponse(
        advances=[AdvanceOut.model_validate(a) for a in query.all()],
        total=total,
    )


def cancel_advance(db: Session, advance_id: UUID) -> AdvanceOut:
    advance = db.query(Advance).filter(Advance.id == advance_id).first()
    if not advance:
        raise NotFound("Advance not found")
    if advance.status == AdvanceStatus.used.value:
        raise ValidationError("Advance has already been applied to a bill")

    advance.status = AdvanceStatus.cancelled.value
    with persistence_guard(db, "cancel advance"):
        db.commit()
    db.refresh(advance)
    return AdvanceOut.model_validate(advance)


def resolve(db: Session, business_id: UUID, kind: BillKind, month: int, year: int, obligation: Decimal) -> AdvanceResolution:
    """
    Offset available to a bill of `kind` for the period.

    Only kinds listed in ADVANCE_OFFSET_BILL_TYPES consult advances. An
    advance that covers the whole obligation blocks generation and offsets
    the full obligation if the caller goes ahead anyway.
    """
    obligation = money(obligation)
    advance_type = ADVANCE_TYPE_FOR_KIND.get(BillKind(kind))
    if advance_type is None or advance_type.value not in settings.ADVANCE_OFFSET_BILL_TYPES:
        return AdvanceResolution(obligation=obligation)

    advance = _active_advance(db, business_id, advance_type.value, month, year)
    if not advance:
        return AdvanceResolution(obligation=obligation)

    amount = money(advance.amount)
    if amount >= obligation:
        return AdvanceResolution(
            offset=obligation,
            blocks_generation=True,
            obligation=obligation,
            advance_id=advance.id,
            advance_amount=amount,
        )

    return AdvanceResolution(
        offset=amount,
        obligation=obligation,
        advance_id=advance.id,
        advance_amount=amount,
    )


def mark_applied(db: Session, advance_id: UUID, bill_id: UUID):
    """Flags the advance as used by the bill. Caller commits."""
    advance = db.query(Advance).filter(Advance.id == advance_id).first()
    if not advance:
        return
    advance.status = AdvanceStatus.used.value
    advance.applied_bill_id = bill_id
    db.flush()


def restore_for_bill(db: Session, bill_id: UUID):
    """Puts advances applied to a bill back to active. Caller commits."""
    advances = db.query(Advance).filter(Advance.applied_bill_id == bill_id).all()
    for advance in advances:
        advance.applied_bill_id = None
        if _active_advance(db, advance.business_id, advance.type, advance.month, advance.year):
            # a newer advance took the period; keep this one as history
            logger.warning("Advance %s not restored, period already has an active advance", advance.id)
            continue
        advance.status = AdvanceStatus.active.value
        logger.info("Advance %s restored to active", advance.id)
    db.flush()
