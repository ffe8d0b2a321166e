import logging
from uuid import UUID

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from shared.core.exceptions import DuplicateRecord, NotFound
from shared.core.schemas import Lookup
from shared.helpers.db_helper import is_unique_violation, persistence_guard
from ...enum.billing_enum import BusinessStatus
from ...models.tenants.businesses import Business
from ...schemas.tenants.businesses_schemas import (
    BusinessCreate, BusinessListResponse, BusinessOut, BusinessRequest, BusinessUpdate
)

logger = logging.getLogger(__name__)


def _shop_taken(db: Session, shop_number: str, exclude_id: UUID = None) -> bool:
    query = db.query(Business.id).filter(func.lower(Business.shop_number) == shop_number.lower())
    if exclude_id:
        query = query.filter(Business.id != exclude_id)
    return query.first() is not None


def _commit(db: Session, business: Business, action: str):
    try:
        with persistence_guard(db, action):
            db.commit()
    except IntegrityError as e:
        if is_unique_violation(e, "businesses_shop_number_key", "businesses", ["shop_number"]):
            raise DuplicateRecord(f"Shop number '{business.shop_number}' is already assigned") from e
        raise


def create_business(db: Session, payload: BusinessCreate) -> BusinessOut:
    if _shop_taken(db, payload.shop_number):
        raise DuplicateRecord(f"Shop number '{payload.shop_number}' is already assigned")

    data = payload.model_dump()
    data["status"] = payload.status.value
    business = Business(**data)
    db.add(business)
    _commit(db, business, "create business")
    db.refresh(business)

    logger.info("Business %s created at shop %s", business.name, business.shop_number)
    return BusinessOut.model_validate(business)


def get_business(db: Session, business_id: UUID) -> BusinessOut:
    business = db.query(Business).filter(Business.id == business_id).first()
    if not business:
        raise NotFound("Business not found")
    return BusinessOut.model_validate(business)


def get_businesses(db: Session, params: BusinessRequest) -> BusinessListResponse:
    query = db.query(Business)

    if params.status and params.status.lower() != "all":
        query = query.filter(Business.status == params.status)
    if params.floor_number is not None:
        query = query.filter(Business.floor_number == params.floor_number)
    if params.rent_management is not None:
        query = query.filter(Business.rent_management == params.rent_management)
    if params.search:
        search_term = f"%{params.search}%"
        query = query.filter(or_(
            Business.name.ilike(search_term),
            Business.shop_number.ilike(search_term),
        ))

    total = query.with_entities(func.count(Business.id)).scalar()

    query = query.order_by(Business.floor_number, Business.shop_number).offset(params.skip)
    if params.limit:
        query = query.limit(params.limit)

    return BusinessListResponse(
        businesses=[BusinessOut.model_validate(b) for b in query.all()],
        total=total,
    )


def update_business(db: Session, business_id: UUID, payload: BusinessUpdate) -> BusinessOut:
    business = db.query(Business).filter(Business.id == business_id).first()
    if not business:
        raise NotFound("Business not found")

    data = payload.model_dump(exclude_unset=True)
    if data.get("shop_number") and _shop_taken(db, data["shop_number"], exclude_id=business.id):
        raise DuplicateRecord(f"Shop number '{data['shop_number']}' is already assigned")
    if data.get("status"):
        data["status"] = BusinessStatus(data["status"]).value

    for key, value in data.items():
        setattr(business, key, value)

    _commit(db, business, "update business")
    db.refresh(business)
    return BusinessOut.model_validate(business)


def business_lookup(db: Session):
    businesses = db.query(Business.id, Business.name, Business.shop_number).filter(
        Business.status == BusinessStatus.active.value
    ).order_by(Business.name).all()
    return [Lookup(id=str(b.id), name=f"{b.name} ({b.shop_number})") for b in businesses]
