from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from uuid import UUID

from shared.core.database import get_plaza_db as get_db
from shared.core.auth import allow_admin, validate_current_token
from shared.core.exceptions import NotFound
from shared.core.schemas import UserToken
from ...crud.financials import advances_crud as crud
from ...enum.billing_enum import BillKind
from ...models.tenants.businesses import Business
from ...schemas.financials.advances_schemas import (
    AdvanceCreate, AdvanceOut, AdvanceResolution, AdvancesRequest, AdvancesResponse
)

router = APIRouter(
    prefix="/api/advances",
    tags=["advances"],
    dependencies=[Depends(validate_current_token)]
)


@router.get("/all", response_model=AdvancesResponse)
def get_advances(
    params: AdvancesRequest = Depends(),
    db: Session = Depends(get_db),
):
    return crud.get_advances(db, params)


@router.post("/create", response_model=AdvanceOut)
def create_advance(
    advance: AdvanceCreate,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(allow_admin)
):
    return crud.create_advance(db, advance, current_user)


@router.get("/check", response_model=AdvanceResolution)
def check_advance(
    business_id: UUID = Query(...),
    month: int = Query(..., ge=1, le=12),
    year: int = Query(...),
    kind: BillKind = Query(BillKind.rent),
    obligation: Optional[Decimal] = Query(None),
    db: Session = Depends(get_db),
):
    """What an advance would do to a bill of this kind, before generating it."""
    if obligation is None:
        business = db.query(Business).filter(Business.id == business_id).first()
        if not business:
            raise NotFound("Business not found")
        obligation = business.rent_amount
    return crud.resolve(db, business_id, kind, month, year, obligation)


@router.put("/{advance_id:uuid}/cancel", response_model=AdvanceOut)
def cancel_advance(
    advance_id: UUID,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(allow_admin)
):
    return crud.cancel_advance(db, advance_id)
