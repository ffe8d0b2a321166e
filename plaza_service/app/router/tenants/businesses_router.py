from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from uuid import UUID

from shared.core.database import get_plaza_db as get_db
from shared.core.auth import allow_admin, validate_current_token
from shared.core.schemas import Lookup, UserToken
from ...crud.tenants import businesses_crud as crud
from ...schemas.tenants.businesses_schemas import (
    BusinessCreate, BusinessListResponse, BusinessOut, BusinessRequest, BusinessUpdate
)

router = APIRouter(
    prefix="/api/businesses",
    tags=["businesses"],
    dependencies=[Depends(validate_current_token)]
)


@router.get("/all", response_model=BusinessListResponse)
def get_businesses(
    params: BusinessRequest = Depends(),
    db: Session = Depends(get_db),
):
    return crud.get_businesses(db, params)


@router.get("/lookup", response_model=List[Lookup])
def business_lookup(db: Session = Depends(get_db)):
    return crud.business_lookup(db)


@router.post("/create", response_model=BusinessOut)
def create_business(
    business: BusinessCreate,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(allow_admin)
):
    return crud.create_business(db, business)


@router.get("/{business_id:uuid}", response_model=BusinessOut)
def get_business(business_id: UUID, db: Session = Depends(get_db)):
    return crud.get_business(db, business_id)


@router.put("/{business_id:uuid}", response_model=BusinessOut)
def update_business(
    business_id: UUID,
    business: BusinessUpdate,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(allow_admin)
):
    return crud.update_business(db, business_id, business)
