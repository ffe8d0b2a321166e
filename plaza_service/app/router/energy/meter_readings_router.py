from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from uuid import UUID

from shared.core.database import get_plaza_db as get_db
from shared.core.auth import allow_admin, validate_current_token
from shared.core.schemas import UserToken
from ...crud.energy import meter_readings_crud as crud
from ...schemas.energy.meter_readings_schemas import (
    MeterReadingCreate, MeterReadingListResponse, MeterReadingOut,
    MeterReadingRequest, MeterReadingStatement
)
from ...schemas.financials.bills_schemas import StatusChange

router = APIRouter(
    prefix="/api/meter-readings",
    tags=["meter-readings"],
    dependencies=[Depends(validate_current_token)]
)


@router.get("/all", response_model=MeterReadingListResponse)
def get_meter_readings(
    params: MeterReadingRequest = Depends(),
    db: Session = Depends(get_db),
):
    return crud.get_meter_readings(db, params)


@router.post("/create", response_model=MeterReadingOut)
def create_meter_reading(
    reading: MeterReadingCreate,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(allow_admin)
):
    return crud.create_meter_reading(db, reading)


@router.get("/{reading_id:uuid}", response_model=MeterReadingOut)
def get_meter_reading(reading_id: UUID, db: Session = Depends(get_db)):
    return crud.get_meter_reading(db, reading_id)


@router.get("/{reading_id:uuid}/statement", response_model=MeterReadingStatement)
def get_meter_reading_statement(reading_id: UUID, db: Session = Depends(get_db)):
    return crud.get_meter_reading_statement(db, reading_id)


@router.put("/{reading_id:uuid}/status", response_model=MeterReadingOut)
def change_status(
    reading_id: UUID,
    change: StatusChange,
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(validate_current_token)
):
    return crud.change_status(db, reading_id, change, current_user)
