from datetime import date, datetime
from decimal import Decimal
from uuid import UUID
from pydantic import BaseModel
from typing import List, Optional

from shared.core.schemas import CommonQueryParams
from ...enum.billing_enum import MeterType


class MeterReadingCreate(BaseModel):
    business_id: UUID
    meter_type: MeterType = MeterType.electricity
    reading_date: date
    current_reading: Decimal
    rate_per_unit: Decimal
    # defaults to the latest reading of the same meter
    previous_reading: Optional[Decimal] = None


class MeterReadingOut(BaseModel):
    id: UUID
    business_id: UUID
    business_name: Optional[str] = None
    meter_type: str
    reading_date: date
    previous_reading: Decimal
    current_reading: Decimal
    units_consumed: Decimal
    rate_per_unit: Decimal
    amount: Decimal
    payment_status: str
    bill_number: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MeterReadingRequest(CommonQueryParams):
    business_id: Optional[UUID] = None
    meter_type: Optional[str] = None
    payment_status: Optional[str] = None


class MeterReadingListResponse(BaseModel):
    readings: List[MeterReadingOut]
    total: int


class MeterReadingStatement(BaseModel):
    reading: MeterReadingOut
    history: List[MeterReadingOut] = []
    arrears: Decimal
    late_surcharge: Decimal
    payable_within_due_date: Decimal
    payable_after_due_date: Decimal
