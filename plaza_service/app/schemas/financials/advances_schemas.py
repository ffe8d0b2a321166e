from datetime import date, datetime
from decimal import Decimal
from uuid import UUID
from pydantic import BaseModel, Field
from typing import List, Optional

from shared.core.schemas import CommonQueryParams
from ...enum.billing_enum import AdvanceType


class AdvanceCreate(BaseModel):
    business_id: UUID
    type: AdvanceType
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000, le=2100)
    amount: Decimal
    advance_date: date
    purpose: Optional[str] = None


class AdvanceOut(BaseModel):
    id: UUID
    business_id: UUID
    type: str
    month: int
    year: int
    amount: Decimal
    advance_date: date
    purpose: Optional[str] = None
    status: str
    applied_bill_id: Optional[UUID] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AdvancesRequest(CommonQueryParams):
    business_id: Optional[UUID] = None
    type: Optional[str] = None
    status: Optional[str] = None
    month: Optional[int] = None
    year: Optional[int] = None


class AdvancesResponse(BaseModel):
    advances: List[AdvanceOut]
    total: int


class AdvanceResolution(BaseModel):
    offset: Decimal = Decimal("0")
    blocks_generation: bool = False
    obligation: Decimal = Decimal("0")
    advance_id: Optional[UUID] = None
    advance_amount: Optional[Decimal] = None
