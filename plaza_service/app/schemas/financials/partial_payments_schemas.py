from datetime import date, datetime
from decimal import Decimal
from uuid import UUID
from pydantic import BaseModel, Field, computed_field
from typing import List, Optional

from shared.core.schemas import CommonQueryParams


class PaymentEntryIn(BaseModel):
    amount: Decimal
    payment_date: date
    description: Optional[str] = None


class PaymentEntryOut(PaymentEntryIn):
    sequence: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PartialPaymentCreate(BaseModel):
    business_id: UUID
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000, le=2100)
    # defaults to the business rent
    total_obligation: Optional[Decimal] = None
    first_entry: PaymentEntryIn
    description: Optional[str] = None


class PartialPaymentOut(BaseModel):
    id: UUID
    business_id: UUID
    month: int
    year: int
    total_rent_amount: Decimal
    total_paid_amount: Decimal
    status: str
    description: Optional[str] = None
    entries: List[PaymentEntryOut] = []
    created_at: Optional[datetime] = None

    @computed_field
    @property
    def remaining_amount(self) -> Decimal:
        return max(Decimal("0"), self.total_rent_amount - self.total_paid_amount)

    class Config:
        from_attributes = True


class PartialPaymentsRequest(CommonQueryParams):
    business_id: Optional[UUID] = None
    status: Optional[str] = None
    month: Optional[int] = None
    year: Optional[int] = None


class PartialPaymentsResponse(BaseModel):
    partial_payments: List[PartialPaymentOut]
    total: int
