from datetime import date, datetime
from decimal import Decimal
from uuid import UUID
from pydantic import BaseModel
from typing import List, Optional

from shared.core.schemas import CommonQueryParams
from ...enum.billing_enum import PaymentMethod


class PaymentOut(BaseModel):
    id: UUID
    business_id: UUID
    bill_id: Optional[UUID] = None
    meter_reading_id: Optional[UUID] = None
    bill_number: Optional[str] = None
    payment_date: date
    amount: Decimal
    payment_method: str
    reference_number: Optional[str] = None
    notes: Optional[str] = None
    marked_paid_by: str
    marked_by_role: str
    marked_paid_at: datetime
    approval_status: str
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejected_by: Optional[str] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None

    class Config:
        from_attributes = True


class PaymentsRequest(CommonQueryParams):
    business_id: Optional[UUID] = None
    approval_status: Optional[str] = None


class PaymentsResponse(BaseModel):
    payments: List[PaymentOut]
    total: int


class PaymentRecordCreate(BaseModel):
    business_id: UUID
    amount: Decimal
    payment_date: date
    payment_method: Optional[PaymentMethod] = None
    reference_number: Optional[str] = None
    notes: Optional[str] = None


class PaymentRejection(BaseModel):
    reason: Optional[str] = None


class RecordedPayment(BaseModel):
    payment: PaymentOut
    bill_id: UUID
    bill_number: str
    bill_status: str
    remaining_amount: Decimal
