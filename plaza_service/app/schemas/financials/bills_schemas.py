from datetime import date, datetime
from decimal import Decimal
from uuid import UUID
from pydantic import BaseModel, Field, computed_field
from typing import List, Optional

from shared.core.schemas import CommonQueryParams
from ...enum.billing_enum import BillKind, BillStatus, PaymentMethod


class ChargeBreakdown(BaseModel):
    rent: Decimal = Decimal("0")
    maintenance: Decimal = Decimal("0")
    electricity: Decimal = Decimal("0")
    gas: Decimal = Decimal("0")
    water: Decimal = Decimal("0")
    other: Decimal = Decimal("0")

    @computed_field
    @property
    def total(self) -> Decimal:
        return self.rent + self.maintenance + self.electricity + self.gas + self.water + self.other


class BillCreate(BaseModel):
    business_id: UUID
    kind: BillKind
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000, le=2100)
    due_date: date
    bill_date: Optional[date] = None

    electricity_units: Optional[Decimal] = None
    electricity_rate: Optional[Decimal] = None
    gas_units: Optional[Decimal] = None
    gas_rate: Optional[Decimal] = None
    maintenance_amount: Optional[Decimal] = None
    # overrides the business rent on rent bills
    rent_amount: Optional[Decimal] = None
    water_charges: Optional[Decimal] = None
    other_charges: Optional[Decimal] = None

    terms_conditions_ids: List[UUID] = []
    acknowledge_advance: bool = False


class BillChargesUpdate(BaseModel):
    due_date: Optional[date] = None
    rent_charges: Optional[Decimal] = None
    maintenance_charges: Optional[Decimal] = None
    electricity_units: Optional[Decimal] = None
    electricity_rate: Optional[Decimal] = None
    gas_units: Optional[Decimal] = None
    gas_rate: Optional[Decimal] = None
    water_charges: Optional[Decimal] = None
    other_charges: Optional[Decimal] = None


class StatusChange(BaseModel):
    status: BillStatus
    payment_method: Optional[PaymentMethod] = None
    reference_number: Optional[str] = None
    notes: Optional[str] = None


class BillOut(BaseModel):
    id: UUID
    business_id: UUID
    business_name: Optional[str] = None
    shop_number: Optional[str] = None
    bill_number: str
    kind: str
    period_month: int
    period_year: int
    bill_date: date
    due_date: date
    rent_charges: Decimal
    maintenance_charges: Decimal
    electricity_charges: Decimal
    gas_charges: Decimal
    water_charges: Decimal
    other_charges: Decimal
    total_amount: Decimal
    advance_offset: Decimal
    status: str
    terms_conditions_ids: Optional[List[UUID]] = None
    terms_conditions_text: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BillsRequest(CommonQueryParams):
    business_id: Optional[UUID] = None
    kind: Optional[str] = None
    status: Optional[str] = None
    month: Optional[int] = None
    year: Optional[int] = None


class BillsResponse(BaseModel):
    bills: List[BillOut]
    total: int


class BillStatement(BaseModel):
    bill: BillOut
    breakdown: ChargeBreakdown
    arrears: Decimal
    late_surcharge: Decimal
    payable_within_due_date: Decimal
    payable_after_due_date: Decimal


class BulkGenerateRequest(BaseModel):
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000, le=2100)
    due_date: date
    business_ids: Optional[List[UUID]] = None
    terms_conditions_ids: List[UUID] = []


class BusinessGenerationError(BaseModel):
    business_id: UUID
    business_name: Optional[str] = None
    message: str


class SkippedBusiness(BaseModel):
    business_id: UUID
    business_name: Optional[str] = None
    reason: str


class BulkGenerationResult(BaseModel):
    success_count: int = 0
    skip_count: int = 0
    failed_count: int = 0
    generated_bill_numbers: List[str] = []
    skipped: List[SkippedBusiness] = []
    errors: List[BusinessGenerationError] = []


class BillNumberPreview(BaseModel):
    bill_number: str
