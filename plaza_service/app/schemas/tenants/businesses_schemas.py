from datetime import date, datetime
from decimal import Decimal
from uuid import UUID
from pydantic import BaseModel, Field
from typing import List, Optional

from shared.core.schemas import CommonQueryParams
from ...enum.billing_enum import BusinessStatus


class BusinessBase(BaseModel):
    name: str
    type: Optional[str] = None
    contact_person: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    floor_number: int = 0
    shop_number: str
    area_sqft: Optional[Decimal] = None
    rent_amount: Decimal = Field(default=Decimal("0"), ge=0)
    security_deposit: Optional[Decimal] = None
    lease_start_date: Optional[date] = None
    lease_end_date: Optional[date] = None
    electricity_consumer_number: Optional[str] = None
    gas_consumer_number: Optional[str] = None
    rent_management: bool = True
    electricity_management: bool = True
    gas_management: bool = False
    maintenance_management: bool = False
    status: BusinessStatus = BusinessStatus.active


class BusinessCreate(BusinessBase):
    pass


class BusinessUpdate(BaseModel):
    name: Optional[str] = None
    type: Optional[str] = None
    contact_person: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    floor_number: Optional[int] = None
    shop_number: Optional[str] = None
    area_sqft: Optional[Decimal] = None
    rent_amount: Optional[Decimal] = Field(default=None, ge=0)
    security_deposit: Optional[Decimal] = None
    lease_start_date: Optional[date] = None
    lease_end_date: Optional[date] = None
    electricity_consumer_number: Optional[str] = None
    gas_consumer_number: Optional[str] = None
    rent_management: Optional[bool] = None
    electricity_management: Optional[bool] = None
    gas_management: Optional[bool] = None
    maintenance_management: Optional[bool] = None
    status: Optional[BusinessStatus] = None


class BusinessOut(BusinessBase):
    id: UUID
    status: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BusinessRequest(CommonQueryParams):
    status: Optional[str] = None
    floor_number: Optional[int] = None
    rent_management: Optional[bool] = None


class BusinessListResponse(BaseModel):
    businesses: List[BusinessOut]
    total: int
