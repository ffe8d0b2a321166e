from datetime import date, datetime
from uuid import UUID
from pydantic import BaseModel
from typing import Optional


class TermsConditionCreate(BaseModel):
    title: str
    description: Optional[str] = None
    effective_date: date


class TermsConditionOut(TermsConditionCreate):
    id: UUID
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
