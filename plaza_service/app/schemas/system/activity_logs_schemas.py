from datetime import date, datetime
from decimal import Decimal
from uuid import UUID
from pydantic import BaseModel
from typing import Any, List, Optional

from shared.core.schemas import CommonQueryParams


class ActivityLogOut(BaseModel):
    id: UUID
    user_id: Optional[str] = None
    user_type: str
    username: str
    action_type: str
    entity_type: Optional[str] = None
    entity_id: Optional[UUID] = None
    entity_name: Optional[str] = None
    description: str
    old_value: Optional[Any] = None
    new_value: Optional[Any] = None
    amount: Optional[Decimal] = None
    notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ActivityLogsRequest(CommonQueryParams):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    action_type: Optional[str] = None
    username: Optional[str] = None
    entity_name: Optional[str] = None
    user_type: Optional[str] = None


class ActivityLogsResponse(BaseModel):
    logs: List[ActivityLogOut]
    total: int
