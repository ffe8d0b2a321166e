from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shared.core.database import get_plaza_db as get_db
from shared.core.auth import allow_admin, validate_current_token
from shared.core.schemas import UserToken
from ...crud.system import activity_logs_crud as crud
from ...schemas.system.activity_logs_schemas import ActivityLogsRequest, ActivityLogsResponse

router = APIRouter(
    prefix="/api/activity-logs",
    tags=["activity logs"],
    dependencies=[Depends(validate_current_token)]
)


@router.get("/all", response_model=ActivityLogsResponse)
def get_activity_logs(
    params: ActivityLogsRequest = Depends(),
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(allow_admin)
):
    return crud.get_activity_logs(db, params)


@router.get("/action-types", response_model=List[str])
def get_action_types(
    db: Session = Depends(get_db),
    current_user: UserToken = Depends(allow_admin)
):
    return crud.get_action_types(db)
