from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shared.core.database import get_plaza_db as get_db
from shared.core.auth import validate_cron_secret
from shared.helpers.json_response_helper import success_response
from ...crud.scheduler import scheduler_service

router = APIRouter(
    prefix="/api/scheduler",
    tags=["scheduler"],
    dependencies=[Depends(validate_cron_secret)]
)


@router.post("/generate-rent-bills")
def generate_rent_bills(db: Session = Depends(get_db)):
    result = scheduler_service.process_scheduled_rent_bills(db)
    return success_response(data=result, message=result["message"])


@router.post("/mark-overdue")
def mark_overdue(db: Session = Depends(get_db)):
    result = scheduler_service.process_overdue_bills(db)
    return success_response(data=result, message=result["message"])
