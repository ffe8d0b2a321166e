from datetime import datetime, time, timedelta
from decimal import Decimal
from typing import Any, List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from shared.core.schemas import UserToken
from ...enum.billing_enum import ActivityAction, ActivityEntity
from ...models.system.activity_logs import ActivityLog
from ...schemas.system.activity_logs_schemas import (
    ActivityLogOut, ActivityLogsRequest, ActivityLogsResponse
)

SYSTEM_USER_TYPE = "system"
SYSTEM_USERNAME = "Scheduler"


def log_activity(
    db: Session,
    actor: Optional[UserToken],
    action_type: ActivityAction,
    description: str,
    entity_type: Optional[ActivityEntity] = None,
    entity_id: Optional[UUID] = None,
    entity_name: Optional[str] = None,
    old_value: Any = None,
    new_value: Any = None,
    amount: Optional[Decimal] = None,
    notes: Optional[str] = None,
) -> ActivityLog:
    """
    Adds an activity entry to the session. Caller commits, so the entry lands
    or rolls back together with the action it records. No actor means the
    action was run by a scheduled job.
    """
    entry = ActivityLog(
        user_id=actor.user_id if actor else None,
        user_type=actor.account_type if actor else SYSTEM_USER_TYPE,
        username=(actor.name or actor.user_id) if actor else SYSTEM_USERNAME,
        action_type=ActivityAction(action_type).value,
        entity_type=ActivityEntity(entity_type).value if entity_type else None,
        entity_id=entity_id,
        entity_name=entity_name,
        description=description,
        old_value=old_value,
        new_value=new_value,
        amount=amount,
        notes=notes,
    )
    db.add(entry)
    return entry


def get_activity_logs(db: Session, params: ActivityLogsRequest) -> ActivityLogsResponse:
    query = db.query(ActivityLog)

    if params.start_date:
        query = query.filter(ActivityLog.created_at >= datetime.combine(params.start_date, time.min))
    if params.end_date:
        # end date is inclusive
        query = query.filter(
            ActivityLog.created_at < datetime.combine(params.end_date + timedelta(days=1), time.min)
        )
    if params.action_type and params.action_type.lower() != "all":
        query = query.filter(ActivityLog.action_type == params.action_type)
    if params.user_type and params.user_type.lower() != "all":
        query = query.filter(ActivityLog.user_type == params.user_type)
    if params.username:
        query = query.filter(ActivityLog.username.ilike(f"%{params.username}%"))
    if params.entity_name:
        query = query.filter(ActivityLog.entity_name.ilike(f"%{params.entity_name}%"))
    if params.search:
        query = query.filter(ActivityLog.description.ilike(f"%{params.search}%"))

    total = query.with_entities(func.count(ActivityLog.id)).scalar()

    query = query.order_by(ActivityLog.created_at.desc()).offset(params.skip)
    if params.limit:
        query = query.limit(params.limit)

    return ActivityLogsResponse(
        logs=[ActivityLogOut.model_validate(log) for log in query.all()],
        total=total,
    )


def get_action_types(db: Session) -> List[str]:
    rows = db.query(ActivityLog.action_type).distinct().order_by(ActivityLog.action_type).all()
    return [row[0] for row in rows]
