import uuid
from sqlalchemy import JSON, Column, DateTime, Index, Numeric, String, Text, Uuid, func
from sqlalchemy.dialects.postgresql import JSONB

from shared.core.database import Base


class ActivityLog(Base):
    """Append-only trail of billing actions, written in the same transaction as the action."""
    __tablename__ = "activity_logs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(String(64))
    user_type = Column(String(16), nullable=False)  # admin|tenant|system
    username = Column(String(200), nullable=False)
    action_type = Column(String(48), nullable=False)
    entity_type = Column(String(32))
    entity_id = Column(Uuid(as_uuid=True))
    entity_name = Column(String(200))
    description = Column(Text, nullable=False)
    old_value = Column(JSON().with_variant(JSONB, "postgresql"))
    new_value = Column(JSON().with_variant(JSONB, "postgresql"))
    amount = Column(Numeric(14, 2))
    notes = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("ix_activity_logs_created_at", "created_at"),
        Index("ix_activity_logs_action_type", "action_type"),
    )
