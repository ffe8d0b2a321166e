import uuid
from sqlalchemy import Column, Date, DateTime, String, Text, Uuid, func

from shared.core.database import Base


class TermsCondition(Base):
    __tablename__ = "terms_conditions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(String(200), nullable=False)
    description = Column(Text)
    effective_date = Column(Date, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
