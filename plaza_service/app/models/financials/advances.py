import uuid
from sqlalchemy import (
    Column, Date, DateTime, ForeignKey, Index, Integer, Numeric, String, Uuid, func, text
)
from sqlalchemy.orm import relationship

from shared.core.database import Base


class Advance(Base):
    __tablename__ = "advances"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    business_id = Column(Uuid(as_uuid=True), ForeignKey(
        "businesses.id"), nullable=False)
    type = Column(String(16), nullable=False)  # rent|electricity|maintenance
    month = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    advance_date = Column(Date, nullable=False)
    purpose = Column(String(500))
    status = Column(String(16), nullable=False, default="active")  # active|used|cancelled
    applied_bill_id = Column(Uuid(as_uuid=True), ForeignKey(
        "bills.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True),
                        server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        # at most one active advance per business, type and period
        Index(
            "uq_advances_active_period",
            "business_id", "type", "month", "year",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
    )

    business = relationship("Business", back_populates="advances")
