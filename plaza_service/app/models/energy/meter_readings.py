import uuid
from sqlalchemy import (
    Column, Date, DateTime, ForeignKey, Index, Numeric, String, Uuid, UniqueConstraint, func
)
from sqlalchemy.orm import relationship

from shared.core.database import Base


class MeterReading(Base):
    __tablename__ = "meter_readings"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    business_id = Column(Uuid(as_uuid=True), ForeignKey(
        "businesses.id"), nullable=False)
    meter_type = Column(String(16), nullable=False)  # electricity|gas
    reading_date = Column(Date, nullable=False)
    previous_reading = Column(Numeric(14, 2), nullable=False, default=0)
    current_reading = Column(Numeric(14, 2), nullable=False)
    units_consumed = Column(Numeric(14, 2), nullable=False, default=0)
    rate_per_unit = Column(Numeric(14, 4), nullable=False)
    amount = Column(Numeric(14, 2), nullable=False, default=0)
    payment_status = Column(String(16), nullable=False, default="pending")
    bill_number = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True),
                        server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("bill_number", name="uq_meter_readings_bill_number"),
        Index("ix_meter_readings_business_type_date",
              "business_id", "meter_type", "reading_date"),
    )

    business = relationship("Business", back_populates="meter_readings")
    payments = relationship("Payment", back_populates="meter_reading")
