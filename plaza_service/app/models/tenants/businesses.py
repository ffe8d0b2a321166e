import uuid
from sqlalchemy import Boolean, Column, Date, DateTime, Integer, Numeric, String, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from shared.core.database import Base


class Business(Base):
    __tablename__ = "businesses"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False)
    type = Column(String(100))
    contact_person = Column(String(200))
    phone = Column(String(50))
    email = Column(String(200))
    floor_number = Column(Integer, nullable=False, default=0)
    shop_number = Column(String(50), nullable=False, unique=True)
    area_sqft = Column(Numeric(12, 2))
    rent_amount = Column(Numeric(14, 2), nullable=False, default=0)
    security_deposit = Column(Numeric(14, 2), default=0)
    lease_start_date = Column(Date)
    lease_end_date = Column(Date)
    electricity_consumer_number = Column(String(64))
    gas_consumer_number = Column(String(64))

    # independent management switches
    rent_management = Column(Boolean, nullable=False, default=True)
    electricity_management = Column(Boolean, nullable=False, default=True)
    gas_management = Column(Boolean, nullable=False, default=False)
    maintenance_management = Column(Boolean, nullable=False, default=False)

    status = Column(String(16), nullable=False, default="active")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True),
                        server_default=func.now(), onupdate=func.now())

    bills = relationship("Bill", back_populates="business")
    meter_readings = relationship("MeterReading", back_populates="business")
    advances = relationship("Advance", back_populates="business")
    partial_payments = relationship("PartialPayment", back_populates="business")
