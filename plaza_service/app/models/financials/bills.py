import uuid
from sqlalchemy import (
    JSON, Column, Date, DateTime, ForeignKey, Index, Integer, Numeric, String, Text, Uuid, UniqueConstraint, func
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship

from shared.core.database import Base


class Bill(Base):
    __tablename__ = "bills"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    business_id = Column(Uuid(as_uuid=True), ForeignKey(
        "businesses.id"), nullable=False, index=True)

    bill_number = Column(String(64), nullable=False)
    kind = Column(String(16), nullable=False)  # rent|maintenance|electricity|gas|combined
    period_month = Column(Integer, nullable=False)
    period_year = Column(Integer, nullable=False)
    bill_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)

    # charge breakdown, one unambiguous field per component
    rent_charges = Column(Numeric(14, 2), nullable=False, default=0)
    maintenance_charges = Column(Numeric(14, 2), nullable=False, default=0)
    electricity_charges = Column(Numeric(14, 2), nullable=False, default=0)
    gas_charges = Column(Numeric(14, 2), nullable=False, default=0)
    water_charges = Column(Numeric(14, 2), nullable=False, default=0)
    other_charges = Column(Numeric(14, 2), nullable=False, default=0)
    total_amount = Column(Numeric(14, 2), nullable=False, default=0)

    # inputs kept for the statement
    electricity_units = Column(Numeric(14, 2))
    electricity_rate = Column(Numeric(14, 4))
    gas_units = Column(Numeric(14, 2))
    gas_rate = Column(Numeric(14, 4))
    advance_offset = Column(Numeric(14, 2), nullable=False, default=0)

    status = Column(String(16), nullable=False, default="pending")
    terms_conditions_ids = Column(JSON().with_variant(JSONB, "postgresql"))
    terms_conditions_text = Column(Text)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True),
                        server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("bill_number", name="uq_bills_bill_number"),
        # one bill per business, kind and billing period
        UniqueConstraint("business_id", "kind", "period_month", "period_year",
                         name="uq_bills_business_kind_period"),
        Index("ix_bills_business_date", "business_id", "bill_date"),
    )

    business = relationship("Business", back_populates="bills")
    payments = relationship("Payment", back_populates="bill")
