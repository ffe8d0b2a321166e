import uuid
from sqlalchemy import (
    Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, Uuid, UniqueConstraint, func
)
from sqlalchemy.orm import relationship

from shared.core.database import Base


class PartialPayment(Base):
    __tablename__ = "partial_payments"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    business_id = Column(Uuid(as_uuid=True), ForeignKey(
        "businesses.id"), nullable=False)
    month = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)
    total_rent_amount = Column(Numeric(14, 2), nullable=False)
    # derived from entries, recomputed on every append
    total_paid_amount = Column(Numeric(14, 2), nullable=False, default=0)
    status = Column(String(16), nullable=False, default="active")  # active|completed|cancelled
    description = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True),
                        server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("business_id", "month", "year",
                         name="uq_partial_payments_business_period"),
    )

    business = relationship("Business", back_populates="partial_payments")
    entries = relationship(
        "PartialPaymentEntry",
        back_populates="partial_payment",
        order_by="PartialPaymentEntry.sequence",
        cascade="all, delete-orphan",
    )


class PartialPaymentEntry(Base):
    """Append-only audit row; never updated or deleted on its own."""
    __tablename__ = "partial_payment_entries"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    partial_payment_id = Column(Uuid(as_uuid=True), ForeignKey(
        "partial_payments.id", ondelete="CASCADE"), nullable=False)
    sequence = Column(Integer, nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    payment_date = Column(Date, nullable=False)
    description = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("partial_payment_id", "sequence",
                         name="uq_partial_payment_entries_sequence"),
    )

    partial_payment = relationship("PartialPayment", back_populates="entries")
