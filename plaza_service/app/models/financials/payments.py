import uuid
from sqlalchemy import Column, Date, DateTime, ForeignKey, Numeric, String, Text, Uuid, func
from sqlalchemy.orm import relationship

from shared.core.database import Base


class Payment(Base):
    """Receipt materialised when a bill or meter reading is marked paid or a payment is recorded against a bill. Never updated except for review."""
    __tablename__ = "payments"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    business_id = Column(Uuid(as_uuid=True), ForeignKey(
        "businesses.id"), nullable=False, index=True)
    # history survives an administrative bill delete
    bill_id = Column(Uuid(as_uuid=True), ForeignKey(
        "bills.id", ondelete="SET NULL"), nullable=True)
    meter_reading_id = Column(Uuid(as_uuid=True), ForeignKey(
        "meter_readings.id", ondelete="SET NULL"), nullable=True)
    bill_number = Column(String(64))

    payment_date = Column(Date, nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    payment_method = Column(String(24), nullable=False)  # cash|cheque|bank_transfer|upi|card
    reference_number = Column(String(64))
    notes = Column(Text)

    marked_paid_by = Column(String(200), nullable=False)
    marked_by_role = Column(String(16), nullable=False)  # admin|tenant
    marked_by_user_id = Column(String(64))
    marked_paid_at = Column(DateTime(timezone=True), nullable=False)
    approval_status = Column(String(24), nullable=False, default="approved")  # approved|pending_approval|rejected
    approved_by = Column(String(200))
    approved_at = Column(DateTime(timezone=True))
    rejected_by = Column(String(200))
    rejected_at = Column(DateTime(timezone=True))
    rejection_reason = Column(Text)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    bill = relationship("Bill", back_populates="payments")
    meter_reading = relationship("MeterReading", back_populates="payments")
