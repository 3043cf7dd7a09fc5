from datetime import datetime, timezone
from sqlalchemy import Column, String, Date, DateTime, ForeignKey, Integer, Numeric, Text
from sqlalchemy.dialects.postgresql import UUID
import uuid
from handyhive.database import Base
from sqlalchemy.orm import relationship


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(UUID(as_uuid=False), primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    booking_code = Column(String(20), unique=True, nullable=False, index=True)
    customer_id = Column(UUID(as_uuid=False), ForeignKey("users.id"), nullable=False, index=True)
    provider_id = Column(UUID(as_uuid=False), ForeignKey("users.id"), nullable=False, index=True)
    service_category = Column(String, nullable=False)
    scheduled_date = Column(Date, nullable=False)
    scheduled_time = Column(String, nullable=False)
    status = Column(String, nullable=False, default="requested", index=True)
    payment_method = Column(String, nullable=False, default="online")
    payment_status = Column(String, nullable=False, default="pending")

    # Fixed at creation: total_amount = subtotal + visit_charge + tax
    subtotal = Column(Numeric(10, 2), nullable=False)
    visit_charge = Column(Numeric(10, 2), nullable=False)
    tax = Column(Numeric(10, 2), nullable=False)
    total_amount = Column(Numeric(10, 2), nullable=False)

    customer_address = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    cancelled_by = Column(String, nullable=True)

    # Bumped by every lifecycle transition; doubles as the change-feed sequence
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    accepted_at = Column(DateTime, nullable=True)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)

    # Relationships
    customer = relationship("User", back_populates="customer_bookings", foreign_keys=[customer_id])
    provider = relationship("User", back_populates="provider_bookings", foreign_keys=[provider_id])
    review = relationship("Review", back_populates="booking", uselist=False)
