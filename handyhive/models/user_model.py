from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, Boolean, Integer, Numeric
from sqlalchemy.dialects.postgresql import UUID
import uuid
from handyhive.database import Base
from sqlalchemy.orm import relationship


class User(Base):
    __tablename__ = "users"

    id = Column(UUID(as_uuid=False), primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    full_name = Column(String, nullable=False, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    mobile = Column(String, nullable=True)
    password_hash = Column(String(255), nullable=False)
    status = Column(String, default="active")
    is_active = Column(Boolean, default=True)
    # Role flags
    is_provider = Column(Boolean, default=False, nullable=False)
    is_admin = Column(Boolean, default=False, nullable=False)
    # Mirrors of the KYC decision for listings; the KYC gate reads kyc_verifications
    primary_skill = Column(String(50), nullable=True)
    kyc_status = Column(String, nullable=True)
    is_verified = Column(Boolean, default=False)
    average_rating = Column(Numeric(3, 2), nullable=True)
    total_reviews = Column(Integer, default=0)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    # Relationships
    customer_bookings = relationship("Booking", back_populates="customer", foreign_keys="Booking.customer_id")
    provider_bookings = relationship("Booking", back_populates="provider", foreign_keys="Booking.provider_id")
    kyc_verification = relationship(
        "KycVerification", back_populates="user", uselist=False, foreign_keys="KycVerification.user_id"
    )
    skills = relationship(
        "ProviderSkill", back_populates="provider", cascade="all, delete-orphan", order_by="ProviderSkill.skill_name"
    )
