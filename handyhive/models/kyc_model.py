from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, ForeignKey, JSON
from sqlalchemy.dialects.postgresql import UUID
import uuid
from handyhive.database import Base
from sqlalchemy.orm import relationship


class KycVerification(Base):
    __tablename__ = "kyc_verifications"

    id = Column(UUID(as_uuid=False), primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    # One active record per provider; re-submission overwrites it
    user_id = Column(UUID(as_uuid=False), ForeignKey("users.id"), nullable=False, unique=True, index=True)
    status = Column(String, nullable=False, default="pending", index=True)
    id_proof_type = Column(String, nullable=False)
    id_proof_url = Column(String, nullable=False)
    address_proof_type = Column(String, nullable=False)
    address_proof_url = Column(String, nullable=False)
    additional_certificates = Column(JSON, nullable=False, default=list)
    rejection_reason = Column(String, nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    reviewed_by = Column(UUID(as_uuid=False), ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    # Relationships
    user = relationship("User", back_populates="kyc_verification", foreign_keys=[user_id])
