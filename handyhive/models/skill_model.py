from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, Boolean, Integer, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
import uuid
from handyhive.database import Base
from sqlalchemy.orm import relationship


class ProviderSkill(Base):
    __tablename__ = "provider_skills"
    __table_args__ = (UniqueConstraint("provider_id", "skill_name", name="uq_provider_skill"),)

    id = Column(UUID(as_uuid=False), primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    provider_id = Column(UUID(as_uuid=False), ForeignKey("users.id"), nullable=False, index=True)
    # Lower-cased; matched against booking service categories
    skill_name = Column(String(50), nullable=False, index=True)
    experience_years = Column(Integer, nullable=False, default=0)
    is_primary = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    # Relationships
    provider = relationship("User", back_populates="skills")
