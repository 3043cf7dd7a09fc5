from datetime import datetime, timezone
from typing import List
from uuid import UUID
from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session
from handyhive.models.skill_model import ProviderSkill
from handyhive.models.user_model import User
from handyhive.schemas.skill_schema import SkillSet
from handyhive.logger import get_logger

logger = get_logger(__name__)


class SkillCRUD:
    @staticmethod
    def get_skills(db: Session, provider_id: UUID) -> List[ProviderSkill]:
        return (
            db.query(ProviderSkill)
            .filter(ProviderSkill.provider_id == str(provider_id))
            .order_by(ProviderSkill.is_primary.desc(), ProviderSkill.skill_name)
            .all()
        )

    @staticmethod
    def offers(db: Session, provider_id: UUID, category: str) -> bool:
        """True when the provider lists ``category`` among their skills"""
        return db.execute(
            select(ProviderSkill.id).where(
                ProviderSkill.provider_id == str(provider_id),
                ProviderSkill.skill_name == category.strip().lower(),
            ).limit(1)
        ).first() is not None

    def set_skills(self, db: Session, provider: User, skill_set: SkillSet) -> List[ProviderSkill]:
        """Replace the provider's whole skill list; the first skill is primary unless one is marked"""
        if not provider.is_provider:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only providers can list skills",
            )

        primary = next((s.skill_name for s in skill_set.skills if s.is_primary), None)
        if primary is None and skill_set.skills:
            primary = skill_set.skills[0].skill_name

        try:
            db.query(ProviderSkill).filter(
                ProviderSkill.provider_id == str(provider.id)
            ).delete(synchronize_session=False)
            db.flush()

            now = datetime.now(timezone.utc)
            for skill in skill_set.skills:
                db.add(ProviderSkill(
                    provider_id=str(provider.id),
                    skill_name=skill.skill_name,
                    experience_years=skill.experience_years,
                    is_primary=skill.skill_name == primary,
                    created_at=now,
                ))
            provider.primary_skill = primary

            db.commit()
            logger.info(f"Provider {provider.id} now lists {len(skill_set.skills)} skill(s), primary {primary}")

        except Exception as e:
            db.rollback()
            logger.error(f"Error saving skills for provider {provider.id}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Error occurred while saving skills",
            )

        return self.get_skills(db, provider.id)


skill_crud = SkillCRUD()
