from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from uuid import UUID
from typing import List
from handyhive.services.skill_crud import skill_crud
from handyhive.services.user_crud import user_crud
from handyhive.schemas.skill_schema import SkillOut, SkillSet
from handyhive.database import get_db
from handyhive.security.auth import get_current_provider_user
from handyhive.models.user_model import User
from handyhive.logger import get_logger

skill_router = APIRouter()
logger = get_logger(__name__)


# PROVIDER ENDPOINTS


@skill_router.get("/providers/me/skills", response_model=List[SkillOut], status_code=status.HTTP_200_OK)
def get_my_skills(
    current_user: User = Depends(get_current_provider_user),
    db: Session = Depends(get_db),
):
    return [SkillOut.model_validate(skill) for skill in skill_crud.get_skills(db, current_user.id)]


@skill_router.put("/providers/me/skills", response_model=List[SkillOut], status_code=status.HTTP_200_OK)
def set_my_skills(
    skill_set: SkillSet,
    current_user: User = Depends(get_current_provider_user),
    db: Session = Depends(get_db),
):
    """Replace the services this provider offers; bookings are only accepted for listed skills"""
    logger.info(f"Provider {current_user.email} updating skills")
    skills = skill_crud.set_skills(db, current_user, skill_set)
    return [SkillOut.model_validate(skill) for skill in skills]


# PUBLIC ENDPOINTS


@skill_router.get("/providers/{provider_id}/skills", response_model=List[SkillOut], status_code=status.HTTP_200_OK)
def get_provider_skills(provider_id: UUID, db: Session = Depends(get_db)):
    provider = user_crud.get_user_id(db, provider_id)
    if not provider or not provider.is_provider:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Provider not found")
    return [SkillOut.model_validate(skill) for skill in skill_crud.get_skills(db, provider_id)]
