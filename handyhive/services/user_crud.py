from fastapi import HTTPException, status
from typing import List, Optional
from uuid import UUID
from handyhive.schemas.user_schema import UserCreate, UserUpdate
from handyhive.models.user_model import User
from handyhive.models.skill_model import ProviderSkill
from sqlalchemy import or_
from sqlalchemy.orm import Session
from handyhive.security.auth import get_password_hash
from handyhive.logger import get_logger

logger = get_logger(__name__)


class UserCRUD:
    @staticmethod
    def get_user_id(db: Session, user_id: UUID):
        return db.query(User).filter(User.id == str(user_id)).first()

    @staticmethod
    def get_user_by_email(db: Session, email: str):
        return db.query(User).filter(User.email == email).first()

    @staticmethod
    def get_users(db: Session, skip: int = 0, limit: int = 100, is_provider: Optional[bool] = None) -> List[User]:
        query = db.query(User)
        if is_provider is not None:
            query = query.filter(User.is_provider == is_provider)
        return query.order_by(User.created_at.desc()).offset(skip).limit(limit).all()

    @staticmethod
    def get_providers(
            db: Session, verified_only: bool = True, category: Optional[str] = None, skip: int = 0, limit: int = 100
    ) -> List[User]:
        """Active providers customers can book; only KYC-approved ones unless told otherwise.

        ``category`` matches case-insensitively anywhere in the primary skill or any listed skill.
        """
        query = db.query(User).filter(User.is_provider == True, User.is_active == True)
        if verified_only:
            query = query.filter(User.kyc_status == "approved")
        if category and category.strip():
            term = category.strip().lower()
            query = query.filter(or_(
                User.primary_skill.contains(term, autoescape=True),
                User.skills.any(ProviderSkill.skill_name.contains(term, autoescape=True)),
            ))
        return query.order_by(User.average_rating.desc()).offset(skip).limit(limit).all()

    @staticmethod
    def create_user(db: Session, user: UserCreate, is_admin: bool = False) -> User:
        """Register a user; admins are only created from trusted code, never via the API"""
        existing_user = db.query(User).filter(User.email == user.email).first()
        if existing_user:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="User with the email already exist"
            )
        db_user = User(
            full_name=user.full_name,
            email=user.email,
            mobile=user.mobile,
            password_hash=get_password_hash(user.password),
            is_provider=user.is_provider,
            is_admin=is_admin,
            status="active",
            is_active=True,
            total_reviews=0,
        )
        db.add(db_user)
        db.commit()
        db.refresh(db_user)
        logger.info(f"User created: {db_user.email} (provider={db_user.is_provider}, admin={db_user.is_admin})")
        return db_user

    @staticmethod
    def update_user(db: Session, user_id: UUID, user_update: UserUpdate) -> User:
        db_user = db.query(User).filter(User.id == str(user_id)).first()
        if not db_user:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found"
            )

        for key, value in user_update.model_dump(exclude_unset=True).items():
            if value is not None:
                if key == "password":
                    setattr(db_user, "password_hash", get_password_hash(value))
                else:
                    setattr(db_user, key, value)

        db.commit()
        db.refresh(db_user)
        return db_user

    @staticmethod
    def deactivate_user(db: Session, user_id: UUID) -> User:
        """Soft delete: the account can no longer sign in, its bookings remain"""
        db_user = db.query(User).filter(User.id == str(user_id)).first()
        if not db_user:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found"
            )
        db_user.is_active = False
        db.commit()
        db.refresh(db_user)
        logger.info(f"User deactivated: {db_user.email}")
        return db_user


user_crud = UserCRUD()
