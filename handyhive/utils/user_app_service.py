from datetime import datetime, timezone
from typing import Optional
from jose import jwt
from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from handyhive.models.user_model import User
from handyhive.schemas.user_schema import (
    UserOut,
    UserLogin,
    LoginResponse,
    LogoutResponse,
    RefreshTokenRequest,
    RefreshTokenResponse,
)
from handyhive.security.auth import (
    authenticate_user,
    create_access_token,
    create_refresh_token,
    verify_refresh_token,
)
from handyhive.utils.token_blacklist import token_blacklist_service
from handyhive.logger import get_logger

logger = get_logger(__name__)


def token_expiry(token: str) -> datetime:
    """Read the exp claim without verifying the signature"""
    payload = jwt.get_unverified_claims(token)
    return datetime.fromtimestamp(payload.get("exp"), tz=timezone.utc)


class UserSessionService:
    """Sign-in, sign-out and token rotation for the identity provider."""

    @staticmethod
    def _issue_tokens(user: User):
        access_token, _ = create_access_token(data={"sub": str(user.id)})
        refresh_token, _ = create_refresh_token(data={"sub": str(user.id)})
        return access_token, refresh_token

    @staticmethod
    def login_user(db: Session, user_login: UserLogin) -> LoginResponse:
        user = authenticate_user(db, user_login.email, user_login.password)

        # Logging in again re-activates a session that was signed out
        if user.status != "active":
            user.status = "active"
            db.commit()
            db.refresh(user)
            logger.info(f"User session reactivated for: {user_login.email}")

        access_token, refresh_token = UserSessionService._issue_tokens(user)
        logger.info(f"User logged in: {user_login.email}")
        return LoginResponse(
            access_token=access_token,
            refresh_token=refresh_token,
            token_type="bearer",
            user=UserOut.model_validate(user),
        )

    @staticmethod
    def logout_user(
        db: Session,
        user: User,
        access_token: str,
        refresh_token: Optional[str] = None,
    ) -> LogoutResponse:
        """Mark the user signed out and revoke the presented tokens"""
        try:
            user.status = "inactive"
            db.commit()
            db.refresh(user)

            token_blacklist_service.blacklist_token(db, access_token, token_expiry(access_token))
            if refresh_token:
                token_blacklist_service.blacklist_token(db, refresh_token, token_expiry(refresh_token))
            token_blacklist_service.purge_expired(db)

            logger.info(f"User logged out: {user.email}")
            return LogoutResponse(message="Successfully logged out")

        except Exception as e:
            logger.error(f"Error during logout for user {user.email}: {str(e)}")
            db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Error occurred during logout",
            )

    @staticmethod
    def refresh_access_token(db: Session, refresh_request: RefreshTokenRequest) -> RefreshTokenResponse:
        """Rotate a valid refresh token into a fresh token pair"""
        try:
            user = verify_refresh_token(refresh_request.refresh_token, db)

            # The old refresh token is single use
            token_blacklist_service.blacklist_token(
                db, refresh_request.refresh_token, token_expiry(refresh_request.refresh_token)
            )
            access_token, refresh_token = UserSessionService._issue_tokens(user)

            logger.info(f"Tokens refreshed for user: {user.email}")
            return RefreshTokenResponse(
                access_token=access_token,
                refresh_token=refresh_token,
                token_type="bearer",
            )

        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error refreshing token: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Error occurred while refreshing token",
            )


user_app_service = UserSessionService()
