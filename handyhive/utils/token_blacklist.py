from datetime import datetime, timezone
from sqlalchemy.orm import Session
from handyhive.models.revoked_token_model import RevokedToken
from jose import jwt
from handyhive.logger import get_logger

logger = get_logger(__name__)


class TokenBlacklistService:
    @staticmethod
    def blacklist_token(db: Session, token: str, expires_at: datetime) -> bool:
        """Revoke a token until it expires; returns False if it could not be recorded"""
        try:
            claims = jwt.get_unverified_claims(token)
            jti = claims.get("jti")
            if not jti:
                logger.warning("Token without JTI cannot be blacklisted")
                return False

            if db.query(RevokedToken).filter(RevokedToken.jti == jti).first():
                logger.info(f"Token {jti} already revoked")
                return True

            db.add(RevokedToken(
                jti=jti,
                user_id=claims.get("sub"),
                token_type=claims.get("type", "access"),
                expires_at=expires_at,
            ))
            db.commit()
            logger.info(f"{claims.get('type', 'access').title()} token {jti} revoked for user {claims.get('sub')}")
            return True

        except Exception as e:
            logger.error(f"Error revoking token: {str(e)}")
            db.rollback()
            return False

    @staticmethod
    def is_token_blacklisted(db: Session, jti: str) -> bool:
        return db.query(RevokedToken).filter(
            RevokedToken.jti == jti,
            RevokedToken.expires_at > datetime.now(timezone.utc),
        ).first() is not None

    @staticmethod
    def purge_expired(db: Session) -> int:
        """Drop revocations for tokens that have expired on their own"""
        removed = db.query(RevokedToken).filter(
            RevokedToken.expires_at <= datetime.now(timezone.utc)
        ).delete(synchronize_session=False)
        db.commit()
        if removed:
            logger.info(f"Purged {removed} expired token revocations")
        return removed


token_blacklist_service = TokenBlacklistService()
