from jose import jwt
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import uuid4
from passlib.context import CryptContext
from fastapi import HTTPException, Depends, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from handyhive.config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES, REFRESH_TOKEN_EXPIRE_DAYS
from handyhive.models.user_model import User
from handyhive.database import get_db
from handyhive.security.actor import Actor

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/token")


def verify_password(plain_password, hashed_password):
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password):
    return pwd_context.hash(password)


def authenticate_user(db: Session, email: str, password: str):
    user = db.query(User).filter(User.email == email, User.is_active == True).first()
    if not user or not verify_password(password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def _create_token(data: dict, expire: datetime, token_type: str) -> str:
    to_encode = data.copy()
    to_encode.update({
        "exp": expire,
        "jti": str(uuid4()),  # Unique identifier for this token
        "iat": datetime.now(timezone.utc),
        "type": token_type,
    })
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    return _create_token(data, expire, "access"), expire


def create_refresh_token(data: dict, expires_delta: Optional[timedelta] = None):
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(days=REFRESH_TOKEN_EXPIRE_DAYS))
    return _create_token(data, expire, "refresh"), expire


def _user_from_token(token: str, db: Session, expected_type: str, error_detail: str) -> User:
    credentials_exception = HTTPException(
        status_code=401,
        detail=error_detail,
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        user_id: str = payload.get("sub")
        jti: str = payload.get("jti")
        token_type: str = payload.get("type")

        if user_id is None or jti is None or token_type != expected_type:
            raise credentials_exception

        # Check if token is blacklisted
        from handyhive.utils.token_blacklist import token_blacklist_service
        if token_blacklist_service.is_token_blacklisted(db, jti):
            raise HTTPException(
                status_code=401,
                detail="Token has been revoked",
                headers={"WWW-Authenticate": "Bearer"},
            )

    except jwt.JWTError:
        raise credentials_exception

    user = db.query(User).filter(User.id == user_id, User.is_active == True).first()
    if user is None:
        raise credentials_exception
    return user


def verify_refresh_token(token: str, db: Session) -> User:
    """Verify refresh token and return user"""
    return _user_from_token(token, db, "refresh", "Invalid refresh token")


def user_from_access_token(token: str, db: Session) -> User:
    """Resolve an access token outside the dependency system (websockets)"""
    return _user_from_token(token, db, "access", "Could not validate credentials")


def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)):
    return user_from_access_token(token, db)


def get_current_active_user(current_user: User = Depends(get_current_user)):
    """Get current user and ensure they are active (not logged out)"""
    if current_user.status != "active":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User is currently logged out"
        )
    return current_user


def get_current_provider_user(current_user: User = Depends(get_current_active_user)):
    """Get current user and ensure they are a service provider"""
    if not current_user.is_provider:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Provider access required"
        )
    return current_user


def get_current_admin_user(current_user: User = Depends(get_current_active_user)):
    """Get current user and ensure they are admin"""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return current_user


def get_current_actor(current_user: User = Depends(get_current_active_user)) -> Actor:
    return Actor.from_user(current_user)
