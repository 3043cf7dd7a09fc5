from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session
from uuid import UUID
from typing import Annotated, List, Optional
from handyhive.services.user_crud import user_crud
from handyhive.schemas.user_schema import UserCreate, UserOut, UserUpdate, UserLogin, LoginResponse, \
    LogoutResponse, RefreshTokenRequest, RefreshTokenResponse
from handyhive.database import get_db
from handyhive.security.auth import oauth2_scheme, get_current_user, get_current_active_user, get_current_admin_user
from handyhive.utils.user_app_service import user_app_service
from handyhive.models.user_model import User
from handyhive.logger import get_logger


user_router = APIRouter()
logger = get_logger(__name__)


# AUTH ENDPOINTS

@user_router.post("/auth/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def register_user(user: UserCreate, db: Session = Depends(get_db)):
    """Register a customer or service provider account"""
    try:
        logger.info(f"Registering {'provider' if user.is_provider else 'customer'}: {user.email}")
        db_user = user_crud.create_user(db, user)
        return UserOut.model_validate(db_user)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error registering user {user.email}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error occurred while registering user"
        )


@user_router.post("/token", response_model=LoginResponse)
async def user_token(
        form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
        db: Session = Depends(get_db),
):
    """OAuth2 password flow, used by the interactive docs"""
    try:
        user_login = UserLogin(email=form_data.username, password=form_data.password)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return user_app_service.login_user(db, user_login)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error issuing token for {form_data.username}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error occurred during token generation"
        )


@user_router.post("/auth/login", response_model=LoginResponse, status_code=status.HTTP_200_OK)
def login_user(user_login: UserLogin, db: Session = Depends(get_db)):
    """Sign in and receive an access and refresh token pair"""
    try:
        logger.info(f"Login attempt for user: {user_login.email}")
        return user_app_service.login_user(db, user_login)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error during login for {user_login.email}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error occurred during login"
        )


@user_router.post("/auth/logout", response_model=LogoutResponse, status_code=status.HTTP_200_OK)
def logout_user(
        refresh_request: Optional[RefreshTokenRequest] = None,
        current_user: User = Depends(get_current_user),
        token: str = Depends(oauth2_scheme),
        db: Session = Depends(get_db)
):
    """Sign out, revoking the access token and the refresh token if one is sent"""
    refresh_token = refresh_request.refresh_token if refresh_request else None
    return user_app_service.logout_user(db, current_user, token, refresh_token)


@user_router.post("/auth/refresh", response_model=RefreshTokenResponse, status_code=status.HTTP_200_OK)
def refresh_access_token(refresh_request: RefreshTokenRequest, db: Session = Depends(get_db)):
    """Exchange a refresh token for a new token pair"""
    logger.info("Refreshing access token")
    return user_app_service.refresh_access_token(db, refresh_request)


# PROFILE ENDPOINTS

@user_router.get("/me", response_model=UserOut, status_code=status.HTTP_200_OK)
def get_current_user_profile(current_user: User = Depends(get_current_active_user)):
    return UserOut.model_validate(current_user)


@user_router.patch("/me", response_model=UserOut, status_code=status.HTTP_200_OK)
def update_current_user_profile(
        user_update: UserUpdate,
        current_user: User = Depends(get_current_active_user),
        db: Session = Depends(get_db)
):
    """Update name, email, mobile or password"""
    try:
        if user_update.email and user_update.email != current_user.email:
            if user_crud.get_user_by_email(db, user_update.email):
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="User with the email already exist"
                )
        logger.info(f"User updating profile: {current_user.email}")
        updated_user = user_crud.update_user(db, current_user.id, user_update)
        return UserOut.model_validate(updated_user)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating profile for {current_user.email}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error occurred while updating profile"
        )


# PUBLIC ENDPOINTS

@user_router.get("/providers", response_model=List[UserOut], status_code=status.HTTP_200_OK)
def list_providers(
        category: Optional[str] = Query(None, max_length=50, description="Only providers offering this skill"),
        skip: int = Query(0, ge=0),
        limit: int = Query(100, ge=1, le=100),
        db: Session = Depends(get_db)
):
    """Bookable providers: active and KYC approved, best rated first"""
    providers = user_crud.get_providers(db, verified_only=True, category=category, skip=skip, limit=limit)
    return [UserOut.model_validate(provider) for provider in providers]


# ADMIN ENDPOINTS

@user_router.get("/admin/users", response_model=List[UserOut], status_code=status.HTTP_200_OK)
def get_all_users(
        skip: int = Query(0, ge=0),
        limit: int = Query(100, ge=1, le=100),
        is_provider: Optional[bool] = Query(None, description="Only providers (true) or only customers (false)"),
        current_user: User = Depends(get_current_admin_user),
        db: Session = Depends(get_db)
):
    """Get all users (admin only)"""
    try:
        logger.info(f"Admin {current_user.email} fetching users list")
        users = user_crud.get_users(db, skip=skip, limit=limit, is_provider=is_provider)
        return [UserOut.model_validate(user) for user in users]

    except Exception as e:
        logger.error(f"Error fetching users: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error occurred while fetching users"
        )


@user_router.get("/admin/users/{user_id}", response_model=UserOut, status_code=status.HTTP_200_OK)
def get_user_by_id(
        user_id: UUID,
        current_user: User = Depends(get_current_admin_user),
        db: Session = Depends(get_db)
):
    """Get user by ID (admin only)"""
    user = user_crud.get_user_id(db, user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    return UserOut.model_validate(user)


@user_router.delete("/admin/users/{user_id}", response_model=UserOut, status_code=status.HTTP_200_OK)
def deactivate_user_by_id(
        user_id: UUID,
        current_user: User = Depends(get_current_admin_user),
        db: Session = Depends(get_db)
):
    """Deactivate an account (admin only); its bookings and reviews remain"""
    if str(user_id) == str(current_user.id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Admins cannot deactivate themselves"
        )
    logger.info(f"Admin {current_user.email} deactivating user {user_id}")
    deactivated_user = user_crud.deactivate_user(db, user_id)
    return UserOut.model_validate(deactivated_user)
