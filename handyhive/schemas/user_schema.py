from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal
from uuid import UUID


class UserBase(BaseModel):
    email: EmailStr
    full_name: str = Field(..., min_length=1, max_length=120)
    mobile: Optional[str] = Field(None, max_length=20)


class UserCreate(UserBase):
    password: str = Field(..., min_length=8)
    is_provider: bool = Field(False, description="Register as a service provider")


class UserOut(UserBase):
    id: UUID
    status: str
    is_active: bool
    is_provider: bool
    is_admin: bool
    primary_skill: Optional[str] = None
    kyc_status: Optional[str] = None
    is_verified: bool = False
    average_rating: Optional[Decimal] = None
    total_reviews: int = 0
    created_at: datetime

    class Config:
        from_attributes = True


class UserUpdate(BaseModel):
    email: Optional[EmailStr] = None
    full_name: Optional[str] = Field(None, min_length=1, max_length=120)
    mobile: Optional[str] = Field(None, max_length=20)
    password: Optional[str] = Field(None, min_length=8)

    class Config:
        from_attributes = True


class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)


class LoginResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str
    user: UserOut


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class RefreshTokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str


class LogoutResponse(BaseModel):
    message: str
