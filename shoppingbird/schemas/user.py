"""
Pydantic schemas for users and authentication.
"""

from pydantic import BaseModel, EmailStr, Field
from typing import Optional


class UserBase(BaseModel):
    """Base schema for User with common fields."""
    username: str = Field(..., min_length=3, max_length=100, description="Login name (unique)")
    email: EmailStr = Field(..., description="Email address (unique)")
    full_name: str = Field("", max_length=255, description="Display name")
    phone: str = Field("", max_length=50, description="Contact phone")
    is_store_employee: bool = Field(False, description="Store staff may manage other users")


class UserCreate(UserBase):
    """Schema for creating a new user."""
    password: str = Field(..., min_length=6, max_length=255, description="Plain text password (will be hashed)")


class UserUpdate(BaseModel):
    """Schema for updating an existing user (all fields optional)."""
    username: Optional[str] = Field(None, min_length=3, max_length=100)
    email: Optional[EmailStr] = None
    full_name: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    is_store_employee: Optional[bool] = None
    is_active: Optional[bool] = None
    require_password_change: Optional[bool] = None
    password: Optional[str] = Field(None, min_length=6, max_length=255, description="Plain text password (will be hashed)")


class UserOut(BaseModel):
    """Schema for user response (excludes password)."""
    id: int
    username: str
    email: str
    full_name: str
    phone: str
    is_store_employee: bool
    require_password_change: bool
    is_active: bool

    class Config:
        from_attributes = True


class LoginRequest(BaseModel):
    """Login with either email or username."""
    login: str = Field(..., min_length=1, description="Email address or username")
    password: str = Field(..., description="Plain text password")


class LoginResponse(BaseModel):
    """Schema for login response."""
    access_token: str
    token_type: str = "bearer"
    user: UserOut


class PasswordChange(BaseModel):
    """Schema for changing the current user's password."""
    current_password: str
    new_password: str = Field(..., min_length=6, max_length=255)
