"""API schemas for account endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from ..store.models import User


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)
    first_name: str = Field(alias="firstName", min_length=1)
    last_name: str = Field(alias="lastName", min_length=1)
    phone: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class UserSummary(BaseModel):
    id: int
    email: str
    first_name: str = Field(alias="firstName")
    last_name: str = Field(alias="lastName")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_user(cls, user: User) -> "UserSummary":
        return cls(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
        )


class AuthResponse(BaseModel):
    message: str
    user: UserSummary
    token: str


class UserProfile(BaseModel):
    id: int
    email: str
    first_name: str = Field(alias="firstName")
    last_name: str = Field(alias="lastName")
    phone: Optional[str] = None
    created_at: datetime = Field(alias="createdAt")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_user(cls, user: User) -> "UserProfile":
        return cls(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            phone=user.phone,
            created_at=user.created_at,
        )


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(default=None, alias="firstName", min_length=1)
    last_name: Optional[str] = Field(default=None, alias="lastName", min_length=1)
    phone: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)
