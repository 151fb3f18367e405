from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import field_validator
from sqlmodel import SQLModel

from app.models import Role


class UserCreate(SQLModel):
    email: str
    username: str
    full_name: str
    password: str
    role: Role = Role.freelancer
    phone: Optional[str] = None
    country_code: str = "+966"
    company_name: Optional[str] = None

    @field_validator("password")
    @classmethod
    def validate_password_length(cls, value: str) -> str:
        if len(value) < 8:
            raise ValueError("Password must contain at least 8 characters")
        return value

    @field_validator("role")
    @classmethod
    def validate_public_role(cls, value: Role) -> Role:
        if value == Role.admin:
            raise ValueError("Admin accounts cannot be self-registered")
        return value


class UserRead(SQLModel):
    id: int
    email: str
    username: str
    full_name: str
    phone: Optional[str] = None
    country_code: str
    company_name: Optional[str] = None
    role: Role
    is_active: bool
    created_at: datetime
    updated_at: datetime


class UserPasswordUpdate(SQLModel):
    current_password: str
    new_password: str

    @field_validator("new_password")
    @classmethod
    def validate_new_password_length(cls, value: str) -> str:
        if len(value) < 8:
            raise ValueError("Password must contain at least 8 characters")
        return value
