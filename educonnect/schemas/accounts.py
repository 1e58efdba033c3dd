from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from educonnect.authz.resources import Role


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    role: Role
    school_id: int | None
    is_active: bool
    created_at: datetime


class UserCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    role: Role


class UserUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    email: EmailStr | None = None
    password: str | None = Field(default=None, min_length=8, max_length=128)
    is_active: bool | None = None


class SchoolOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    address: str | None
    contact_number: str | None
    created_at: datetime


class SchoolCreate(BaseModel):
    name: str = Field(min_length=1, max_length=150)
    email: EmailStr
    address: str | None = None
    contact_number: str | None = Field(default=None, max_length=30)
    admin_name: str = Field(min_length=1, max_length=100)
    admin_email: EmailStr
    password: str = Field(min_length=8, max_length=128)


class SchoolUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=150)
    address: str | None = None
    contact_number: str | None = Field(default=None, max_length=30)


class RegisterRequest(BaseModel):
    school_name: str = Field(min_length=1, max_length=150)
    school_email: EmailStr
    address: str | None = None
    contact_number: str | None = Field(default=None, max_length=30)
    admin_name: str = Field(min_length=1, max_length=100)
    admin_email: EmailStr
    password: str = Field(min_length=8, max_length=128)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut


class MeResponse(BaseModel):
    user: UserOut
    school: SchoolOut | None
    has_active_subscription: bool
