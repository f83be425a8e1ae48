"""
User and trainer schemas
"""
from datetime import date, datetime
from typing import Optional, Literal

from pydantic import Field

from gymdesk.schemas.common import CamelModel

UserRole = Literal["member", "trainer", "admin"]


class UserResponse(CamelModel):
    id: int
    external_id: Optional[str] = None
    role: UserRole
    first_name: str
    last_name: str
    full_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    join_date: date
    notes: Optional[str] = None
    is_active: bool
    created_at: datetime


class UserCreate(CamelModel):
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(default="", max_length=100)
    role: UserRole = "member"
    email: Optional[str] = Field(default=None, max_length=200)
    phone: Optional[str] = Field(default=None, max_length=32)
    date_of_birth: Optional[date] = None
    gender: Optional[str] = Field(default=None, max_length=20)
    join_date: Optional[date] = None
    notes: Optional[str] = None


class UserUpdate(CamelModel):
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    role: Optional[UserRole] = None
    email: Optional[str] = Field(default=None, max_length=200)
    phone: Optional[str] = Field(default=None, max_length=32)
    date_of_birth: Optional[date] = None
    gender: Optional[str] = Field(default=None, max_length=20)
    join_date: Optional[date] = None
    notes: Optional[str] = None
    is_active: Optional[bool] = None


class TrainerResponse(CamelModel):
    id: int
    name: str
    is_active: bool
    created_at: datetime


class TrainerCreate(CamelModel):
    name: str = Field(min_length=1, max_length=150)
