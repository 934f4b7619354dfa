from typing import Optional
from datetime import datetime
from sqlmodel import SQLModel, Field

from tanyourpeach.models.timestamps import UTCDateTime, utc_now


class UserBase(SQLModel):
    name: str
    email: str = Field(index=True, unique=True)


class User(UserBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    password_hash: str
    is_admin: bool = False

    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)


class UserCreate(UserBase):
    password: str
    is_admin: bool = False


class UserUpdate(SQLModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    is_admin: Optional[bool] = None


class UserRead(UserBase):
    id: int
    is_admin: bool
