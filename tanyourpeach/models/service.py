from typing import Optional
from sqlmodel import SQLModel, Field


class ServiceBase(SQLModel):
    name: str
    description: Optional[str] = None
    base_price: float = Field(ge=0)
    duration_minutes: int = Field(gt=0)
    is_active: bool = True


class Service(ServiceBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)


class ServiceCreate(ServiceBase):
    pass


class ServiceUpdate(SQLModel):
    name: Optional[str] = None
    description: Optional[str] = None
    base_price: Optional[float] = Field(default=None, ge=0)
    duration_minutes: Optional[int] = Field(default=None, gt=0)
    is_active: Optional[bool] = None
