from enum import Enum
from typing import Optional
from datetime import datetime
from sqlmodel import SQLModel, Field

from tanyourpeach.models.timestamps import UTCDateTime, utc_now


class AppointmentStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


class AppointmentBase(SQLModel):
    service_id: int = Field(foreign_key="service.id", index=True)
    availability_id: int = Field(foreign_key="availability.id", index=True)

    client_name: str
    client_email: str = Field(index=True)
    client_address: str

    appointment_date_time: Optional[datetime] = Field(default=None, sa_type=UTCDateTime, index=True)

    travel_fee: Optional[float] = Field(default=None, ge=0)
    total_price: Optional[float] = Field(default=None, ge=0)

    notes: Optional[str] = None


class Appointment(AppointmentBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    status: AppointmentStatus = Field(default=AppointmentStatus.PENDING, index=True)

    # owning account, resolved from the caller or the client email
    user_id: Optional[int] = Field(default=None, foreign_key="user.id", index=True)

    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime, index=True)

    @property
    def is_active(self) -> bool:
        return self.status != AppointmentStatus.CANCELLED


class AppointmentCreate(AppointmentBase):
    pass


class AppointmentUpdate(AppointmentBase):
    # None keeps the persisted status
    status: Optional[AppointmentStatus] = None
