from typing import Optional
from datetime import datetime
from sqlmodel import SQLModel, Field

from tanyourpeach.models.timestamps import UTCDateTime, utc_now


class AppointmentStatusHistory(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    appointment_id: int = Field(foreign_key="appointment.id", index=True)

    status: str
    changed_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime, index=True)
    changed_by_user_id: Optional[int] = Field(default=None, foreign_key="user.id")
