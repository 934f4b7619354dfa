from typing import Optional
from datetime import date, time
from sqlmodel import SQLModel, Field


class AvailabilityBase(SQLModel):
    slot_date: date = Field(index=True)
    start_time: time
    end_time: time


class Availability(AvailabilityBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    # true while an active (non-cancelled) appointment holds the slot
    is_booked: bool = Field(default=False, index=True)


class AvailabilityCreate(AvailabilityBase):
    pass


class AvailabilityUpdate(SQLModel):
    slot_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
