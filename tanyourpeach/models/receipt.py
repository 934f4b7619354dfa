from typing import Optional
from datetime import datetime
from sqlmodel import SQLModel, Field

from tanyourpeach.models.timestamps import UTCDateTime, utc_now

UNPAID = "Unpaid"


class Receipt(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    # nulled when the appointment is deleted; the billing record stays
    appointment_id: Optional[int] = Field(
        default=None, foreign_key="appointment.id", unique=True, index=True
    )

    total_amount: float
    payment_method: str = UNPAID

    issued_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
    paid_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)


class ReceiptCreate(SQLModel):
    appointment_id: int
    # computed from the appointment when omitted
    total_amount: Optional[float] = Field(default=None, ge=0)
    payment_method: str = UNPAID


class ReceiptUpdate(SQLModel):
    total_amount: Optional[float] = Field(default=None, ge=0)
    payment_method: Optional[str] = None
