from enum import Enum
from typing import Optional
from datetime import datetime
from sqlmodel import SQLModel, Field

from tanyourpeach.models.timestamps import UTCDateTime, utc_now


class FinancialLogType(str, Enum):
    revenue = "revenue"
    expense = "expense"


class FinancialLogBase(SQLModel):
    source: Optional[str] = None  # appointment | inventory | manual
    reference_id: Optional[int] = None
    description: Optional[str] = None


class FinancialLog(FinancialLogBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    type: FinancialLogType = Field(index=True)
    amount: float

    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime, index=True)


class FinancialLogCreate(FinancialLogBase):
    # checked by the billing service so errors name the field
    type: Optional[FinancialLogType] = None
    amount: Optional[float] = None
