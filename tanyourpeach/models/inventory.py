from typing import Optional
from datetime import datetime
from sqlalchemy import CheckConstraint
from sqlmodel import SQLModel, Field

from tanyourpeach.models.timestamps import UTCDateTime, utc_now


class InventoryItemBase(SQLModel):
    item_name: str = Field(index=True)
    quantity: int = Field(default=0, ge=0)
    unit_cost: float = Field(default=0, ge=0)


class InventoryItem(InventoryItemBase, table=True):
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_inventoryitem_quantity_non_negative"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    last_updated: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)


class InventoryItemCreate(InventoryItemBase):
    pass


class InventoryItemUpdate(SQLModel):
    item_name: Optional[str] = None
    quantity: Optional[int] = Field(default=None, ge=0)
    unit_cost: Optional[float] = Field(default=None, ge=0)


class ServiceInventoryUsage(SQLModel, table=True):
    __table_args__ = (
        CheckConstraint("quantity_used > 0", name="ck_serviceinventoryusage_quantity_positive"),
    )

    service_id: int = Field(foreign_key="service.id", primary_key=True)
    item_id: int = Field(foreign_key="inventoryitem.id", primary_key=True)

    # consumed per appointment of the service
    quantity_used: int


class ServiceInventoryUsageCreate(SQLModel):
    service_id: int
    item_id: int
    quantity_used: int = Field(gt=0)


class ServiceInventoryUsageUpdate(SQLModel):
    quantity_used: int = Field(gt=0)
