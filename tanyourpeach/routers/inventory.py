import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlmodel import Session, select

from tanyourpeach.core.security import get_current_admin
from tanyourpeach.database import get_session
from tanyourpeach.models.inventory import (
    InventoryItem,
    InventoryItemCreate,
    InventoryItemUpdate,
    ServiceInventoryUsage,
)
from tanyourpeach.models.timestamps import utc_now
from tanyourpeach.models.user import User
from tanyourpeach.services import inventory_ledger

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/inventory", tags=["inventory"])


@router.get("", response_model=List[InventoryItem])
def list_items(
    session: Session = Depends(get_session),
    current_admin: User = Depends(get_current_admin),
):
    return session.exec(select(InventoryItem).order_by(InventoryItem.id)).all()


@router.get("/low-stock", response_model=List[InventoryItem])
def list_low_stock(
    threshold: int = 5,
    session: Session = Depends(get_session),
    current_admin: User = Depends(get_current_admin),
):
    return inventory_ledger.low_stock(session, threshold)


@router.get("/{item_id}", response_model=InventoryItem)
def get_item(
    item_id: int,
    session: Session = Depends(get_session),
    current_admin: User = Depends(get_current_admin),
):
    item = session.get(InventoryItem, item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Inventory item not found")
    return item


@router.post("", response_model=InventoryItem, status_code=status.HTTP_201_CREATED)
def create_item(
    payload: InventoryItemCreate,
    session: Session = Depends(get_session),
    current_admin: User = Depends(get_current_admin),
):
    if not payload.item_name.strip():
        raise HTTPException(status_code=400, detail="item_name must not be blank")

    # opening stock is booked through restock so it shows up as an expense
    item = InventoryItem(item_name=payload.item_name, quantity=0, unit_cost=payload.unit_cost)
    session.add(item)
    session.flush()

    inventory_ledger.restock(session, item, payload.quantity)

    session.commit()
    session.refresh(item)
    logger.info("Inventory item %s created with %s units", item.id, item.quantity)

    return item


@router.put("/{item_id}", response_model=InventoryItem)
def update_item(
    item_id: int,
    payload: InventoryItemUpdate,
    session: Session = Depends(get_session),
    current_admin: User = Depends(get_current_admin),
):
    item = session.get(InventoryItem, item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Inventory item not found")

    if payload.item_name is not None:
        if not payload.item_name.strip():
            raise HTTPException(status_code=400, detail="item_name must not be blank")
        item.item_name = payload.item_name

    if payload.unit_cost is not None:
        item.unit_cost = payload.unit_cost

    if payload.quantity is not None:
        added = payload.quantity - item.quantity
        if added > 0:
            inventory_ledger.restock(session, item, added)
        else:
            # manual write-down, no money moved
            item.quantity = payload.quantity
            item.last_updated = utc_now()

    session.add(item)
    session.commit()
    session.refresh(item)
    return item


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_item(
    item_id: int,
    session: Session = Depends(get_session),
    current_admin: User = Depends(get_current_admin),
):
    item = session.get(InventoryItem, item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Inventory item not found")

    for usage in session.exec(
        select(ServiceInventoryUsage).where(ServiceInventoryUsage.item_id == item_id)
    ).all():
        session.delete(usage)

    session.flush()
    session.delete(item)
    session.commit()
    logger.info("Inventory item %s deleted", item_id)

    return Response(status_code=status.HTTP_204_NO_CONTENT)
