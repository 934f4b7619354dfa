from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlmodel import Session, select

from tanyourpeach.core.security import get_current_admin
from tanyourpeach.database import get_session
from tanyourpeach.models.inventory import (
    InventoryItem,
    ServiceInventoryUsage,
    ServiceInventoryUsageCreate,
    ServiceInventoryUsageUpdate,
)
from tanyourpeach.models.service import Service
from tanyourpeach.models.user import User

router = APIRouter(prefix="/api/service-inventory-usage", tags=["service-inventory-usage"])


def _get_usage(session: Session, service_id: int, item_id: int) -> ServiceInventoryUsage:
    usage = session.get(ServiceInventoryUsage, (service_id, item_id))
    if not usage:
        raise HTTPException(status_code=404, detail="Usage row not found")
    return usage


@router.get("", response_model=List[ServiceInventoryUsage])
def list_usage(
    service_id: Optional[int] = None,
    session: Session = Depends(get_session),
    current_admin: User = Depends(get_current_admin),
):
    stmt = select(ServiceInventoryUsage)
    if service_id is not None:
        stmt = stmt.where(ServiceInventoryUsage.service_id == service_id)
    return session.exec(
        stmt.order_by(ServiceInventoryUsage.service_id, ServiceInventoryUsage.item_id)
    ).all()


@router.get("/{service_id}/{item_id}", response_model=ServiceInventoryUsage)
def get_usage(
    service_id: int,
    item_id: int,
    session: Session = Depends(get_session),
    current_admin: User = Depends(get_current_admin),
):
    return _get_usage(session, service_id, item_id)


@router.post("", response_model=ServiceInventoryUsage, status_code=status.HTTP_201_CREATED)
def create_usage(
    payload: ServiceInventoryUsageCreate,
    session: Session = Depends(get_session),
    current_admin: User = Depends(get_current_admin),
):
    if not session.get(Service, payload.service_id):
        raise HTTPException(status_code=400, detail="Service not found")
    if not session.get(InventoryItem, payload.item_id):
        raise HTTPException(status_code=400, detail="Inventory item not found")

    if session.get(ServiceInventoryUsage, (payload.service_id, payload.item_id)):
        raise HTTPException(status_code=400, detail="Usage row already exists")

    usage = ServiceInventoryUsage.model_validate(payload)

    session.add(usage)
    session.commit()
    session.refresh(usage)
    return usage


@router.put("/{service_id}/{item_id}", response_model=ServiceInventoryUsage)
def update_usage(
    service_id: int,
    item_id: int,
    payload: ServiceInventoryUsageUpdate,
    session: Session = Depends(get_session),
    current_admin: User = Depends(get_current_admin),
):
    usage = _get_usage(session, service_id, item_id)
    usage.quantity_used = payload.quantity_used

    session.add(usage)
    session.commit()
    session.refresh(usage)
    return usage


@router.delete("/{service_id}/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_usage(
    service_id: int,
    item_id: int,
    session: Session = Depends(get_session),
    current_admin: User = Depends(get_current_admin),
):
    usage = _get_usage(session, service_id, item_id)

    session.delete(usage)
    session.commit()

    return Response(status_code=status.HTTP_204_NO_CONTENT)
