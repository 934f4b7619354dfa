import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlmodel import Session, select

from tanyourpeach.core.policy import Action, can_access
from tanyourpeach.core.security import get_current_admin, get_optional_user
from tanyourpeach.database import get_session
from tanyourpeach.models.appointment import Appointment
from tanyourpeach.models.inventory import ServiceInventoryUsage
from tanyourpeach.models.service import Service, ServiceCreate, ServiceUpdate
from tanyourpeach.models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/services",
    tags=["services"]
)


@router.get("", response_model=List[Service])
def list_services(
    include_inactive: bool = False,
    session: Session = Depends(get_session),
    current_user: Optional[User] = Depends(get_optional_user),
):
    stmt = select(Service).order_by(Service.id)

    # inactive services are only listed for admins
    if not (include_inactive and can_access(current_user, None, Action.MANAGE)):
        stmt = stmt.where(Service.is_active == True)  # noqa: E712

    return session.exec(stmt).all()


@router.get("/{service_id}", response_model=Service)
def get_service(service_id: int, session: Session = Depends(get_session)):
    service = session.get(Service, service_id)
    if not service:
        raise HTTPException(status_code=404, detail="Service not found")
    return service


@router.post("", response_model=Service, status_code=status.HTTP_201_CREATED)
def create_service(
    service: ServiceCreate,
    session: Session = Depends(get_session),
    current_admin: User = Depends(get_current_admin),
):
    if not service.name.strip():
        raise HTTPException(status_code=400, detail="name must not be blank")

    db_service = Service.model_validate(service)

    session.add(db_service)
    session.commit()
    session.refresh(db_service)
    logger.info("Service %s created: %s", db_service.id, db_service.name)

    return db_service


@router.put("/{service_id}", response_model=Service)
def update_service(
    service_id: int,
    payload: ServiceUpdate,
    session: Session = Depends(get_session),
    current_admin: User = Depends(get_current_admin),
):
    service = session.get(Service, service_id)
    if not service:
        raise HTTPException(status_code=404, detail="Service not found")

    if payload.name is not None and not payload.name.strip():
        raise HTTPException(status_code=400, detail="name must not be blank")

    service.sqlmodel_update(payload.model_dump(exclude_unset=True))

    session.add(service)
    session.commit()
    session.refresh(service)
    return service


@router.delete("/{service_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_service(
    service_id: int,
    session: Session = Depends(get_session),
    current_admin: User = Depends(get_current_admin),
):
    service = session.get(Service, service_id)
    if not service:
        raise HTTPException(status_code=404, detail="Service not found")

    booked = session.exec(
        select(Appointment).where(Appointment.service_id == service_id)
    ).first()
    if booked:
        raise HTTPException(
            status_code=400,
            detail="Service has appointments; deactivate it instead",
        )

    for usage in session.exec(
        select(ServiceInventoryUsage).where(ServiceInventoryUsage.service_id == service_id)
    ).all():
        session.delete(usage)

    session.flush()
    session.delete(service)
    session.commit()
    logger.info("Service %s deleted", service_id)

    return Response(status_code=status.HTTP_204_NO_CONTENT)
