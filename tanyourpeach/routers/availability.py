from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlmodel import Session, select

from tanyourpeach.core.security import get_current_admin
from tanyourpeach.database import get_session
from tanyourpeach.models.appointment import Appointment
from tanyourpeach.models.availability import Availability, AvailabilityCreate, AvailabilityUpdate
from tanyourpeach.models.user import User

router = APIRouter(prefix="/api/availability", tags=["availability"])


@router.get("", response_model=List[Availability])
def list_availability(
    day: Optional[date] = None,
    available_only: bool = False,
    session: Session = Depends(get_session),
):
    stmt = select(Availability)
    if day is not None:
        stmt = stmt.where(Availability.slot_date == day)
    if available_only:
        stmt = stmt.where(Availability.is_booked == False)  # noqa: E712

    return session.exec(
        stmt.order_by(Availability.slot_date, Availability.start_time)
    ).all()


@router.get("/{availability_id}", response_model=Availability)
def get_availability(availability_id: int, session: Session = Depends(get_session)):
    slot = session.get(Availability, availability_id)
    if not slot:
        raise HTTPException(status_code=404, detail="Availability slot not found")
    return slot


@router.post("", response_model=Availability, status_code=status.HTTP_201_CREATED)
def create_availability(
    slot: AvailabilityCreate,
    session: Session = Depends(get_session),
    current_admin: User = Depends(get_current_admin),
):
    if slot.end_time <= slot.start_time:
        raise HTTPException(status_code=400, detail="end_time must be after start_time")

    db_slot = Availability.model_validate(slot)

    session.add(db_slot)
    session.commit()
    session.refresh(db_slot)
    return db_slot


@router.put("/{availability_id}", response_model=Availability)
def update_availability(
    availability_id: int,
    payload: AvailabilityUpdate,
    session: Session = Depends(get_session),
    current_admin: User = Depends(get_current_admin),
):
    slot = session.get(Availability, availability_id)
    if not slot:
        raise HTTPException(status_code=404, detail="Availability slot not found")

    start_time = payload.start_time or slot.start_time
    end_time = payload.end_time or slot.end_time
    if end_time <= start_time:
        raise HTTPException(status_code=400, detail="end_time must be after start_time")

    slot.sqlmodel_update(payload.model_dump(exclude_unset=True, exclude_none=True))

    session.add(slot)
    session.commit()
    session.refresh(slot)
    return slot


@router.delete("/{availability_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_availability(
    availability_id: int,
    session: Session = Depends(get_session),
    current_admin: User = Depends(get_current_admin),
):
    slot = session.get(Availability, availability_id)
    if not slot:
        raise HTTPException(status_code=404, detail="Availability slot not found")

    if slot.is_booked:
        raise HTTPException(status_code=400, detail="Availability slot is booked")

    # cancelled appointments still point at their slot
    referenced = session.exec(
        select(Appointment).where(Appointment.availability_id == availability_id)
    ).first()
    if referenced:
        raise HTTPException(status_code=400, detail="Availability slot is referenced by an appointment")

    session.delete(slot)
    session.commit()

    return Response(status_code=status.HTTP_204_NO_CONTENT)
