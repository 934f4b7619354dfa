from typing import List, Optional

from fastapi import APIRouter, Depends, Response, status
from sqlmodel import Session

from tanyourpeach.core.errors import unwrap
from tanyourpeach.core.security import get_current_user, get_optional_user
from tanyourpeach.database import get_session
from tanyourpeach.models.appointment import Appointment, AppointmentCreate, AppointmentUpdate
from tanyourpeach.models.status_history import AppointmentStatusHistory
from tanyourpeach.models.user import User
from tanyourpeach.services import appointment_service


router = APIRouter(prefix="/api/appointments", tags=["appointments"])


# =========================
# LIST ALL (ADMIN)
# =========================
@router.get("", response_model=List[Appointment])
def list_appointments(
    session: Session = Depends(get_session),
    current_user: Optional[User] = Depends(get_optional_user),
):
    return unwrap(appointment_service.list_appointments(session, current_user))


# =========================
# CALLER'S OWN APPOINTMENTS
# =========================
@router.get("/my-appointments", response_model=List[Appointment])
def list_my_appointments(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return appointment_service.list_for_user(session, current_user)


@router.get("/{appointment_id}", response_model=Appointment)
def get_appointment(
    appointment_id: int,
    session: Session = Depends(get_session),
    current_user: Optional[User] = Depends(get_optional_user),
):
    return unwrap(appointment_service.get_appointment(session, appointment_id, current_user))


@router.get("/{appointment_id}/history", response_model=List[AppointmentStatusHistory])
def get_appointment_history(
    appointment_id: int,
    session: Session = Depends(get_session),
    current_user: Optional[User] = Depends(get_optional_user),
):
    return unwrap(appointment_service.get_history(session, appointment_id, current_user))


# =========================
# BOOK (anyone; the caller becomes the owner when signed in)
# =========================
@router.post("", response_model=Appointment)
def create_appointment(
    appointment: AppointmentCreate,
    session: Session = Depends(get_session),
    current_user: Optional[User] = Depends(get_optional_user),
):
    return unwrap(appointment_service.create_appointment(session, appointment, current_user))


# =========================
# UPDATE (admin or owner), including status transitions
# =========================
@router.put("/{appointment_id}", response_model=Appointment)
def update_appointment(
    appointment_id: int,
    appointment: AppointmentUpdate,
    session: Session = Depends(get_session),
    current_user: Optional[User] = Depends(get_optional_user),
):
    return unwrap(
        appointment_service.update_appointment(session, appointment_id, appointment, current_user)
    )


@router.delete("/{appointment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_appointment(
    appointment_id: int,
    session: Session = Depends(get_session),
    current_user: Optional[User] = Depends(get_optional_user),
):
    unwrap(appointment_service.delete_appointment(session, appointment_id, current_user))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
