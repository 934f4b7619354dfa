"""Appointment booking and the status transition workflow.

Every operation here is one unit of work: either all of its writes
(appointment, status history, slot flag, inventory, receipt, financial log)
commit together, or the session is rolled back and an error is returned.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlmodel import Session, func, or_, select

from tanyourpeach.core.errors import ErrorKind, Result, ServiceError
from tanyourpeach.core.policy import Action, can_access
from tanyourpeach.models.appointment import (
    Appointment,
    AppointmentBase,
    AppointmentCreate,
    AppointmentStatus,
    AppointmentUpdate,
)
from tanyourpeach.models.availability import Availability
from tanyourpeach.models.financial_log import FinancialLogType
from tanyourpeach.models.receipt import Receipt
from tanyourpeach.models.service import Service
from tanyourpeach.models.status_history import AppointmentStatusHistory
from tanyourpeach.models.timestamps import utc_now
from tanyourpeach.models.user import User
from tanyourpeach.services import billing, inventory_ledger

logger = logging.getLogger(__name__)

REQUIRED_TEXT_FIELDS = ("client_name", "client_email", "client_address")


# =========================
# HELPERS
# =========================

def _validate_client_fields(data: AppointmentBase) -> Optional[ServiceError]:
    for field in REQUIRED_TEXT_FIELDS:
        value = getattr(data, field)
        if value is None or not value.strip():
            return ServiceError(ErrorKind.VALIDATION, f"{field} must not be blank")
    return None


def _slot_holder(session: Session, availability_id: int, exclude_id: Optional[int] = None) -> Optional[Appointment]:
    """Active appointment occupying the slot, if any."""
    stmt = select(Appointment).where(
        Appointment.availability_id == availability_id,
        Appointment.status != AppointmentStatus.CANCELLED,
    )
    if exclude_id is not None:
        stmt = stmt.where(Appointment.id != exclude_id)
    return session.exec(stmt).first()


def _record_status(session: Session, appointment: Appointment, actor: Optional[User]) -> None:
    session.add(
        AppointmentStatusHistory(
            appointment_id=appointment.id,
            status=appointment.status.value,
            changed_at=utc_now(),
            changed_by_user_id=actor.id if actor else None,
        )
    )


def _resolve_owner(session: Session, client_email: str, actor: Optional[User]) -> Optional[User]:
    owner = session.exec(select(User).where(func.lower(User.email) == client_email.lower())).first()
    if owner is None and actor is not None and not actor.is_admin:
        owner = actor
    return owner


def _load(session: Session, appointment_id: int, actor: Optional[User], action: Action) -> Result[Appointment]:
    # anonymous callers are refused before the lookup
    if actor is None:
        return Result.failure(ErrorKind.AUTHORIZATION, "Authentication required")

    appointment = session.get(Appointment, appointment_id)
    if appointment is None:
        return Result.failure(ErrorKind.NOT_FOUND, "Appointment not found")

    if not can_access(actor, appointment, action):
        logger.warning("User %s denied %s on appointment %s", actor.id, action.value, appointment_id)
        return Result.failure(ErrorKind.AUTHORIZATION, "Not allowed to access this appointment")

    return Result.success(appointment)


# =========================
# QUERIES
# =========================

def list_appointments(session: Session, actor: Optional[User]) -> Result[List[Appointment]]:
    if not can_access(actor, None, Action.LIST_ALL):
        return Result.failure(ErrorKind.AUTHORIZATION, "Admin access required")

    return Result.success(
        session.exec(select(Appointment).order_by(Appointment.appointment_date_time, Appointment.id)).all()
    )


def list_for_user(session: Session, user: User) -> List[Appointment]:
    return session.exec(
        select(Appointment)
        .where(
            or_(
                Appointment.user_id == user.id,
                func.lower(Appointment.client_email) == user.email.lower(),
            )
        )
        .order_by(Appointment.appointment_date_time, Appointment.id)
    ).all()


def get_appointment(session: Session, appointment_id: int, actor: Optional[User]) -> Result[Appointment]:
    return _load(session, appointment_id, actor, Action.READ)


def get_history(session: Session, appointment_id: int, actor: Optional[User]) -> Result[List[AppointmentStatusHistory]]:
    loaded = _load(session, appointment_id, actor, Action.READ)
    if not loaded.ok:
        return Result(error=loaded.error)

    return Result.success(
        session.exec(
            select(AppointmentStatusHistory)
            .where(AppointmentStatusHistory.appointment_id == appointment_id)
            .order_by(AppointmentStatusHistory.changed_at, AppointmentStatusHistory.id)
        ).all()
    )


# =========================
# CREATE
# =========================

def create_appointment(session: Session, data: AppointmentCreate, actor: Optional[User] = None) -> Result[Appointment]:
    error = _validate_client_fields(data)
    if error is not None:
        return Result(error=error)

    service = session.get(Service, data.service_id)
    if not service or not service.is_active:
        return Result.failure(ErrorKind.VALIDATION, "Service not found or inactive")

    slot = session.get(Availability, data.availability_id)
    if not slot:
        return Result.failure(ErrorKind.VALIDATION, "Availability slot not found")

    if _slot_holder(session, slot.id) is not None:
        return Result.failure(ErrorKind.VALIDATION, "Availability slot is already booked")

    owner = _resolve_owner(session, data.client_email, actor)

    appointment = Appointment.model_validate(
        data,
        update={
            "status": AppointmentStatus.PENDING,
            "user_id": owner.id if owner else None,
            "appointment_date_time": data.appointment_date_time
            or datetime.combine(slot.slot_date, slot.start_time, tzinfo=timezone.utc),
        },
    )

    slot.is_booked = True
    session.add(slot)
    session.add(appointment)
    session.flush()

    _record_status(session, appointment, actor)

    session.commit()
    session.refresh(appointment)

    logger.info("Appointment %s booked for %s on slot %s", appointment.id, appointment.client_email, slot.id)
    return Result.success(appointment)


# =========================
# UPDATE / STATUS TRANSITIONS
# =========================

def _confirm(session: Session, appointment: Appointment, service: Service) -> Result[Optional[Receipt]]:
    """Side effects of the first confirmation: stock, receipt, revenue entry."""
    if billing.find_receipt(session, appointment.id) is not None:
        logger.info("Appointment %s already has a receipt; confirmation is history only", appointment.id)
        return Result.success(None)

    missing = inventory_ledger.shortages(session, service.id)
    if missing:
        return Result.failure(
            ErrorKind.BUSINESS_RULE,
            "Insufficient inventory: " + ", ".join(s.describe() for s in missing),
        )

    deducted = inventory_ledger.deduct(session, service.id)
    if not deducted.ok:
        return Result(error=deducted.error)

    receipt = billing.issue_receipt(session, appointment, service)
    billing.append_log(
        session,
        type=FinancialLogType.revenue,
        amount=receipt.total_amount,
        source="appointment",
        reference_id=appointment.id,
        description=f"Appointment #{appointment.id} confirmed ({service.name})",
    )
    return Result.success(receipt)


def update_appointment(
    session: Session,
    appointment_id: int,
    data: AppointmentUpdate,
    actor: Optional[User],
) -> Result[Appointment]:
    loaded = _load(session, appointment_id, actor, Action.UPDATE)
    if not loaded.ok:
        return loaded
    appointment = loaded.value

    error = _validate_client_fields(data)
    if error is not None:
        return Result(error=error)

    service = session.get(Service, data.service_id)
    if service is None:
        return Result.failure(ErrorKind.VALIDATION, "Service not found")
    if not service.is_active and service.id != appointment.service_id:
        return Result.failure(ErrorKind.VALIDATION, "Service is inactive")

    new_slot = session.get(Availability, data.availability_id)
    if new_slot is None:
        return Result.failure(ErrorKind.VALIDATION, "Availability slot not found")

    previous_status = appointment.status
    new_status = data.status or previous_status
    status_changed = new_status != previous_status

    was_active = previous_status != AppointmentStatus.CANCELLED
    will_be_active = new_status != AppointmentStatus.CANCELLED
    slot_changed = data.availability_id != appointment.availability_id

    if will_be_active and (slot_changed or not was_active):
        if _slot_holder(session, new_slot.id, exclude_id=appointment.id) is not None:
            return Result.failure(ErrorKind.BUSINESS_RULE, "Availability slot is already booked")

    old_slot = session.get(Availability, appointment.availability_id)

    values = data.model_dump(exclude={"status"})
    if values["appointment_date_time"] is None:
        values["appointment_date_time"] = (
            datetime.combine(new_slot.slot_date, new_slot.start_time, tzinfo=timezone.utc)
            if slot_changed
            else appointment.appointment_date_time
        )
    for field, value in values.items():
        setattr(appointment, field, value)

    if was_active and (slot_changed or not will_be_active) and old_slot is not None:
        old_slot.is_booked = False
        session.add(old_slot)
    if will_be_active and (slot_changed or not was_active):
        new_slot.is_booked = True
        session.add(new_slot)

    if status_changed:
        appointment.status = new_status
        session.add(appointment)
        _record_status(session, appointment, actor)

        if new_status == AppointmentStatus.CONFIRMED:
            confirmed = _confirm(session, appointment, service)
            if not confirmed.ok:
                session.rollback()
                logger.warning("Confirmation of appointment %s rejected: %s", appointment_id, confirmed.error.message)
                return Result(error=confirmed.error)

    session.add(appointment)
    session.commit()
    session.refresh(appointment)

    if status_changed:
        logger.info(
            "Appointment %s moved %s -> %s by user %s",
            appointment.id, previous_status.value, new_status.value, actor.id,
        )
    return Result.success(appointment)


# =========================
# DELETE
# =========================

def delete_appointment(session: Session, appointment_id: int, actor: Optional[User]) -> Result[None]:
    if not can_access(actor, None, Action.DELETE):
        return Result.failure(ErrorKind.AUTHORIZATION, "Admin access required")

    appointment = session.get(Appointment, appointment_id)
    if appointment is None:
        return Result.failure(ErrorKind.NOT_FOUND, "Appointment not found")

    if appointment.is_active:
        slot = session.get(Availability, appointment.availability_id)
        if slot is not None:
            slot.is_booked = False
            session.add(slot)

    for entry in session.exec(
        select(AppointmentStatusHistory).where(AppointmentStatusHistory.appointment_id == appointment_id)
    ).all():
        session.delete(entry)

    receipt = billing.find_receipt(session, appointment_id)
    if receipt is not None:
        receipt.appointment_id = None
        session.add(receipt)

    # history and receipt changes must reach the database before the parent row goes
    session.flush()
    session.delete(appointment)
    session.commit()

    logger.info("Appointment %s deleted by user %s", appointment_id, actor.id)
    return Result.success()
