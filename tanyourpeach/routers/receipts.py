import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlmodel import Session, select

from tanyourpeach.core.policy import Action, can_access
from tanyourpeach.core.security import get_current_admin, get_optional_user
from tanyourpeach.database import get_session
from tanyourpeach.models.appointment import Appointment
from tanyourpeach.models.receipt import Receipt, ReceiptCreate, ReceiptUpdate
from tanyourpeach.models.service import Service
from tanyourpeach.models.user import User
from tanyourpeach.services import billing

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/receipts", tags=["receipts"])


def _get_receipt(session: Session, receipt_id: int) -> Receipt:
    receipt = session.get(Receipt, receipt_id)
    if not receipt:
        raise HTTPException(status_code=404, detail="Receipt not found")
    return receipt


@router.get("", response_model=List[Receipt])
def list_receipts(
    session: Session = Depends(get_session),
    current_admin: User = Depends(get_current_admin),
):
    return session.exec(select(Receipt).order_by(Receipt.id)).all()


# =========================
# RECEIPT OF AN APPOINTMENT (admin or owner)
# =========================
@router.get("/appointment/{appointment_id}", response_model=Receipt)
def get_receipt_for_appointment(
    appointment_id: int,
    session: Session = Depends(get_session),
    current_user: Optional[User] = Depends(get_optional_user),
):
    if current_user is None:
        raise HTTPException(status_code=403, detail="Authentication required")

    appt = session.get(Appointment, appointment_id)
    if not appt:
        raise HTTPException(status_code=404, detail="Appointment not found")

    if not can_access(current_user, appt, Action.READ):
        raise HTTPException(status_code=403, detail="Not allowed")

    receipt = billing.find_receipt(session, appointment_id)
    if not receipt:
        raise HTTPException(status_code=404, detail="Receipt not found")
    return receipt


@router.get("/{receipt_id}", response_model=Receipt)
def get_receipt(
    receipt_id: int,
    session: Session = Depends(get_session),
    current_admin: User = Depends(get_current_admin),
):
    return _get_receipt(session, receipt_id)


@router.post("", response_model=Receipt, status_code=status.HTTP_201_CREATED)
def create_receipt(
    payload: ReceiptCreate,
    session: Session = Depends(get_session),
    current_admin: User = Depends(get_current_admin),
):
    appt = session.get(Appointment, payload.appointment_id)
    if not appt:
        raise HTTPException(status_code=400, detail="Appointment not found")

    if billing.find_receipt(session, appt.id):
        raise HTTPException(status_code=400, detail="Appointment already has a receipt")

    total_amount = payload.total_amount
    if total_amount is None:
        total_amount = billing.compute_total(appt, session.get(Service, appt.service_id))

    receipt = Receipt(appointment_id=appt.id, total_amount=total_amount)
    billing.apply_receipt_update(receipt, None, payload.payment_method)

    session.add(receipt)
    session.commit()
    session.refresh(receipt)
    logger.info("Receipt %s created manually for appointment %s", receipt.id, appt.id)

    return receipt


@router.put("/{receipt_id}", response_model=Receipt)
def update_receipt(
    receipt_id: int,
    payload: ReceiptUpdate,
    session: Session = Depends(get_session),
    current_admin: User = Depends(get_current_admin),
):
    receipt = _get_receipt(session, receipt_id)

    if payload.payment_method is not None and not payload.payment_method.strip():
        raise HTTPException(status_code=400, detail="payment_method must not be blank")

    billing.apply_receipt_update(receipt, payload.total_amount, payload.payment_method)

    session.add(receipt)
    session.commit()
    session.refresh(receipt)
    return receipt


@router.delete("/{receipt_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_receipt(
    receipt_id: int,
    session: Session = Depends(get_session),
    current_admin: User = Depends(get_current_admin),
):
    receipt = _get_receipt(session, receipt_id)

    session.delete(receipt)
    session.commit()
    logger.info("Receipt %s deleted", receipt_id)

    return Response(status_code=status.HTTP_204_NO_CONTENT)
