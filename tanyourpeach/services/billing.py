"""Receipts and financial logs.

Helpers prefixed with ``issue_``/``append_`` only stage rows on the session
so they can join a larger unit of work; the ``create_``/``update_``/
``delete_`` operations commit on their own.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlmodel import Session, select

from tanyourpeach.core.errors import ErrorKind, Result, ServiceError
from tanyourpeach.models.appointment import Appointment
from tanyourpeach.models.financial_log import FinancialLog, FinancialLogCreate, FinancialLogType
from tanyourpeach.models.receipt import UNPAID, Receipt
from tanyourpeach.models.service import Service
from tanyourpeach.models.timestamps import utc_now

logger = logging.getLogger(__name__)


# =========================
# RECEIPTS
# =========================

def compute_total(appointment: Appointment, service: Service) -> float:
    if appointment.total_price is not None:
        return float(appointment.total_price)
    return round(float(service.base_price) + float(appointment.travel_fee or 0), 2)


def find_receipt(session: Session, appointment_id: int) -> Optional[Receipt]:
    return session.exec(
        select(Receipt).where(Receipt.appointment_id == appointment_id)
    ).first()


def issue_receipt(session: Session, appointment: Appointment, service: Service) -> Optional[Receipt]:
    """Stage the receipt for a confirmed appointment; None if it already has one."""
    if find_receipt(session, appointment.id) is not None:
        return None

    receipt = Receipt(
        appointment_id=appointment.id,
        total_amount=compute_total(appointment, service),
        payment_method=UNPAID,
    )
    session.add(receipt)
    logger.info(
        "Receipt staged for appointment %s: %.2f", appointment.id, receipt.total_amount
    )
    return receipt


def apply_receipt_update(receipt: Receipt, total_amount: Optional[float], payment_method: Optional[str]) -> None:
    if total_amount is not None:
        receipt.total_amount = total_amount

    if payment_method is not None:
        if receipt.payment_method == UNPAID and payment_method != UNPAID:
            receipt.paid_at = utc_now()
        elif payment_method == UNPAID:
            receipt.paid_at = None
        receipt.payment_method = payment_method


# =========================
# FINANCIAL LOGS
# =========================

def validate_log(data: FinancialLogCreate) -> Optional[ServiceError]:
    if data.type is None:
        return ServiceError(ErrorKind.VALIDATION, "type is required")
    if data.amount is None:
        return ServiceError(ErrorKind.VALIDATION, "amount is required")
    if data.amount < 0:
        return ServiceError(ErrorKind.VALIDATION, "amount must not be negative")
    return None


def append_log(
    session: Session,
    *,
    type: FinancialLogType,
    amount: float,
    source: Optional[str] = None,
    reference_id: Optional[int] = None,
    description: Optional[str] = None,
) -> FinancialLog:
    entry = FinancialLog(
        type=type,
        amount=amount,
        source=source,
        reference_id=reference_id,
        description=description,
    )
    session.add(entry)
    logger.info("Financial log staged: %s %.2f (%s #%s)", type.value, amount, source, reference_id)
    return entry


def list_logs(
    session: Session,
    type: Optional[FinancialLogType] = None,
    source: Optional[str] = None,
) -> List[FinancialLog]:
    stmt = select(FinancialLog)
    if type is not None:
        stmt = stmt.where(FinancialLog.type == type)
    if source is not None:
        stmt = stmt.where(FinancialLog.source == source)
    return session.exec(stmt.order_by(FinancialLog.created_at, FinancialLog.id)).all()


def get_log(session: Session, log_id: int) -> Result[FinancialLog]:
    entry = session.get(FinancialLog, log_id)
    if entry is None:
        return Result.failure(ErrorKind.NOT_FOUND, "Financial log not found")
    return Result.success(entry)


def create_log(session: Session, data: FinancialLogCreate) -> Result[FinancialLog]:
    error = validate_log(data)
    if error is not None:
        logger.warning("Financial log rejected: %s", error.message)
        return Result(error=error)

    entry = append_log(
        session,
        type=data.type,
        amount=data.amount,
        source=data.source,
        reference_id=data.reference_id,
        description=data.description,
    )
    session.commit()
    session.refresh(entry)
    return Result.success(entry)


def update_log(session: Session, log_id: int, data: FinancialLogCreate) -> Result[FinancialLog]:
    error = validate_log(data)
    if error is not None:
        logger.warning("Financial log %s update rejected: %s", log_id, error.message)
        return Result(error=error)

    entry = session.get(FinancialLog, log_id)
    if entry is None:
        return Result.failure(ErrorKind.NOT_FOUND, "Financial log not found")

    entry.type = data.type
    entry.amount = data.amount
    entry.source = data.source
    entry.reference_id = data.reference_id
    entry.description = data.description

    session.add(entry)
    session.commit()
    session.refresh(entry)
    return Result.success(entry)


def delete_log(session: Session, log_id: int) -> Result[None]:
    entry = session.get(FinancialLog, log_id)
    if entry is None:
        return Result.failure(ErrorKind.NOT_FOUND, "Financial log not found")

    session.delete(entry)
    session.commit()
    logger.info("Financial log %s deleted", log_id)
    return Result.success()


def summarize_logs(
    session: Session,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> Dict:
    stmt = select(FinancialLog)
    if start is not None:
        stmt = stmt.where(FinancialLog.created_at >= start)
    if end is not None:
        stmt = stmt.where(FinancialLog.created_at < end)

    revenue = 0.0
    expense = 0.0
    entries = session.exec(stmt).all()
    for entry in entries:
        if entry.type == FinancialLogType.revenue:
            revenue += float(entry.amount)
        else:
            expense += float(entry.amount)

    return {
        "start": start.isoformat() if start else None,
        "end": end.isoformat() if end else None,
        "count": len(entries),
        "revenue": round(revenue, 2),
        "expense": round(expense, 2),
        "net": round(revenue - expense, 2),
    }
