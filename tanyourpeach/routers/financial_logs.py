from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, Response, status
from sqlmodel import Session

from tanyourpeach.core.errors import unwrap
from tanyourpeach.core.security import get_current_admin
from tanyourpeach.database import get_session
from tanyourpeach.models.financial_log import FinancialLog, FinancialLogCreate, FinancialLogType
from tanyourpeach.models.user import User
from tanyourpeach.services import billing

router = APIRouter(prefix="/api/financial-logs", tags=["financial-logs"])


@router.get("", response_model=List[FinancialLog])
def list_logs(
    type: Optional[FinancialLogType] = None,
    source: Optional[str] = None,
    session: Session = Depends(get_session),
    current_admin: User = Depends(get_current_admin),
):
    return billing.list_logs(session, type=type, source=source)


# =========================
# SUMMARY
# GET /api/financial-logs/summary?start=2026-01-01&end=2026-01-31 (end inclusive)
# =========================
@router.get("/summary")
def summary(
    start: Optional[date] = None,
    end: Optional[date] = None,
    session: Session = Depends(get_session),
    current_admin: User = Depends(get_current_admin),
):
    start_dt = datetime.combine(start, time(0, 0), tzinfo=timezone.utc) if start else None
    end_dt = datetime.combine(end, time(0, 0), tzinfo=timezone.utc) + timedelta(days=1) if end else None
    return billing.summarize_logs(session, start_dt, end_dt)


@router.get("/{log_id}", response_model=FinancialLog)
def get_log(
    log_id: int,
    session: Session = Depends(get_session),
    current_admin: User = Depends(get_current_admin),
):
    return unwrap(billing.get_log(session, log_id))


@router.post("", response_model=FinancialLog, status_code=status.HTTP_201_CREATED)
def create_log(
    payload: FinancialLogCreate,
    session: Session = Depends(get_session),
    current_admin: User = Depends(get_current_admin),
):
    return unwrap(billing.create_log(session, payload))


@router.put("/{log_id}", response_model=FinancialLog)
def update_log(
    log_id: int,
    payload: FinancialLogCreate,
    session: Session = Depends(get_session),
    current_admin: User = Depends(get_current_admin),
):
    return unwrap(billing.update_log(session, log_id, payload))


@router.delete("/{log_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_log(
    log_id: int,
    session: Session = Depends(get_session),
    current_admin: User = Depends(get_current_admin),
):
    unwrap(billing.delete_log(session, log_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
