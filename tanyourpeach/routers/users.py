import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlmodel import Session, select

from tanyourpeach.core.policy import Action, can_access
from tanyourpeach.core.security import (
    get_current_admin,
    get_current_user,
    get_optional_user,
    get_password_hash,
)
from tanyourpeach.database import get_session
from tanyourpeach.models.appointment import Appointment
from tanyourpeach.models.status_history import AppointmentStatusHistory
from tanyourpeach.models.user import User, UserCreate, UserRead, UserUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])


def _email_taken(session: Session, email: str, exclude_id: Optional[int] = None) -> bool:
    stmt = select(User).where(User.email == email)
    if exclude_id is not None:
        stmt = stmt.where(User.id != exclude_id)
    return session.exec(stmt).first() is not None


def _get_accessible_user(session: Session, user_id: int, current_user: Optional[User], action: Action) -> User:
    if current_user is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Authentication required")

    user = session.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    if not can_access(current_user, user, action):
        raise HTTPException(status_code=403, detail="Not allowed")

    return user


@router.get("", response_model=List[UserRead])
def list_users(
    session: Session = Depends(get_session),
    current_admin: User = Depends(get_current_admin),
):
    return session.exec(select(User).order_by(User.id)).all()


@router.get("/me", response_model=UserRead)
def read_me(current_user: User = Depends(get_current_user)):
    return current_user


@router.post("", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def create_user(
    user: UserCreate,
    session: Session = Depends(get_session),
    current_user: Optional[User] = Depends(get_optional_user),
):

    if _email_taken(session, user.email):
        raise HTTPException(status_code=400, detail="Email already registered")

    # only admins hand out admin accounts
    is_admin = user.is_admin and can_access(current_user, None, Action.MANAGE)

    db_user = User(
        name=user.name,
        email=user.email,
        password_hash=get_password_hash(user.password),
        is_admin=is_admin,
    )

    session.add(db_user)
    session.commit()
    session.refresh(db_user)
    logger.info("User %s created (admin=%s)", db_user.id, db_user.is_admin)

    return db_user


@router.get("/{user_id}", response_model=UserRead)
def get_user(
    user_id: int,
    session: Session = Depends(get_session),
    current_user: Optional[User] = Depends(get_optional_user),
):
    return _get_accessible_user(session, user_id, current_user, Action.READ)


@router.put("/{user_id}", response_model=UserRead)
def update_user(
    user_id: int,
    payload: UserUpdate,
    session: Session = Depends(get_session),
    current_user: Optional[User] = Depends(get_optional_user),
):
    user = _get_accessible_user(session, user_id, current_user, Action.UPDATE)

    if payload.is_admin is not None and payload.is_admin != user.is_admin and not current_user.is_admin:
        raise HTTPException(status_code=403, detail="Only admins can change admin rights")

    if payload.email is not None and payload.email != user.email:
        if _email_taken(session, payload.email, exclude_id=user.id):
            raise HTTPException(status_code=400, detail="Email already registered")
        user.email = payload.email

    if payload.name is not None:
        if not payload.name.strip():
            raise HTTPException(status_code=400, detail="name must not be blank")
        user.name = payload.name

    if payload.password:
        user.password_hash = get_password_hash(payload.password)

    if payload.is_admin is not None:
        user.is_admin = payload.is_admin

    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: int,
    session: Session = Depends(get_session),
    current_admin: User = Depends(get_current_admin),
):
    user = session.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    # appointments and history outlive the account
    for appt in session.exec(select(Appointment).where(Appointment.user_id == user_id)).all():
        appt.user_id = None
        session.add(appt)

    for entry in session.exec(
        select(AppointmentStatusHistory).where(AppointmentStatusHistory.changed_by_user_id == user_id)
    ).all():
        entry.changed_by_user_id = None
        session.add(entry)

    session.flush()
    session.delete(user)
    session.commit()
    logger.info("User %s deleted by admin %s", user_id, current_admin.id)

    return Response(status_code=status.HTTP_204_NO_CONTENT)
