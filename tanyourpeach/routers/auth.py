import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlmodel import Session, select

from tanyourpeach.database import get_session
from tanyourpeach.models.user import User, UserCreate
from tanyourpeach.core.security import create_token_for, get_password_hash, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login")
def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    session: Session = Depends(get_session),
):
    user = session.exec(
        select(User).where(User.email == form_data.username)
    ).first()

    if not user or not verify_password(form_data.password, user.password_hash):
        logger.warning("Failed login for %s", form_data.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    return {
        "access_token": create_token_for(user),
        "token_type": "bearer"
    }


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(user: UserCreate, session: Session = Depends(get_session)):

    existing_user = session.exec(
        select(User).where(User.email == user.email)
    ).first()

    if existing_user:
        raise HTTPException(status_code=400, detail="Email already registered")

    # self-registration never grants admin
    db_user = User(
        name=user.name,
        email=user.email,
        password_hash=get_password_hash(user.password),
        is_admin=False,
    )

    session.add(db_user)
    session.commit()
    session.refresh(db_user)
    logger.info("User %s registered", db_user.id)

    return {
        "access_token": create_token_for(db_user),
        "token_type": "bearer"
    }
