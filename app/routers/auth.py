from __future__ import annotations

from datetime import timedelta

from fastapi import APIRouter, Depends, Form, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy import or_
from sqlmodel import Session, select

from app.core.config import settings
from app.core.security import create_access_token, get_password_hash, verify_password
from app.dependencies import get_db
from app.models import Role, User, Wallet
from app.schemas.auth import Token
from app.schemas.user import UserCreate, UserRead
from app.services.notifications import notify

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def register_user(user_in: UserCreate, db: Session = Depends(get_db)) -> User:
    existing_email = db.exec(select(User).where(User.email == user_in.email)).first()
    if existing_email:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")

    existing_username = db.exec(select(User).where(User.username == user_in.username)).first()
    if existing_username:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username already taken")

    user = User(
        email=user_in.email,
        username=user_in.username,
        full_name=user_in.full_name,
        phone=user_in.phone,
        country_code=user_in.country_code,
        company_name=user_in.company_name,
        hashed_password=get_password_hash(user_in.password),
        role=user_in.role,
        is_active=True,
    )
    db.add(user)
    db.flush()

    if user.role in (Role.freelancer, Role.product_owner):
        db.add(Wallet(user_id=user.id))
    notify(
        db,
        user_id=user.id,
        event_type="welcome",
        title="مرحباً بك في منصة مهامي",
        message="تم إنشاء حسابك بنجاح",
    )
    db.commit()
    db.refresh(user)
    return user


@router.post("/token", response_model=Token)
def login_for_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    remember_me: bool = Form(default=False),
    db: Session = Depends(get_db),
) -> Token:
    user = db.exec(
        select(User).where(
            or_(
                User.email == form_data.username,
                User.phone == form_data.username,
                User.username == form_data.username,
            )
        )
    ).first()

    if not user or not verify_password(form_data.password, user.hashed_password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Incorrect username or password")

    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Inactive user")

    expires_delta = None
    if remember_me:
        expires_delta = timedelta(days=settings.remember_me_access_token_expire_days)

    access_token = create_access_token(user.id, user.role.value, expires_delta=expires_delta)
    return Token(access_token=access_token, token_type="bearer")
