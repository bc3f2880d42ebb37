# teamdesk/routers/auth.py
import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from teamdesk.config import settings
from teamdesk.database import get_db
from teamdesk.errors import AuthenticationError, ConflictError, ValidationError
from teamdesk.models.user import Role, User
from teamdesk.schemas.tokens import (
    CompleteResetRequest,
    ForgotPasswordRequest,
    ForgotPasswordResponse,
    ResetPasswordRequest,
    Token,
    TokenVerification,
)
from teamdesk.schemas.user import UserLogin, UserOut, UserRegister
from teamdesk.utils.auth import get_current_user, oauth2_scheme, user_from_token
from teamdesk.utils.security import (
    RESET_PURPOSE,
    create_access_token,
    create_reset_token,
    decode_token,
    hash_password,
    verify_password,
)

logger = logging.getLogger(__name__)

router = APIRouter()

RESET_MESSAGE = "If the email exists, a reset link will be sent"


def issue_token(user: User) -> dict:
    token = create_access_token(data={"sub": user.email, "user_id": user.id})
    return {
        "access_token": token,
        "token_type": "bearer",
        "user": UserOut.model_validate(user),
    }


@router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
def register(user: UserRegister, db: Session = Depends(get_db)):
    if user.confirm_password is not None and user.confirm_password != user.password:
        raise ValidationError("Passwords do not match")
    if not user.name.strip():
        raise ValidationError("Name is required")

    email = user.email.lower()
    existing_user = db.query(User).filter(User.email == email).first()
    if existing_user:
        raise ConflictError("Email already registered")

    new_user = User(
        name=user.name.strip(),
        email=email,
        phone=user.phone,
        hashed_password=hash_password(user.password),
        role=Role.USER,
    )
    db.add(new_user)
    db.commit()
    db.refresh(new_user)

    logger.info("Registered user %s", new_user.id)
    return issue_token(new_user)


@router.post("/login", response_model=Token)
def login(user: UserLogin, db: Session = Depends(get_db)):
    db_user = db.query(User).filter(User.email == user.email.lower()).first()
    if not db_user or db_user.is_deleted or not verify_password(user.password, db_user.hashed_password):
        logger.info("Failed login for %s", user.email)
        raise AuthenticationError("Invalid credentials")

    return issue_token(db_user)


@router.get("/verify", response_model=TokenVerification)
def verify(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)):
    """Report whether the bearer token is usable; never fails"""
    user = user_from_token(token, db)
    if user is None or user.is_deleted:
        return {"valid": False}
    return {"valid": True, "user": UserOut.model_validate(user)}


@router.post("/reset-password")
def reset_password(
    data: ResetPasswordRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if not verify_password(data.current_password, current_user.hashed_password):
        raise ValidationError("Current password is incorrect")

    current_user.hashed_password = hash_password(data.new_password)
    db.commit()
    return {"message": "Password updated successfully"}


@router.post("/forgot-password", response_model=ForgotPasswordResponse)
def forgot_password(data: ForgotPasswordRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(
        User.email == data.email.lower(),
        User.is_deleted.is_(False),
    ).first()
    # Same answer whether or not the account exists
    if not user:
        return {"message": RESET_MESSAGE}

    reset_token = create_reset_token(user.id)
    logger.info("Password reset requested for user %s", user.id)

    if settings.is_production():
        return {"message": RESET_MESSAGE}
    return {"message": RESET_MESSAGE, "reset_token": reset_token}


@router.post("/complete-reset")
def complete_reset(data: CompleteResetRequest, db: Session = Depends(get_db)):
    payload = decode_token(data.token)
    if payload is None or payload.get("purpose") != RESET_PURPOSE:
        raise ValidationError("Invalid or expired token")

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise ValidationError("Invalid or expired token")

    user = db.query(User).filter(User.id == user_id).first()
    if not user or user.is_deleted:
        raise ValidationError("Invalid or expired token")

    user.hashed_password = hash_password(data.new_password)
    db.commit()
    logger.info("Password reset completed for user %s", user.id)
    return {"message": "Password has been reset successfully"}
