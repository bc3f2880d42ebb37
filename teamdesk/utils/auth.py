# teamdesk/utils/auth.py
import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from teamdesk.database import get_db
from teamdesk.errors import AuthenticationError
from teamdesk.models.user import User
from teamdesk.utils.security import decode_token

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def user_from_token(token: Optional[str], db: Session) -> Optional[User]:
    """Resolve a bearer token to a live user, or None"""
    if not token:
        return None
    payload = decode_token(token)
    # Reset tokens carry a purpose and must not open a session
    if payload is None or payload.get("purpose"):
        return None
    email = payload.get("sub")
    if email is None:
        return None
    return db.query(User).filter(User.email == email).first()


def get_current_user(token: Optional[str] = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> User:
    if not token:
        raise AuthenticationError("Not authenticated")

    user = user_from_token(token, db)
    if user is None:
        raise AuthenticationError("Could not validate credentials")

    # Soft-deleted accounts keep their row but lose access
    if user.is_deleted:
        logger.info("Rejected token of deleted user %s", user.id)
        raise AuthenticationError("Account has been deactivated. Please contact administrator.")

    return user
