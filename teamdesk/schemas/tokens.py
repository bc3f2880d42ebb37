# teamdesk/schemas/tokens.py
from pydantic import BaseModel, EmailStr
from typing import Optional
from teamdesk.schemas.user import UserOut


class Token(BaseModel):
    access_token: str
    token_type: str
    user: UserOut

    model_config = {
        "from_attributes": True
    }


class TokenVerification(BaseModel):
    valid: bool
    user: Optional[UserOut] = None


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ForgotPasswordResponse(BaseModel):
    message: str
    # Only populated outside production
    reset_token: Optional[str] = None


class CompleteResetRequest(BaseModel):
    token: str
    new_password: str


class ResetPasswordRequest(BaseModel):
    current_password: str
    new_password: str
