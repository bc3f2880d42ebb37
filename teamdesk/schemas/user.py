from pydantic import BaseModel, EmailStr, field_validator
from typing import Optional, List
from datetime import datetime

from teamdesk.models.user import Role


class UserCreate(BaseModel):
    name: str
    email: EmailStr
    phone: Optional[str] = None
    password: str
    role: Role = Role.USER
    team_id: Optional[int] = None
    can_manage_tasks: bool = False

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v):
        if not v.strip():
            raise ValueError("Name is required")
        return v.strip()


class UserRegister(BaseModel):
    name: str
    email: EmailStr
    password: str
    confirm_password: Optional[str] = None
    phone: Optional[str] = None


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserBasic(BaseModel):
    id: int
    name: str
    email: str
    role: Role

    model_config = {
        "from_attributes": True
    }


class UserOut(BaseModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None
    role: Role
    team_id: Optional[int] = None
    can_manage_tasks: bool
    is_deleted: bool
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True
    }


class UserAdminOut(UserOut):
    status: str


class UserUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    password: Optional[str] = None
    role: Optional[Role] = None
    team_id: Optional[int] = None
    can_manage_tasks: Optional[bool] = None

    model_config = {
        "from_attributes": True
    }

    @field_validator("name", "email", "role", "can_manage_tasks")
    @classmethod
    def not_null(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v


class PasswordChange(BaseModel):
    current_password: str
    new_password: str


class BulkUserIds(BaseModel):
    user_ids: Optional[List[int]] = None


class BulkRestoreResult(BaseModel):
    message: str
    requested: int
    restored_count: int
    skipped_ids: List[int]


class BulkDeleteResult(BaseModel):
    message: str
    requested: int
    deleted_count: int
    skipped_ids: List[int]


class SoftDeleteResult(BaseModel):
    message: str
    cleared_tasks: int
    cleared_equipment: int
