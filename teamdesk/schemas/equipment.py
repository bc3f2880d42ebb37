from pydantic import BaseModel, field_validator
from typing import Optional
from datetime import datetime

from teamdesk.models.equipment import EquipmentStatus
from .user import UserBasic


class EquipmentCreate(BaseModel):
    name: str
    type: str
    serial_number: str
    purchase_date: datetime
    status: EquipmentStatus = EquipmentStatus.AVAILABLE
    assigned_to: Optional[int] = None
    team_id: Optional[int] = None
    description: Optional[str] = None
    notes: Optional[str] = None


class EquipmentUpdate(BaseModel):
    name: Optional[str] = None
    type: Optional[str] = None
    serial_number: Optional[str] = None
    purchase_date: Optional[datetime] = None
    status: Optional[EquipmentStatus] = None
    assigned_to: Optional[int] = None
    team_id: Optional[int] = None
    return_date: Optional[datetime] = None
    description: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("name", "type", "serial_number", "purchase_date", "status")
    @classmethod
    def not_null(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v


class EquipmentAssign(BaseModel):
    user_id: Optional[int] = None


class EquipmentOut(BaseModel):
    id: int
    name: str
    type: str
    status: EquipmentStatus
    assigned_to: Optional[int] = None
    team_id: Optional[int] = None
    assigned_date: Optional[datetime] = None
    return_date: Optional[datetime] = None
    description: Optional[str] = None
    serial_number: str
    purchase_date: datetime
    notes: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    assignee: Optional[UserBasic] = None

    model_config = {
        "from_attributes": True
    }
