from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime
from .user import UserBasic


class TeamCreate(BaseModel):
    name: str
    description: Optional[str] = None
    member_ids: List[int] = []
    team_leader_id: Optional[int] = None


class TeamUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None

    model_config = {
        "from_attributes": True
    }


class TeamBasic(BaseModel):
    id: int
    name: str

    model_config = {
        "from_attributes": True
    }


class TeamMemberOut(BaseModel):
    user_id: int
    role: str
    joined_at: datetime
    user: UserBasic

    model_config = {
        "from_attributes": True
    }


class TeamOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    members: List[TeamMemberOut] = []

    model_config = {
        "from_attributes": True
    }


class TeamMemberAdd(BaseModel):
    user_id: int
