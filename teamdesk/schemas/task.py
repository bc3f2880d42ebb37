# teamdesk/schemas/task.py
from pydantic import BaseModel, field_validator
from datetime import datetime
from typing import Optional, List

from teamdesk.models.task import TaskStatus, TaskPriority
from teamdesk.models.project import ProjectStatus
from .user import UserBasic
from .permissions import PermissionSet


class TaskCreate(BaseModel):
    title: str
    description: Optional[str] = None
    status: TaskStatus = TaskStatus.PENDING
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: datetime
    assigned_to: Optional[int] = None
    team_id: Optional[int] = None
    project_id: Optional[int] = None
    estimated_hours: float = 0
    actual_hours: float = 0
    tags: List[str] = []

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v):
        if not v.strip():
            raise ValueError("Title is required")
        return v.strip()


class TaskUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[datetime] = None
    assigned_to: Optional[int] = None
    project_id: Optional[int] = None
    estimated_hours: Optional[float] = None
    actual_hours: Optional[float] = None
    tags: Optional[List[str]] = None

    @field_validator("title", "status", "priority", "due_date", "estimated_hours", "actual_hours", "tags")
    @classmethod
    def not_null(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v


class ProjectBasic(BaseModel):
    id: int
    name: str
    status: ProjectStatus

    model_config = {
        "from_attributes": True
    }


class TaskOut(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    status: TaskStatus
    priority: TaskPriority
    due_date: datetime
    assigned_to: Optional[int] = None
    team_id: int
    project_id: Optional[int] = None
    estimated_hours: float
    actual_hours: float
    tags: List[str] = []
    created_at: datetime
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    # Related objects
    assignee: Optional[UserBasic] = None
    project: Optional[ProjectBasic] = None
    permissions: Optional[PermissionSet] = None

    model_config = {
        "from_attributes": True
    }
