from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime

from teamdesk.models.project import ProjectStatus, ProjectPriority
from .user import UserBasic
from .team import TeamBasic
from .task import TaskOut
from .permissions import PermissionSet


class ProjectCreate(BaseModel):
    name: str
    description: str
    team_id: int
    status: ProjectStatus = ProjectStatus.PLANNING
    priority: ProjectPriority = ProjectPriority.MEDIUM
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    deadline: Optional[datetime] = None
    project_manager_id: Optional[int] = None
    tags: List[str] = []


class ProjectUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    team_id: Optional[int] = None
    status: Optional[ProjectStatus] = None
    priority: Optional[ProjectPriority] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    deadline: Optional[datetime] = None
    project_manager_id: Optional[int] = None
    progress: Optional[int] = Field(default=None, ge=0, le=100)
    tags: Optional[List[str]] = None

    model_config = {
        "from_attributes": True
    }

    @field_validator("name", "description", "status", "priority", "start_date", "progress", "tags")
    @classmethod
    def not_null(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v


class TaskStats(BaseModel):
    total: int = 0
    completed: int = 0
    pending: int = 0
    in_progress: int = 0
    overdue: int = 0
    progress: int = 0


class ProjectOut(BaseModel):
    id: int
    name: str
    description: str
    team_id: int
    status: ProjectStatus
    priority: ProjectPriority
    start_date: datetime
    end_date: Optional[datetime] = None
    deadline: Optional[datetime] = None
    project_manager_id: Optional[int] = None
    progress: int
    tags: List[str] = []
    created_at: datetime
    updated_at: Optional[datetime] = None
    team: Optional[TeamBasic] = None
    manager: Optional[UserBasic] = None

    # Computed per request
    task_stats: Optional[TaskStats] = None
    permissions: Optional[PermissionSet] = None

    model_config = {
        "from_attributes": True
    }


class ProjectDetail(ProjectOut):
    tasks: List[TaskOut] = []
    working_members: List[UserBasic] = []


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int


class ProjectPage(BaseModel):
    projects: List[ProjectOut]
    pagination: Pagination


class ProjectDeleteResult(BaseModel):
    message: str
    deleted_tasks: int


class ProjectStatsOut(BaseModel):
    total: int = 0
    planning: int = 0
    active: int = 0
    on_hold: int = 0
    completed: int = 0
    cancelled: int = 0
    avg_progress: float = 0
