# teamdesk/routers/project.py
import logging
import math
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import String, case, cast, func, or_
from sqlalchemy.orm import Session, joinedload

from teamdesk.database import get_db
from teamdesk.errors import AuthorizationError, NotFoundError, ValidationError
from teamdesk.models import Project, ProjectPriority, ProjectStatus, Role, Task, Team, User, LEADER_LABEL
from teamdesk.schemas.project import (
    Pagination, ProjectCreate, ProjectDeleteResult, ProjectDetail, ProjectOut, ProjectPage,
    ProjectStatsOut, ProjectUpdate, TaskStats,
)
from teamdesk.schemas.user import UserBasic
from teamdesk.services.project_progress import clamp_progress, recompute_project_progress, task_stats
from teamdesk.utils.auth import get_current_user
from teamdesk.utils.permissions import (
    compute_permissions, ensure_can_edit_project, is_own_team_id, require_admin, require_roles,
)
from .task import serialize_tasks

logger = logging.getLogger(__name__)

router = APIRouter()

require_project_viewer = require_roles(Role.ADMIN, Role.TEAM_LEADER)

SORTABLE_FIELDS = {
    "created_at": Project.created_at,
    "updated_at": Project.updated_at,
    "name": Project.name,
    "status": Project.status,
    "priority": Project.priority,
    "start_date": Project.start_date,
    "deadline": Project.deadline,
    "progress": Project.progress,
}


def get_project_or_404(db: Session, project_id: int) -> Project:
    project = (
        db.query(Project)
        .options(joinedload(Project.team), joinedload(Project.manager))
        .filter(Project.id == project_id)
        .first()
    )
    if not project:
        raise NotFoundError("Project not found")
    return project


def serialize_project(project: Project, actor: User, schema=ProjectOut):
    out = schema.model_validate(project)
    out.task_stats = TaskStats(**task_stats(project.tasks, project.status))
    out.permissions = compute_permissions(actor, project)
    return out


def search_filter(query, search: Optional[str], include_tags: bool = True):
    if not search:
        return query
    pattern = f"%{search}%"
    clauses = [Project.name.ilike(pattern), Project.description.ilike(pattern)]
    if include_tags:
        clauses.append(cast(Project.tags, String).ilike(pattern))
    return query.filter(or_(*clauses))


def resolve_manager(db: Session, team: Team, manager_id: Optional[int]) -> Optional[int]:
    """The manager must be an active member of the project's team"""
    if manager_id is None:
        return None
    manager = db.query(User).filter(User.id == manager_id, User.is_deleted.is_(False)).first()
    if not manager or not (team.has_member(manager.id) or manager.team_id == team.id):
        raise ValidationError("Project manager must be a member of the project's team")
    return manager.id


def team_leader_id(team: Team) -> Optional[int]:
    for member in team.members:
        if member.role == LEADER_LABEL:
            return member.user_id
    return None


@router.get("/", response_model=ProjectPage)
def get_projects(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    team_id: Optional[int] = None,
    status: Optional[ProjectStatus] = None,
    priority: Optional[ProjectPriority] = None,
    search: Optional[str] = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    db: Session = Depends(get_db),
    current_user: User = Depends(require_project_viewer),
):
    """Paginated project listing; team leaders see their own team's projects first"""
    if sort_by not in SORTABLE_FIELDS:
        raise ValidationError(f"Cannot sort by '{sort_by}'")

    query = db.query(Project).options(joinedload(Project.team), joinedload(Project.manager))
    if team_id:
        query = query.filter(Project.team_id == team_id)
    if status:
        query = query.filter(Project.status == status)
    if priority:
        query = query.filter(Project.priority == priority)
    query = search_filter(query, search)

    total = query.count()

    column = SORTABLE_FIELDS[sort_by]
    ordering = [column.asc() if sort_order == "asc" else column.desc(), Project.id]
    if current_user.role == Role.TEAM_LEADER and current_user.team_id is not None:
        ordering.insert(0, case((Project.team_id == current_user.team_id, 0), else_=1))

    projects = query.order_by(*ordering).offset((page - 1) * limit).limit(limit).all()

    return ProjectPage(
        projects=[serialize_project(project, current_user) for project in projects],
        pagination=Pagination(
            current_page=page,
            total_pages=math.ceil(total / limit),
            total_items=total,
            items_per_page=limit,
        ),
    )


@router.get("/stats", response_model=ProjectStatsOut)
def get_project_stats(
    team_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_project_viewer),
):
    query = db.query(Project.status, func.count(Project.id), func.avg(Project.progress))
    if team_id:
        query = query.filter(Project.team_id == team_id)
    rows = query.group_by(Project.status).all()

    stats = ProjectStatsOut()
    progress_sum = 0.0
    for project_status, count, avg_progress in rows:
        stats.total += count
        progress_sum += float(avg_progress or 0) * count
        field = project_status.value.replace("-", "_")
        setattr(stats, field, count)
    if stats.total:
        stats.avg_progress = round(progress_sum / stats.total, 1)
    return stats


@router.get("/team/{team_id}", response_model=List[ProjectOut])
def get_team_projects(
    team_id: int,
    status: Optional[ProjectStatus] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_project_viewer),
):
    query = (
        db.query(Project)
        .options(joinedload(Project.team), joinedload(Project.manager))
        .filter(Project.team_id == team_id)
    )
    if status:
        query = query.filter(Project.status == status)
    query = search_filter(query, search, include_tags=False)
    projects = query.order_by(Project.created_at.desc(), Project.id.desc()).all()
    return [serialize_project(project, current_user) for project in projects]


@router.get("/{project_id}", response_model=ProjectDetail)
def get_project(project_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Project with its tasks and the team members currently working on it"""
    project = get_project_or_404(db, project_id)
    detail = serialize_project(project, current_user, ProjectDetail)

    tasks = sorted(project.tasks, key=lambda task: task.id)
    detail.tasks = serialize_tasks(tasks, current_user)

    assigned_ids = {task.assigned_to for task in tasks if task.assigned_to is not None}
    detail.working_members = [
        UserBasic.model_validate(member.user)
        for member in project.team.members
        if member.user_id in assigned_ids
    ]
    return detail


@router.post("/", response_model=ProjectOut, status_code=status.HTTP_201_CREATED)
def create_project(
    project_data: ProjectCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_project_viewer),
):
    if not project_data.name.strip():
        raise ValidationError("Project name is required")

    team = db.query(Team).filter(Team.id == project_data.team_id).first()
    if not team:
        raise NotFoundError("Team not found")

    if current_user.role == Role.TEAM_LEADER and not is_own_team_id(current_user, team.id):
        raise AuthorizationError("Team leaders can only create projects for their own team")

    manager_id = resolve_manager(db, team, project_data.project_manager_id)
    if manager_id is None:
        manager_id = current_user.id if current_user.role == Role.TEAM_LEADER else team_leader_id(team)

    db_project = Project(
        name=project_data.name.strip(),
        description=project_data.description,
        team_id=team.id,
        status=project_data.status,
        priority=project_data.priority,
        end_date=project_data.end_date,
        deadline=project_data.deadline,
        project_manager_id=manager_id,
        tags=project_data.tags,
    )
    if project_data.start_date is not None:
        db_project.start_date = project_data.start_date

    db.add(db_project)
    db.flush()
    recompute_project_progress(db, db_project, commit=False)
    db.commit()
    logger.info("Project %s created in team %s by %s", db_project.id, team.id, current_user.id)
    return serialize_project(get_project_or_404(db, db_project.id), current_user)


@router.put("/{project_id}", response_model=ProjectOut)
def update_project(
    project_id: int,
    project_update: ProjectUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    project = get_project_or_404(db, project_id)
    ensure_can_edit_project(current_user, project)

    update_data = project_update.model_dump(exclude_unset=True)

    team = project.team
    new_team_id = update_data.pop("team_id", None)
    if new_team_id is not None and new_team_id != project.team_id:
        if current_user.role != Role.ADMIN:
            raise AuthorizationError("Team leaders cannot move projects to another team")
        team = db.query(Team).filter(Team.id == new_team_id).first()
        if not team:
            raise NotFoundError("Team not found")
        project.team_id = team.id
        member_ids = [user_id for (user_id,) in db.query(User.id).filter(User.team_id == team.id)]
        # Tasks follow their project; assignees outside the new team are dropped
        db.query(Task).filter(Task.project_id == project.id).update(
            {Task.team_id: team.id}, synchronize_session=False
        )
        db.query(Task).filter(
            Task.project_id == project.id,
            Task.assigned_to.isnot(None),
            ~Task.assigned_to.in_(member_ids),
        ).update({Task.assigned_to: None}, synchronize_session=False)
        if "project_manager_id" not in update_data and project.project_manager_id not in member_ids:
            project.project_manager_id = None

    if "project_manager_id" in update_data:
        update_data["project_manager_id"] = resolve_manager(db, team, update_data["project_manager_id"])

    if "name" in update_data and (update_data["name"] is None or not update_data["name"].strip()):
        raise ValidationError("Project name is required")

    for field, value in update_data.items():
        setattr(project, field, value)

    if "progress" in update_data:
        project.progress = clamp_progress(project.status, project.progress)
    elif "status" in update_data:
        recompute_project_progress(db, project, commit=False)

    db.commit()
    return serialize_project(get_project_or_404(db, project_id), current_user)


@router.post("/{project_id}/recompute-progress", response_model=ProjectOut)
def recompute_progress(project_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    project = get_project_or_404(db, project_id)
    ensure_can_edit_project(current_user, project)
    recompute_project_progress(db, project)
    return serialize_project(project, current_user)


@router.delete("/{project_id}", response_model=ProjectDeleteResult)
def delete_project(project_id: int, db: Session = Depends(get_db), current_user: User = Depends(require_admin)):
    """Delete a project together with all of its tasks"""
    project = get_project_or_404(db, project_id)

    deleted_tasks = db.query(Task).filter(Task.project_id == project.id).delete(synchronize_session=False)
    db.delete(project)
    db.commit()

    logger.info("Project %s deleted with %s tasks by %s", project_id, deleted_tasks, current_user.id)
    return ProjectDeleteResult(message="Project deleted successfully", deleted_tasks=deleted_tasks)
