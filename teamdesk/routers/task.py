# teamdesk/routers/task.py
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session, joinedload

from teamdesk.database import get_db
from teamdesk.errors import NotFoundError, ValidationError
from teamdesk.models import Project, Task, TaskPriority, TaskStatus, Team, User
from teamdesk.schemas.task import TaskCreate, TaskOut, TaskUpdate
from teamdesk.utils.auth import get_current_user
from teamdesk.utils.permissions import compute_permissions, ensure_task_management, require_task_manager

logger = logging.getLogger(__name__)

router = APIRouter()


def serialize_task(task: Task, actor: User) -> TaskOut:
    out = TaskOut.model_validate(task)
    out.permissions = compute_permissions(actor, task)
    return out


def serialize_tasks(tasks: List[Task], actor: User) -> List[TaskOut]:
    return [serialize_task(task, actor) for task in tasks]


def base_query(db: Session):
    return db.query(Task).options(joinedload(Task.assignee), joinedload(Task.project))


def get_task_or_404(db: Session, task_id: int) -> Task:
    task = base_query(db).filter(Task.id == task_id).first()
    if not task:
        raise NotFoundError("Task not found")
    return task


def get_project_or_404(db: Session, project_id: int) -> Project:
    project = db.query(Project).filter(Project.id == project_id).first()
    if not project:
        raise NotFoundError("Project not found")
    return project


def get_team_member_or_404(db: Session, team_id: int, user_id: int) -> User:
    """The user must exist, be active, and belong to the team"""
    user = db.query(User).filter(User.id == user_id, User.is_deleted.is_(False)).first()
    if not user:
        raise NotFoundError("User not found")

    if user.team_id != team_id:
        raise NotFoundError("User is not a member of this task's team")
    return user


def apply_filters(query, status: Optional[TaskStatus] = None, priority: Optional[TaskPriority] = None,
                  assigned_to: Optional[int] = None, project_id: Optional[int] = None,
                  team_id: Optional[int] = None):
    if status:
        query = query.filter(Task.status == status)
    if priority:
        query = query.filter(Task.priority == priority)
    if assigned_to:
        query = query.filter(Task.assigned_to == assigned_to)
    if project_id:
        query = query.filter(Task.project_id == project_id)
    if team_id:
        query = query.filter(Task.team_id == team_id)
    return query


@router.get("/", response_model=List[TaskOut])
def get_tasks(
    status: Optional[TaskStatus] = None,
    priority: Optional[TaskPriority] = None,
    assigned_to: Optional[int] = None,
    project_id: Optional[int] = None,
    team_id: Optional[int] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = apply_filters(base_query(db), status, priority, assigned_to, project_id, team_id)
    tasks = query.order_by(Task.id).offset(skip).limit(limit).all()
    return serialize_tasks(tasks, current_user)


@router.get("/team/{team_id}", response_model=List[TaskOut])
def get_tasks_by_team(
    team_id: int,
    status: Optional[TaskStatus] = None,
    project_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = apply_filters(base_query(db), status=status, project_id=project_id, team_id=team_id)
    return serialize_tasks(query.order_by(Task.id).all(), current_user)


@router.get("/team/{team_id}/unassigned", response_model=List[TaskOut])
def get_unassigned_team_tasks(
    team_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    tasks = base_query(db).filter(Task.team_id == team_id, Task.assigned_to.is_(None)).order_by(Task.id).all()
    return serialize_tasks(tasks, current_user)


@router.get("/project/{project_id}", response_model=List[TaskOut])
def get_tasks_by_project(
    project_id: int,
    status: Optional[TaskStatus] = None,
    assigned_to: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    get_project_or_404(db, project_id)
    query = apply_filters(base_query(db), status=status, assigned_to=assigned_to, project_id=project_id)
    return serialize_tasks(query.order_by(Task.id).all(), current_user)


@router.get("/project/{project_id}/unassigned", response_model=List[TaskOut])
def get_unassigned_project_tasks(
    project_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    get_project_or_404(db, project_id)
    tasks = base_query(db).filter(Task.project_id == project_id, Task.assigned_to.is_(None)).order_by(Task.id).all()
    return serialize_tasks(tasks, current_user)


@router.get("/user/{user_id}", response_model=List[TaskOut])
def get_tasks_by_user(
    user_id: int,
    status: Optional[TaskStatus] = None,
    project_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = apply_filters(base_query(db), status=status, assigned_to=user_id, project_id=project_id)
    return serialize_tasks(query.order_by(Task.id).all(), current_user)


@router.put("/assign/{task_id}/to/{user_id}", response_model=TaskOut)
def assign_task_to_team_member(
    task_id: int,
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_task_manager),
):
    """Assign a task to a member of the task's team"""
    task = get_task_or_404(db, task_id)
    ensure_task_management(current_user, task.team_id, "assign")
    user = get_team_member_or_404(db, task.team_id, user_id)

    task.assigned_to = user.id
    if task.status == TaskStatus.PENDING:
        task.set_status(TaskStatus.IN_PROGRESS)

    db.commit()
    logger.info("Task %s assigned to user %s by %s", task.id, user.id, current_user.id)
    return serialize_task(get_task_or_404(db, task_id), current_user)


@router.get("/{task_id}", response_model=TaskOut)
def get_task(task_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return serialize_task(get_task_or_404(db, task_id), current_user)


@router.post("/", response_model=TaskOut, status_code=status.HTTP_201_CREATED)
def create_task(task_data: TaskCreate, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Create a task; a project fixes the task's team"""
    team_id = task_data.team_id
    if task_data.project_id is not None:
        project = get_project_or_404(db, task_data.project_id)
        if team_id is not None and team_id != project.team_id:
            raise ValidationError("Task team must match the project's team")
        team_id = project.team_id

    if team_id is None:
        raise ValidationError("Team ID is required")
    if not db.query(Team).filter(Team.id == team_id).first():
        raise NotFoundError("Team not found")

    ensure_task_management(current_user, team_id, "create")

    if task_data.assigned_to is not None:
        get_team_member_or_404(db, team_id, task_data.assigned_to)

    task = Task(
        title=task_data.title,
        description=task_data.description,
        priority=task_data.priority,
        due_date=task_data.due_date,
        assigned_to=task_data.assigned_to,
        team_id=team_id,
        project_id=task_data.project_id,
        estimated_hours=task_data.estimated_hours,
        actual_hours=task_data.actual_hours,
        tags=task_data.tags,
    )
    task.set_status(task_data.status)

    db.add(task)
    db.commit()
    logger.info("Task %s created in team %s by %s", task.id, team_id, current_user.id)
    return serialize_task(get_task_or_404(db, task.id), current_user)


@router.put("/{task_id}", response_model=TaskOut)
def update_task(
    task_id: int,
    task_update: TaskUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    task = get_task_or_404(db, task_id)
    ensure_task_management(current_user, task.team_id, "update")

    update_data = task_update.model_dump(exclude_unset=True)

    if update_data.get("project_id") is not None:
        project = get_project_or_404(db, update_data["project_id"])
        if project.team_id != task.team_id:
            # Moving the task moves it to another team; the actor must manage that one too
            ensure_task_management(current_user, project.team_id, "update")
            task.team_id = project.team_id
            if "assigned_to" not in update_data and task.assignee is not None \
                    and task.assignee.team_id != task.team_id:
                task.assigned_to = None

    if update_data.get("assigned_to") is not None:
        get_team_member_or_404(db, task.team_id, update_data["assigned_to"])

    new_status = update_data.pop("status", None)
    for field, value in update_data.items():
        if field == "title" and (value is None or not value.strip()):
            raise ValidationError("Title is required")
        setattr(task, field, value)
    if new_status is not None:
        task.set_status(new_status)

    db.commit()
    return serialize_task(get_task_or_404(db, task_id), current_user)


@router.delete("/{task_id}")
def delete_task(task_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    task = get_task_or_404(db, task_id)
    ensure_task_management(current_user, task.team_id, "delete")

    db.delete(task)
    db.commit()
    logger.info("Task %s deleted by %s", task_id, current_user.id)
    return {"message": "Task deleted successfully"}
