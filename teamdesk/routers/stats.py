# teamdesk/routers/stats.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import func, case
from typing import Optional
from datetime import datetime, timedelta

from teamdesk.database import get_db
from teamdesk.errors import AuthorizationError, NotFoundError
from teamdesk.models import User, Role, Team, Task, TaskStatus, TaskPriority, Equipment, EquipmentStatus
from teamdesk.utils.auth import get_current_user
from teamdesk.utils.permissions import require_admin, is_admin, is_own_team_id

router = APIRouter(prefix="/stats", tags=["stats"])


def completion_rate(completed: int, total: int) -> float:
    return round(completed / total * 100, 1) if total else 0.0


def created_between(query, column, start_date: Optional[datetime], end_date: Optional[datetime]):
    if start_date:
        query = query.filter(column >= start_date)
    if end_date:
        query = query.filter(column <= end_date)
    return query


@router.get("/admin")
def get_admin_stats(
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Organisation-wide counts, optionally limited to records created in a date range"""

    active_users = created_between(
        db.query(User).filter(User.is_deleted.is_(False)), User.created_at, start_date, end_date
    )
    users_by_role = dict(
        active_users.with_entities(User.role, func.count(User.id)).group_by(User.role).all()
    )
    deleted_users = db.query(User).filter(User.is_deleted.is_(True)).count()

    tasks = created_between(db.query(Task), Task.created_at, start_date, end_date)
    total_tasks = tasks.count()
    tasks_by_status = dict(tasks.with_entities(Task.status, func.count(Task.id)).group_by(Task.status).all())
    tasks_by_priority = dict(tasks.with_entities(Task.priority, func.count(Task.id)).group_by(Task.priority).all())
    completed_tasks = tasks_by_status.get(TaskStatus.COMPLETED, 0)

    equipment = created_between(db.query(Equipment), Equipment.created_at, start_date, end_date)
    total_equipment = equipment.count()
    equipment_by_status = dict(
        equipment.with_entities(Equipment.status, func.count(Equipment.id)).group_by(Equipment.status).all()
    )
    assigned_equipment = equipment_by_status.get(EquipmentStatus.ASSIGNED, 0)

    # Completion per team
    completed_case = func.sum(case((Task.status == TaskStatus.COMPLETED, 1), else_=0))
    team_rows = (
        tasks.join(Team, Team.id == Task.team_id)
        .with_entities(Team.id, Team.name, func.count(Task.id), completed_case)
        .group_by(Team.id, Team.name)
        .order_by(Team.id)
        .all()
    )
    team_performance = [
        {
            "team_id": team_id,
            "team_name": name,
            "total_tasks": total,
            "completed_tasks": completed or 0,
            "completion_rate": completion_rate(completed or 0, total),
        }
        for team_id, name, total, completed in team_rows
    ]

    # Top five assignees by completed tasks
    top_rows = (
        tasks.join(User, User.id == Task.assigned_to)
        .filter(Task.status == TaskStatus.COMPLETED)
        .with_entities(User.id, User.name, User.email, func.count(Task.id).label("completed"))
        .group_by(User.id, User.name, User.email)
        .order_by(func.count(Task.id).desc(), User.id)
        .limit(5)
        .all()
    )
    top_performers = [
        {"user_id": user_id, "name": name, "email": email, "completed_tasks": completed}
        for user_id, name, email, completed in top_rows
    ]

    # Completed tasks per day over the last week
    today = datetime.utcnow().date()
    days = [today - timedelta(days=offset) for offset in range(6, -1, -1)]
    window_start = datetime.combine(days[0], datetime.min.time())
    completed_recently = (
        db.query(Task.completed_at)
        .filter(Task.status == TaskStatus.COMPLETED, Task.completed_at >= window_start)
        .all()
    )
    per_day = {}
    for (completed_at,) in completed_recently:
        per_day[completed_at.date()] = per_day.get(completed_at.date(), 0) + 1
    timeline = [{"date": day.isoformat(), "count": per_day.get(day, 0)} for day in days]

    return {
        "users": {
            "total": sum(users_by_role.values()),
            "admins": users_by_role.get(Role.ADMIN, 0),
            "team_leaders": users_by_role.get(Role.TEAM_LEADER, 0),
            "team_members": users_by_role.get(Role.TEAM_MEMBER, 0),
            "regular_users": users_by_role.get(Role.USER, 0),
            "deleted": deleted_users,
        },
        "teams": {
            "total": created_between(db.query(Team), Team.created_at, start_date, end_date).count(),
            "performance": team_performance,
        },
        "tasks": {
            "total": total_tasks,
            "completed": completed_tasks,
            "in_progress": tasks_by_status.get(TaskStatus.IN_PROGRESS, 0),
            "pending": tasks_by_status.get(TaskStatus.PENDING, 0),
            "completion_rate": completion_rate(completed_tasks, total_tasks),
            "by_priority": {priority.value: tasks_by_priority.get(priority, 0) for priority in TaskPriority},
            "timeline": timeline,
        },
        "equipment": {
            "total": total_equipment,
            "available": equipment_by_status.get(EquipmentStatus.AVAILABLE, 0),
            "assigned": assigned_equipment,
            "maintenance": equipment_by_status.get(EquipmentStatus.MAINTENANCE, 0),
            "utilization_rate": completion_rate(assigned_equipment, total_equipment),
        },
        "top_performers": top_performers,
        "date_filters": {
            "start_date": start_date.isoformat() if start_date else None,
            "end_date": end_date.isoformat() if end_date else None,
        },
    }


@router.get("/team/{team_id}")
def get_team_stats(
    team_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Task and equipment counts for one team; admins or members of that team"""
    team = db.query(Team).filter(Team.id == team_id).first()
    if not team:
        raise NotFoundError("Team not found")

    if not (is_admin(current_user) or is_own_team_id(current_user, team_id) or team.has_member(current_user.id)):
        raise AuthorizationError("Access denied. You can only view statistics for your own team.")

    member_count = db.query(User).filter(User.team_id == team_id, User.is_deleted.is_(False)).count()

    tasks = db.query(Task).filter(Task.team_id == team_id)
    total_tasks = tasks.count()
    by_status = dict(tasks.with_entities(Task.status, func.count(Task.id)).group_by(Task.status).all())
    completed_tasks = by_status.get(TaskStatus.COMPLETED, 0)

    completed_case = func.sum(case((Task.status == TaskStatus.COMPLETED, 1), else_=0))
    member_rows = (
        tasks.outerjoin(User, User.id == Task.assigned_to)
        .with_entities(Task.assigned_to, User.name, func.count(Task.id), completed_case)
        .group_by(Task.assigned_to, User.name)
        .order_by(Task.assigned_to)
        .all()
    )
    member_performance = [
        {
            "user_id": user_id,
            "user_name": name or "Unassigned",
            "total_tasks": total,
            "completed_tasks": completed or 0,
            "completion_rate": completion_rate(completed or 0, total),
        }
        for user_id, name, total, completed in member_rows
    ]

    return {
        "team": {
            "id": team.id,
            "name": team.name,
            "description": team.description,
            "member_count": member_count,
        },
        "tasks": {
            "total": total_tasks,
            "completed": completed_tasks,
            "in_progress": by_status.get(TaskStatus.IN_PROGRESS, 0),
            "pending": by_status.get(TaskStatus.PENDING, 0),
            "completion_rate": completion_rate(completed_tasks, total_tasks),
        },
        "member_performance": member_performance,
        "equipment": {
            "assigned": db.query(Equipment).filter(Equipment.team_id == team_id).count(),
        },
    }
