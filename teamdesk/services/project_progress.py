# teamdesk/services/project_progress.py
"""
Project progress and task statistics.

Displayed progress is the completed-task ratio smoothed by project status:
planning projects never show more than 15%, active ones at least 10%, and
completed ones always 100%.
"""

import logging
from datetime import datetime
from typing import Dict, Iterable

from sqlalchemy.orm import Session

from teamdesk.models import Project, ProjectStatus, Task, TaskStatus

logger = logging.getLogger(__name__)

PLANNING_CAP = 15
ACTIVE_FLOOR = 10


def clamp_progress(status: ProjectStatus, progress: int) -> int:
    """Apply the status policy to a progress value"""
    if status == ProjectStatus.COMPLETED:
        return 100
    if status == ProjectStatus.PLANNING:
        return min(progress, PLANNING_CAP)
    if status == ProjectStatus.ACTIVE:
        return max(progress, ACTIVE_FLOOR)
    return progress


def smoothed_progress(status: ProjectStatus, completed: int, total: int) -> int:
    raw = round(completed / total * 100) if total > 0 else 0
    return clamp_progress(status, raw)


def task_stats(tasks: Iterable[Task], status: ProjectStatus) -> Dict[str, int]:
    tasks = list(tasks)
    now = datetime.utcnow()
    completed = sum(1 for task in tasks if task.status == TaskStatus.COMPLETED)
    return {
        "total": len(tasks),
        "completed": completed,
        "pending": sum(1 for task in tasks if task.status == TaskStatus.PENDING),
        "in_progress": sum(1 for task in tasks if task.status == TaskStatus.IN_PROGRESS),
        "overdue": sum(
            1 for task in tasks
            if task.status != TaskStatus.COMPLETED and task.due_date is not None and task.due_date < now
        ),
        "progress": smoothed_progress(status, completed, len(tasks)),
    }


def recompute_project_progress(db: Session, project: Project, commit: bool = True) -> int:
    stats = task_stats(project.tasks, project.status)
    project.progress = stats["progress"]
    if commit:
        db.commit()
        db.refresh(project)
    logger.debug(
        "Project %s progress %s%% (%s/%s tasks completed)",
        project.id, project.progress, stats["completed"], stats["total"],
    )
    return project.progress


def recompute_all(db: Session) -> int:
    """Recompute stored progress for every project; returns the project count"""
    projects = db.query(Project).all()
    for project in projects:
        recompute_project_progress(db, project, commit=False)
    db.commit()
    logger.info("Recomputed progress for %s projects", len(projects))
    return len(projects)
