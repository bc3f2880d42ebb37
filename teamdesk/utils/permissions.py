# teamdesk/utils/permissions.py
"""
Authorization policy.

Everything here is a pure decision over the acting user (``role``,
``team_id``, ``can_manage_tasks``) and the resource (``team_id``). Routers
call these at the API boundary; nothing is stored on the models.
"""

import logging
from typing import Iterable

from fastapi import Depends

from teamdesk.errors import AuthorizationError
from teamdesk.models.project import Project
from teamdesk.models.task import Task
from teamdesk.models.user import Role, User
from teamdesk.schemas.permissions import PermissionSet
from teamdesk.utils.auth import get_current_user

logger = logging.getLogger(__name__)

TASK_PERMISSION_DENIED = (
    "Access denied: You do not have permission to manage tasks. Please contact an admin."
)


def is_admin(actor) -> bool:
    return actor.role == Role.ADMIN


def is_own_team(actor, resource) -> bool:
    return actor.team_id is not None and resource.team_id == actor.team_id


def is_own_team_id(actor, team_id) -> bool:
    return actor.team_id is not None and team_id == actor.team_id


def can_manage_team_tasks(actor, team_id) -> bool:
    """Admins always; team leaders only inside their own team and with the flag"""
    if is_admin(actor):
        return True
    return (
        actor.role == Role.TEAM_LEADER
        and is_own_team_id(actor, team_id)
        and bool(actor.can_manage_tasks)
    )


def can_edit_team_resource(actor, team_id) -> bool:
    if is_admin(actor):
        return True
    return actor.role == Role.TEAM_LEADER and is_own_team_id(actor, team_id)


def compute_permissions(actor, resource) -> PermissionSet:
    own_team = is_own_team(actor, resource)
    manage_tasks = can_manage_team_tasks(actor, resource.team_id)

    if isinstance(resource, Task):
        # Task writes are gated by the task permission alone
        return PermissionSet(
            can_edit=manage_tasks,
            can_delete=manage_tasks,
            can_manage_tasks=manage_tasks,
            can_view=True,
            is_own_team=own_team,
        )

    return PermissionSet(
        can_edit=can_edit_team_resource(actor, resource.team_id),
        can_delete=is_admin(actor),
        can_manage_tasks=manage_tasks,
        can_view=True,
        is_own_team=own_team,
    )


# Enforcement helpers raising AuthorizationError

def ensure_task_management(actor, team_id, action: str = "manage"):
    if can_manage_team_tasks(actor, team_id):
        return
    if actor.role == Role.TEAM_LEADER and not actor.can_manage_tasks:
        reason = TASK_PERMISSION_DENIED
    elif actor.role == Role.TEAM_LEADER:
        reason = f"Access denied: You can only {action} tasks from your team"
    else:
        reason = "Access denied. Only admins and team leaders with task permission can manage tasks."
    logger.info("User %s denied task %s on team %s", actor.id, action, team_id)
    raise AuthorizationError(reason)


def ensure_can_edit_project(actor, project: Project):
    if compute_permissions(actor, project).can_edit:
        return
    logger.info("User %s denied edit of project %s", actor.id, project.id)
    if actor.role == Role.TEAM_LEADER:
        raise AuthorizationError("Team leaders can only update projects assigned to their team")
    raise AuthorizationError(f"Access denied. Required roles: {role_names((Role.ADMIN, Role.TEAM_LEADER))}")


def require_roles(*roles: Role):
    """Dependency factory: the current user must hold one of ``roles``"""
    allowed = set(roles)

    def checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed:
            raise AuthorizationError(f"Access denied. Required roles: {role_names(roles)}")
        return current_user

    return checker


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != Role.ADMIN:
        raise AuthorizationError("Access denied. Admin only.")
    return current_user


def require_task_manager(current_user: User = Depends(get_current_user)) -> User:
    """Admins, or team leaders holding the task permission"""
    if current_user.role == Role.ADMIN:
        return current_user
    if current_user.role != Role.TEAM_LEADER:
        raise AuthorizationError("Access denied. Team leaders only.")
    if not current_user.can_manage_tasks:
        raise AuthorizationError(TASK_PERMISSION_DENIED)
    return current_user


def role_names(roles: Iterable[Role]) -> str:
    return ", ".join(role.value for role in roles)
