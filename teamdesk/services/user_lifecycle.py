# teamdesk/services/user_lifecycle.py
"""
Soft-delete lifecycle for users.

    active --soft_delete--> deleted --restore--> active
                              |
                              +--purge / permanent_delete--> (row removed)

Soft deleting clears the user's task and equipment assignments but leaves
team references alone, so a restored user may need their team set up
again. Physical removal clears every remaining reference first so no
task, equipment, project or team row points at a missing user.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List

from sqlalchemy.orm import Session

from teamdesk.errors import ValidationError
from teamdesk.models import Equipment, EquipmentStatus, Project, Task, TeamMember, User

logger = logging.getLogger(__name__)


@dataclass
class ClearedReferences:
    tasks: int = 0
    equipment: int = 0
    projects: int = 0
    memberships: int = 0


@dataclass
class BulkResult:
    requested: int
    affected_ids: List[int] = field(default_factory=list)
    skipped_ids: List[int] = field(default_factory=list)

    @property
    def affected(self) -> int:
        return len(self.affected_ids)


class UserLifecycle:
    """State transitions applied to User rows"""

    def __init__(self, db: Session):
        self.db = db

    # Reference clearing

    def clear_assignments(self, user_ids: Iterable[int]) -> ClearedReferences:
        """Unassign tasks and return equipment held by the given users"""
        ids = list(user_ids)
        cleared = ClearedReferences()
        if not ids:
            return cleared

        cleared.tasks = self.db.query(Task).filter(Task.assigned_to.in_(ids)).update(
            {Task.assigned_to: None}, synchronize_session=False
        )
        cleared.equipment = self.db.query(Equipment).filter(Equipment.assigned_to.in_(ids)).update(
            {
                Equipment.assigned_to: None,
                Equipment.assigned_date: None,
                Equipment.status: EquipmentStatus.AVAILABLE,
            },
            synchronize_session=False,
        )
        return cleared

    def clear_all_references(self, user_ids: Iterable[int]) -> ClearedReferences:
        ids = list(user_ids)
        cleared = self.clear_assignments(ids)
        if not ids:
            return cleared

        cleared.projects = self.db.query(Project).filter(Project.project_manager_id.in_(ids)).update(
            {Project.project_manager_id: None}, synchronize_session=False
        )
        cleared.memberships = self.db.query(TeamMember).filter(TeamMember.user_id.in_(ids)).delete(
            synchronize_session=False
        )
        return cleared

    # Transitions

    def soft_delete(self, user: User) -> ClearedReferences:
        user.is_deleted = True
        cleared = self.clear_assignments([user.id])
        self.db.commit()
        self.db.refresh(user)
        logger.info(
            "User %s soft-deleted; cleared %s task and %s equipment assignments",
            user.id, cleared.tasks, cleared.equipment,
        )
        return cleared

    def restore(self, user: User) -> User:
        if not user.is_deleted:
            raise ValidationError("User is not deleted")
        user.is_deleted = False
        self.db.commit()
        self.db.refresh(user)
        logger.info("User %s restored", user.id)
        return user

    def permanent_delete(self, user: User) -> ClearedReferences:
        cleared = self.clear_all_references([user.id])
        # Collections loaded before the bulk updates are stale now
        self.db.expire(user)
        self.db.delete(user)
        self.db.commit()
        logger.warning("User %s permanently deleted", user.id)
        return cleared

    def purge(self) -> int:
        """Remove every soft-deleted user; returns how many rows went away"""
        ids = [row.id for row in self.db.query(User.id).filter(User.is_deleted.is_(True)).all()]
        if not ids:
            return 0
        self.clear_all_references(ids)
        count = self.db.query(User).filter(User.id.in_(ids)).delete(synchronize_session=False)
        self.db.commit()
        logger.warning("Purged %s deleted users", count)
        return count

    # Bulk variants: only soft-deleted users are affected, the rest are reported

    def _split_deleted(self, user_ids: List[int]) -> BulkResult:
        if not user_ids:
            raise ValidationError("Invalid user IDs provided")
        requested = list(dict.fromkeys(user_ids))
        deleted_ids = {
            row.id
            for row in self.db.query(User.id)
            .filter(User.id.in_(requested), User.is_deleted.is_(True))
            .all()
        }
        return BulkResult(
            requested=len(requested),
            affected_ids=[uid for uid in requested if uid in deleted_ids],
            skipped_ids=[uid for uid in requested if uid not in deleted_ids],
        )

    def bulk_restore(self, user_ids: List[int]) -> BulkResult:
        result = self._split_deleted(user_ids)
        if result.affected_ids:
            self.db.query(User).filter(User.id.in_(result.affected_ids)).update(
                {User.is_deleted: False}, synchronize_session=False
            )
            self.db.commit()
        logger.info("Bulk restore: %s of %s users restored", result.affected, result.requested)
        return result

    def bulk_permanent_delete(self, user_ids: List[int]) -> BulkResult:
        result = self._split_deleted(user_ids)
        if result.affected_ids:
            self.clear_all_references(result.affected_ids)
            self.db.query(User).filter(User.id.in_(result.affected_ids)).delete(synchronize_session=False)
            self.db.commit()
        logger.warning("Bulk permanent delete: %s of %s users removed", result.affected, result.requested)
        return result
