# teamdesk/routers/user.py
import logging
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from teamdesk.database import get_db
from teamdesk.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from teamdesk.models.team import Team
from teamdesk.models.user import Role, User
from teamdesk.schemas.user import (
    BulkDeleteResult,
    BulkRestoreResult,
    BulkUserIds,
    PasswordChange,
    SoftDeleteResult,
    UserAdminOut,
    UserCreate,
    UserOut,
    UserUpdate,
)
from teamdesk.services.user_lifecycle import UserLifecycle
from teamdesk.utils.auth import get_current_user
from teamdesk.utils.permissions import require_admin
from teamdesk.utils.security import hash_password, verify_password

logger = logging.getLogger(__name__)

router = APIRouter()

# Fields a non-admin may change on their own account
SELF_EDITABLE_FIELDS = {"name", "email", "phone"}


def get_user_or_404(db: Session, user_id: int, include_deleted: bool = False) -> User:
    query = db.query(User).filter(User.id == user_id)
    if not include_deleted:
        query = query.filter(User.is_deleted.is_(False))
    user = query.first()
    if not user:
        raise NotFoundError("User not found")
    return user


def ensure_email_available(db: Session, email: str, exclude_id: int = None):
    # Uniqueness spans soft-deleted rows too, matching the column constraint
    query = db.query(User).filter(User.email == email)
    if exclude_id is not None:
        query = query.filter(User.id != exclude_id)
    if query.first():
        raise ConflictError("Email already registered")


def ensure_team_exists(db: Session, team_id):
    if team_id is not None and not db.query(Team).filter(Team.id == team_id).first():
        raise NotFoundError("Team not found")


@router.get("/", response_model=List[UserOut])
def get_users(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Active users only"""
    return db.query(User).filter(User.is_deleted.is_(False)).order_by(User.id).all()


@router.get("/all", response_model=List[UserAdminOut])
def get_all_users(db: Session = Depends(get_db), current_user: User = Depends(require_admin)):
    """Active and deleted users, each tagged with its status"""
    return db.query(User).order_by(User.id).all()


@router.get("/deleted", response_model=List[UserAdminOut])
def get_deleted_users(db: Session = Depends(get_db), current_user: User = Depends(require_admin)):
    return db.query(User).filter(User.is_deleted.is_(True)).order_by(User.id).all()


@router.get("/available", response_model=List[UserOut])
def get_available_users(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Active non-admin users that are not in a team yet"""
    return db.query(User).filter(
        User.role != Role.ADMIN,
        User.is_deleted.is_(False),
        User.team_id.is_(None),
    ).order_by(User.id).all()


@router.get("/me", response_model=UserOut)
def get_current_user_info(current_user: User = Depends(get_current_user)):
    return current_user


@router.delete("/purge")
def purge_deleted_users(db: Session = Depends(get_db), current_user: User = Depends(require_admin)):
    """Permanently delete every soft-deleted user"""
    count = UserLifecycle(db).purge()
    return {"message": "Permanently deleted users", "count": count}


@router.post("/bulk-restore", response_model=BulkRestoreResult)
def bulk_restore_users(
    data: BulkUserIds,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    result = UserLifecycle(db).bulk_restore(data.user_ids or [])
    return {
        "message": f"{result.affected} users restored successfully",
        "requested": result.requested,
        "restored_count": result.affected,
        "skipped_ids": result.skipped_ids,
    }


@router.post("/bulk-permanent-delete", response_model=BulkDeleteResult)
def bulk_permanent_delete_users(
    data: BulkUserIds,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    result = UserLifecycle(db).bulk_permanent_delete(data.user_ids or [])
    return {
        "message": f"{result.affected} users permanently deleted",
        "requested": result.requested,
        "deleted_count": result.affected,
        "skipped_ids": result.skipped_ids,
    }


@router.put("/toggle-task-permission/{user_id}")
def toggle_task_permission(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Grant or revoke a team leader's permission to manage tasks"""
    user = get_user_or_404(db, user_id)
    if user.role != Role.TEAM_LEADER:
        raise ValidationError("Only team leaders can have task permissions modified")

    user.can_manage_tasks = not user.can_manage_tasks
    db.commit()
    db.refresh(user)

    action = "granted" if user.can_manage_tasks else "revoked"
    logger.info("Task management permission %s for user %s by %s", action, user.id, current_user.id)
    return {
        "message": f"Task management permission {action} for {user.name}",
        "user": UserOut.model_validate(user),
    }


@router.post("/change-password")
def change_password(
    data: PasswordChange,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if not verify_password(data.current_password, current_user.hashed_password):
        raise ValidationError("Current password is incorrect")

    current_user.hashed_password = hash_password(data.new_password)
    db.commit()
    return {"message": "Password updated successfully"}


@router.get("/{user_id}", response_model=UserOut)
def get_user(user_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return get_user_or_404(db, user_id)


@router.post("/", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(user: UserCreate, db: Session = Depends(get_db), current_user: User = Depends(require_admin)):
    email = user.email.lower()
    ensure_email_available(db, email)
    ensure_team_exists(db, user.team_id)

    db_user = User(
        name=user.name,
        email=email,
        phone=user.phone,
        hashed_password=hash_password(user.password),
        role=user.role,
        team_id=user.team_id,
        can_manage_tasks=user.can_manage_tasks if user.role == Role.TEAM_LEADER else False,
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    logger.info("User %s created by %s", db_user.id, current_user.id)
    return db_user


@router.put("/{user_id}", response_model=UserOut)
def update_user(
    user_id: int,
    user_update: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    db_user = get_user_or_404(db, user_id)
    update_data = user_update.model_dump(exclude_unset=True)

    if current_user.role != Role.ADMIN:
        if current_user.id != db_user.id:
            raise AuthorizationError("Access denied. Admin only.")
        restricted = set(update_data) - SELF_EDITABLE_FIELDS
        if restricted:
            raise AuthorizationError(
                f"Only admins can change: {', '.join(sorted(restricted))}"
            )

    if update_data.get("email"):
        update_data["email"] = update_data["email"].lower()
        if update_data["email"] != db_user.email:
            ensure_email_available(db, update_data["email"], exclude_id=db_user.id)

    if "team_id" in update_data:
        ensure_team_exists(db, update_data["team_id"])
        # A user belongs to one team at a time
        for entry in list(db_user.memberships):
            if entry.team_id != update_data["team_id"]:
                entry.team.members.remove(entry)

    password = update_data.pop("password", None)
    if password:
        db_user.hashed_password = hash_password(password)

    for field, value in update_data.items():
        setattr(db_user, field, value)

    # The task permission only means something for team leaders
    if db_user.role != Role.TEAM_LEADER:
        db_user.can_manage_tasks = False

    db.commit()
    db.refresh(db_user)
    return db_user


@router.delete("/{user_id}", response_model=SoftDeleteResult)
def delete_user(user_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Soft delete a user and clear their task and equipment assignments"""
    if current_user.role != Role.ADMIN and current_user.id != user_id:
        raise AuthorizationError("Access denied. Admin only.")

    db_user = get_user_or_404(db, user_id)
    if current_user.role == Role.ADMIN and db_user.id == current_user.id:
        raise ValidationError("You cannot delete your own account")

    cleared = UserLifecycle(db).soft_delete(db_user)
    return {
        "message": "User marked as deleted and all assignments cleared",
        "cleared_tasks": cleared.tasks,
        "cleared_equipment": cleared.equipment,
    }


@router.put("/{user_id}/restore")
def restore_user(user_id: int, db: Session = Depends(get_db), current_user: User = Depends(require_admin)):
    db_user = get_user_or_404(db, user_id, include_deleted=True)
    UserLifecycle(db).restore(db_user)
    return {"message": "User restored successfully", "user": UserOut.model_validate(db_user)}


@router.delete("/{user_id}/permanent")
def permanent_delete_user(user_id: int, db: Session = Depends(get_db), current_user: User = Depends(require_admin)):
    db_user = get_user_or_404(db, user_id, include_deleted=True)
    if db_user.id == current_user.id:
        raise ValidationError("You cannot delete your own account")

    deleted_user = {"id": db_user.id, "name": db_user.name, "email": db_user.email}
    UserLifecycle(db).permanent_delete(db_user)
    return {"message": "User permanently deleted", "deleted_user": deleted_user}
