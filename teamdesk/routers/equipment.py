# teamdesk/routers/equipment.py
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session, joinedload

from teamdesk.database import get_db
from teamdesk.errors import ConflictError, NotFoundError
from teamdesk.models import Equipment, EquipmentStatus, Team, User
from teamdesk.schemas.equipment import EquipmentAssign, EquipmentCreate, EquipmentOut, EquipmentUpdate
from teamdesk.utils.auth import get_current_user
from teamdesk.utils.permissions import require_admin

logger = logging.getLogger(__name__)

router = APIRouter()


def get_equipment_or_404(db: Session, equipment_id: int) -> Equipment:
    equipment = (
        db.query(Equipment)
        .options(joinedload(Equipment.assignee))
        .filter(Equipment.id == equipment_id)
        .first()
    )
    if not equipment:
        raise NotFoundError("Equipment not found")
    return equipment


def get_assignee_or_404(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id, User.is_deleted.is_(False)).first()
    if not user:
        raise NotFoundError("User not found")
    return user


def ensure_serial_available(db: Session, serial_number: str, exclude_id: Optional[int] = None):
    query = db.query(Equipment).filter(Equipment.serial_number == serial_number)
    if exclude_id is not None:
        query = query.filter(Equipment.id != exclude_id)
    if query.first():
        raise ConflictError("Serial number already registered")


def ensure_team_exists(db: Session, team_id: Optional[int]):
    if team_id is not None and not db.query(Team).filter(Team.id == team_id).first():
        raise NotFoundError("Team not found")


@router.get("/", response_model=List[EquipmentOut])
def get_equipment(
    status: Optional[EquipmentStatus] = None,
    team_id: Optional[int] = None,
    assigned_to: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = db.query(Equipment).options(joinedload(Equipment.assignee))
    if status:
        query = query.filter(Equipment.status == status)
    if team_id:
        query = query.filter(Equipment.team_id == team_id)
    if assigned_to:
        query = query.filter(Equipment.assigned_to == assigned_to)
    return query.order_by(Equipment.id).all()


@router.get("/{equipment_id}", response_model=EquipmentOut)
def get_equipment_item(equipment_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return get_equipment_or_404(db, equipment_id)


@router.post("/", response_model=EquipmentOut, status_code=status.HTTP_201_CREATED)
def create_equipment(
    equipment_data: EquipmentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    ensure_serial_available(db, equipment_data.serial_number)
    ensure_team_exists(db, equipment_data.team_id)

    data = equipment_data.model_dump(exclude={"assigned_to"})
    equipment = Equipment(**data)
    if equipment_data.assigned_to is not None:
        equipment.assign(get_assignee_or_404(db, equipment_data.assigned_to).id)

    db.add(equipment)
    db.commit()
    logger.info("Equipment %s (%s) created by %s", equipment.id, equipment.serial_number, current_user.id)
    return get_equipment_or_404(db, equipment.id)


@router.put("/{equipment_id}", response_model=EquipmentOut)
def update_equipment(
    equipment_id: int,
    equipment_update: EquipmentUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    equipment = get_equipment_or_404(db, equipment_id)
    update_data = equipment_update.model_dump(exclude_unset=True)

    if update_data.get("serial_number"):
        ensure_serial_available(db, update_data["serial_number"], exclude_id=equipment.id)
    if "team_id" in update_data:
        ensure_team_exists(db, update_data["team_id"])

    # Assignment drives status; an explicit status only applies when assignment is untouched
    if "assigned_to" in update_data:
        assignee_id = update_data.pop("assigned_to")
        update_data.pop("status", None)
        if assignee_id is not None:
            get_assignee_or_404(db, assignee_id)
        equipment.assign(assignee_id)

    for field, value in update_data.items():
        setattr(equipment, field, value)

    db.commit()
    return get_equipment_or_404(db, equipment_id)


@router.put("/{equipment_id}/assign", response_model=EquipmentOut)
def assign_equipment(
    equipment_id: int,
    assignment: EquipmentAssign,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Assign equipment to a user, or return it when ``user_id`` is empty"""
    equipment = get_equipment_or_404(db, equipment_id)
    if assignment.user_id is not None:
        get_assignee_or_404(db, assignment.user_id)
    equipment.assign(assignment.user_id)

    db.commit()
    logger.info("Equipment %s assigned to %s by %s", equipment_id, assignment.user_id, current_user.id)
    return get_equipment_or_404(db, equipment_id)


@router.delete("/{equipment_id}")
def delete_equipment(equipment_id: int, db: Session = Depends(get_db), current_user: User = Depends(require_admin)):
    equipment = get_equipment_or_404(db, equipment_id)
    db.delete(equipment)
    db.commit()
    logger.info("Equipment %s deleted by %s", equipment_id, current_user.id)
    return {"message": "Equipment deleted successfully"}
