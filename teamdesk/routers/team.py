# teamdesk/routers/team.py
import logging
from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from teamdesk.database import get_db
from teamdesk.errors import ConflictError, NotFoundError, ValidationError
from teamdesk.models import Equipment, Project, Task, Team, TeamMember, User, Role, LEADER_LABEL, MEMBER_LABEL
from teamdesk.schemas.team import TeamCreate, TeamMemberAdd, TeamOut, TeamUpdate
from teamdesk.utils.auth import get_current_user
from teamdesk.utils.permissions import require_admin

logger = logging.getLogger(__name__)

router = APIRouter()


def get_team_or_404(db: Session, team_id: int) -> Team:
    team = db.query(Team).filter(Team.id == team_id).first()
    if not team:
        raise NotFoundError("Team not found")
    return team


def join_team(team: Team, user: User, label: str = MEMBER_LABEL):
    """Add a membership row and point the user at the team, leaving any other team"""
    for entry in list(user.memberships):
        if entry.team_id != team.id:
            entry.team.members.remove(entry)
    if not team.has_member(user.id):
        team.members.append(TeamMember(user_id=user.id, role=label, joined_at=datetime.utcnow()))
    else:
        team.member_entry(user.id).role = label
    user.team_id = team.id
    # Admins keep their role when they join a team
    if user.role != Role.ADMIN:
        user.role = Role.TEAM_LEADER if label == LEADER_LABEL else Role.TEAM_MEMBER
        if user.role != Role.TEAM_LEADER:
            user.can_manage_tasks = False


@router.get("/", response_model=List[TeamOut])
def get_all_teams(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return db.query(Team).order_by(Team.id).all()


@router.get("/{team_id}", response_model=TeamOut)
def get_team(team_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return get_team_or_404(db, team_id)


@router.post("/", response_model=TeamOut, status_code=status.HTTP_201_CREATED)
def create_team(team_data: TeamCreate, db: Session = Depends(get_db), current_user: User = Depends(require_admin)):
    """Create a team; listed members join it and the leader is promoted"""
    if not team_data.name.strip():
        raise ValidationError("Team name is required")

    member_ids = list(dict.fromkeys(team_data.member_ids))
    # Make sure the leader is one of the members
    if team_data.team_leader_id is not None and team_data.team_leader_id not in member_ids:
        member_ids.append(team_data.team_leader_id)

    members = []
    if member_ids:
        members = db.query(User).filter(User.id.in_(member_ids), User.is_deleted.is_(False)).all()
        if len(members) != len(member_ids):
            raise ValidationError("One or more team members not found")

    db_team = Team(name=team_data.name.strip(), description=team_data.description)
    db.add(db_team)
    db.flush()

    by_id = {member.id: member for member in members}
    for user_id in member_ids:
        label = LEADER_LABEL if user_id == team_data.team_leader_id else MEMBER_LABEL
        join_team(db_team, by_id[user_id], label)

    db.commit()
    db.refresh(db_team)
    logger.info("Team %s created with %s members by %s", db_team.id, len(member_ids), current_user.id)
    return db_team


@router.put("/{team_id}", response_model=TeamOut)
def update_team(
    team_id: int,
    team_update: TeamUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    db_team = get_team_or_404(db, team_id)

    update_data = team_update.model_dump(exclude_unset=True)
    if "name" in update_data and not (update_data["name"] or "").strip():
        raise ValidationError("Team name is required")
    for field, value in update_data.items():
        setattr(db_team, field, value)

    db.commit()
    db.refresh(db_team)
    return db_team


@router.delete("/{team_id}")
def delete_team(team_id: int, db: Session = Depends(get_db), current_user: User = Depends(require_admin)):
    """Delete a team that no longer owns projects or tasks"""
    db_team = get_team_or_404(db, team_id)

    project_count = db.query(Project).filter(Project.team_id == team_id).count()
    task_count = db.query(Task).filter(Task.team_id == team_id).count()
    if project_count or task_count:
        raise ConflictError(
            f"Team still owns {project_count} projects and {task_count} tasks; move or delete them first"
        )

    released_users = db.query(User).filter(User.team_id == team_id).update(
        {User.team_id: None}, synchronize_session=False
    )
    db.query(Equipment).filter(Equipment.team_id == team_id).update(
        {Equipment.team_id: None}, synchronize_session=False
    )
    db.delete(db_team)
    db.commit()

    logger.info("Team %s deleted; %s users released", team_id, released_users)
    return {"message": "Team deleted successfully and all assignments cleared"}


@router.post("/{team_id}/members", response_model=TeamOut)
def add_team_member(
    team_id: int,
    member_data: TeamMemberAdd,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    team = get_team_or_404(db, team_id)
    user = db.query(User).filter(User.id == member_data.user_id, User.is_deleted.is_(False)).first()
    if not user:
        raise NotFoundError("User not found")
    if team.has_member(user.id):
        raise ConflictError("User is already a team member")

    join_team(team, user, MEMBER_LABEL)
    db.commit()
    db.refresh(team)
    return team


@router.delete("/{team_id}/members/{user_id}")
def remove_team_member(
    team_id: int,
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    team = get_team_or_404(db, team_id)
    entry = team.member_entry(user_id)
    if entry is None:
        raise NotFoundError("User is not a member of this team")

    team.members.remove(entry)
    user = db.query(User).filter(User.id == user_id).first()
    if user is not None and user.team_id == team_id:
        user.team_id = None
        if user.role == Role.TEAM_LEADER:
            user.role = Role.TEAM_MEMBER
            user.can_manage_tasks = False
    db.commit()
    db.refresh(team)
    return {"message": "Member removed from team successfully", "team": TeamOut.model_validate(team)}


@router.put("/{team_id}/promote/{user_id}")
def promote_to_team_leader(
    team_id: int,
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Make a member the team leader, demoting the current one"""
    team = get_team_or_404(db, team_id)
    entry = team.member_entry(user_id)
    if entry is None:
        raise NotFoundError("User is not a member of this team")

    user = db.query(User).filter(User.id == user_id, User.is_deleted.is_(False)).first()
    if not user:
        raise NotFoundError("User not found")

    current_leader = db.query(User).filter(
        User.team_id == team_id,
        User.role == Role.TEAM_LEADER,
        User.is_deleted.is_(False),
        User.id != user_id,
    ).first()
    if current_leader:
        current_leader.role = Role.TEAM_MEMBER
        current_leader.can_manage_tasks = False
        leader_entry = team.member_entry(current_leader.id)
        if leader_entry is not None:
            leader_entry.role = MEMBER_LABEL

    for member in team.members:
        if member.role == LEADER_LABEL and member.user_id != user_id:
            member.role = MEMBER_LABEL

    user.role = Role.TEAM_LEADER
    user.team_id = team_id
    entry.role = LEADER_LABEL
    db.commit()
    db.refresh(team)

    logger.info("User %s promoted to leader of team %s", user_id, team_id)
    return {"message": "User promoted to team leader successfully", "team": TeamOut.model_validate(team)}
