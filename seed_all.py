"""
Master Database Seeding Script
Creates database tables and populates them with demo data
"""

import sys
from datetime import datetime, timedelta

from create_tables import create_tables
from teamdesk.database import SessionLocal
from teamdesk.models import (
    User, Role, Team, TeamMember, LEADER_LABEL, MEMBER_LABEL,
    Project, ProjectStatus, ProjectPriority, Task, TaskStatus, TaskPriority,
    Equipment, EquipmentStatus,
)
from teamdesk.services.project_progress import recompute_all
from teamdesk.utils.security import hash_password

DEMO_PASSWORD = "password123"

DEMO_USERS = [
    {"name": "Alice Carter", "email": "alice@example.com", "role": Role.TEAM_LEADER, "can_manage_tasks": True},
    {"name": "Bob Nguyen", "email": "bob@example.com", "role": Role.TEAM_MEMBER},
    {"name": "Chloe Martin", "email": "chloe@example.com", "role": Role.TEAM_MEMBER},
    {"name": "Daniel Okafor", "email": "daniel@example.com", "role": Role.TEAM_LEADER, "can_manage_tasks": False},
    {"name": "Eva Rossi", "email": "eva@example.com", "role": Role.TEAM_MEMBER},
    {"name": "Frank Weber", "email": "frank@example.com", "role": Role.USER},
]

DEMO_TEAMS = [
    {
        "name": "Platform",
        "description": "Backend services and infrastructure",
        "leader": "alice@example.com",
        "members": ["bob@example.com", "chloe@example.com"],
    },
    {
        "name": "Field Operations",
        "description": "On-site installation crews",
        "leader": "daniel@example.com",
        "members": ["eva@example.com"],
    },
]

DEMO_PROJECTS = [
    {
        "name": "Billing Migration",
        "description": "Move invoicing to the new payments provider",
        "team": "Platform",
        "status": ProjectStatus.ACTIVE,
        "priority": ProjectPriority.HIGH,
        "deadline_days": 45,
        "tags": ["payments", "migration"],
    },
    {
        "name": "Observability Revamp",
        "description": "Dashboards and alerting for core services",
        "team": "Platform",
        "status": ProjectStatus.PLANNING,
        "priority": ProjectPriority.MEDIUM,
        "deadline_days": 90,
        "tags": ["monitoring"],
    },
    {
        "name": "Warehouse Rollout",
        "description": "Install scanners in the north warehouse",
        "team": "Field Operations",
        "status": ProjectStatus.ON_HOLD,
        "priority": ProjectPriority.URGENT,
        "deadline_days": 20,
        "tags": ["hardware"],
    },
]

DEMO_TASKS = [
    {"title": "Map invoice schema", "project": "Billing Migration", "assignee": "bob@example.com",
     "status": TaskStatus.COMPLETED, "priority": TaskPriority.HIGH, "due_days": -3},
    {"title": "Dual-write payments", "project": "Billing Migration", "assignee": "chloe@example.com",
     "status": TaskStatus.IN_PROGRESS, "priority": TaskPriority.HIGH, "due_days": 7},
    {"title": "Cutover runbook", "project": "Billing Migration", "assignee": None,
     "status": TaskStatus.PENDING, "priority": TaskPriority.MEDIUM, "due_days": 30},
    {"title": "Pick metrics backend", "project": "Observability Revamp", "assignee": "alice@example.com",
     "status": TaskStatus.PENDING, "priority": TaskPriority.LOW, "due_days": 14},
    {"title": "Survey loading bays", "project": "Warehouse Rollout", "assignee": "eva@example.com",
     "status": TaskStatus.PENDING, "priority": TaskPriority.MEDIUM, "due_days": -1},
]

DEMO_EQUIPMENT = [
    {"name": "ThinkPad X1", "type": "laptop", "serial_number": "LT-0001", "assignee": "bob@example.com", "team": "Platform"},
    {"name": "MacBook Pro", "type": "laptop", "serial_number": "LT-0002", "assignee": None, "team": "Platform"},
    {"name": "Zebra TC52", "type": "scanner", "serial_number": "SC-0001", "assignee": "eva@example.com", "team": "Field Operations"},
    {"name": "Zebra TC52", "type": "scanner", "serial_number": "SC-0002", "assignee": None, "team": "Field Operations",
     "status": EquipmentStatus.MAINTENANCE},
]


def seed_demo_users(db):
    users = {}
    for data in DEMO_USERS:
        user = db.query(User).filter(User.email == data["email"]).first()
        if user is None:
            user = User(
                name=data["name"],
                email=data["email"],
                hashed_password=hash_password(DEMO_PASSWORD),
                role=data["role"],
                can_manage_tasks=data.get("can_manage_tasks", False),
            )
            db.add(user)
        users[data["email"]] = user
    db.flush()
    print(f"[SUCCESS] {len(users)} users ready")
    return users


def seed_demo_teams(db, users):
    teams = {}
    users_by_id = {user.id: user for user in users.values()}
    for data in DEMO_TEAMS:
        team = db.query(Team).filter(Team.name == data["name"]).first()
        if team is None:
            team = Team(name=data["name"], description=data["description"])
            db.add(team)
            db.flush()
            team.members.append(TeamMember(user_id=users[data["leader"]].id, role=LEADER_LABEL))
            for email in data["members"]:
                team.members.append(TeamMember(user_id=users[email].id, role=MEMBER_LABEL))
        for member in team.members:
            if member.user_id in users_by_id:
                users_by_id[member.user_id].team_id = team.id
        teams[data["name"]] = team
    db.flush()
    print(f"[SUCCESS] {len(teams)} teams ready")
    return teams


def seed_demo_projects(db, users, teams):
    projects = {}
    now = datetime.utcnow()
    for data in DEMO_PROJECTS:
        project = db.query(Project).filter(Project.name == data["name"]).first()
        if project is None:
            team = teams[data["team"]]
            leader_email = next(t["leader"] for t in DEMO_TEAMS if t["name"] == data["team"])
            project = Project(
                name=data["name"],
                description=data["description"],
                team_id=team.id,
                status=data["status"],
                priority=data["priority"],
                start_date=now - timedelta(days=10),
                deadline=now + timedelta(days=data["deadline_days"]),
                project_manager_id=users[leader_email].id,
                tags=data["tags"],
            )
            db.add(project)
        projects[data["name"]] = project
    db.flush()
    print(f"[SUCCESS] {len(projects)} projects ready")
    return projects


def seed_demo_tasks(db, users, projects):
    created = 0
    now = datetime.utcnow()
    for data in DEMO_TASKS:
        if db.query(Task).filter(Task.title == data["title"]).first():
            continue
        project = projects[data["project"]]
        task = Task(
            title=data["title"],
            team_id=project.team_id,
            project_id=project.id,
            assigned_to=users[data["assignee"]].id if data["assignee"] else None,
            priority=data["priority"],
            due_date=now + timedelta(days=data["due_days"]),
        )
        task.set_status(data["status"])
        db.add(task)
        created += 1
    db.flush()
    print(f"[SUCCESS] {created} tasks created")


def seed_demo_equipment(db, users, teams):
    created = 0
    for data in DEMO_EQUIPMENT:
        if db.query(Equipment).filter(Equipment.serial_number == data["serial_number"]).first():
            continue
        equipment = Equipment(
            name=data["name"],
            type=data["type"],
            serial_number=data["serial_number"],
            purchase_date=datetime.utcnow() - timedelta(days=365),
            team_id=teams[data["team"]].id,
            status=data.get("status", EquipmentStatus.AVAILABLE),
        )
        if data["assignee"]:
            equipment.assign(users[data["assignee"]].id)
        db.add(equipment)
        created += 1
    db.flush()
    print(f"[SUCCESS] {created} equipment items created")


def main():
    print(f"\n{'=' * 60}")
    print("TEAMDESK DATABASE SEEDING")
    print(f"{'=' * 60}")

    create_tables()

    db = SessionLocal()
    try:
        users = seed_demo_users(db)
        teams = seed_demo_teams(db, users)
        projects = seed_demo_projects(db, users, teams)
        seed_demo_tasks(db, users, projects)
        seed_demo_equipment(db, users, teams)
        db.commit()
        recompute_all(db)
    except Exception as e:
        db.rollback()
        print(f"[ERROR] Seeding failed: {e}")
        sys.exit(1)
    finally:
        db.close()

    print("\n[INFO] Login credentials:")
    print("   - Admin: admin@example.com / admin123")
    print(f"   - All demo users: {DEMO_PASSWORD}")
    print(f"\nCompleted at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")


if __name__ == "__main__":
    main()
