"""Pytest fixtures: in-memory database, API client and data factories"""
import os

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["ENVIRONMENT"] = "test"
os.environ["SCHEDULER_ENABLED"] = "false"

from datetime import datetime, timedelta
from itertools import count

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from main import app
from teamdesk.database import Base, get_db
from teamdesk.models import (
    User, Role, Team, TeamMember, LEADER_LABEL, MEMBER_LABEL,
    Project, ProjectStatus, Task, TaskStatus, Equipment,
)
from teamdesk.utils.security import create_access_token, hash_password

PASSWORD = "secret123"

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

_sequence = count(1)


@pytest.fixture()
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client(db):
    def override_get_db():
        try:
            yield db
        finally:
            # Drop anything a failed request left pending
            db.rollback()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def make_user(db):
    def factory(role=Role.USER, team=None, can_manage_tasks=False, is_deleted=False, name=None, email=None,
                password=PASSWORD):
        n = next(_sequence)
        user = User(
            name=name or f"User {n}",
            email=email or f"user{n}@example.com",
            hashed_password=hash_password(password),
            role=role,
            can_manage_tasks=can_manage_tasks,
            is_deleted=is_deleted,
        )
        db.add(user)
        db.flush()
        if team is not None:
            label = LEADER_LABEL if role == Role.TEAM_LEADER else MEMBER_LABEL
            team.members.append(TeamMember(user_id=user.id, role=label))
            user.team_id = team.id
        db.commit()
        db.refresh(user)
        return user

    return factory


@pytest.fixture()
def make_team(db):
    def factory(name=None):
        team = Team(name=name or f"Team {next(_sequence)}", description="Test team")
        db.add(team)
        db.commit()
        db.refresh(team)
        return team

    return factory


@pytest.fixture()
def make_project(db):
    def factory(team, status=ProjectStatus.ACTIVE, name=None, manager=None, tags=None):
        project = Project(
            name=name or f"Project {next(_sequence)}",
            description="Test project",
            team_id=team.id,
            status=status,
            project_manager_id=manager.id if manager else None,
            tags=tags or [],
        )
        db.add(project)
        db.commit()
        db.refresh(project)
        return project

    return factory


@pytest.fixture()
def make_task(db):
    def factory(team, project=None, assignee=None, status=TaskStatus.PENDING, due_in_days=7, title=None):
        task = Task(
            title=title or f"Task {next(_sequence)}",
            team_id=team.id,
            project_id=project.id if project else None,
            assigned_to=assignee.id if assignee else None,
            due_date=datetime.utcnow() + timedelta(days=due_in_days),
        )
        task.set_status(status)
        db.add(task)
        db.commit()
        db.refresh(task)
        return task

    return factory


@pytest.fixture()
def make_equipment(db):
    def factory(assignee=None, team=None, serial_number=None):
        equipment = Equipment(
            name="Laptop",
            type="laptop",
            serial_number=serial_number or f"SN-{next(_sequence):05d}",
            purchase_date=datetime.utcnow() - timedelta(days=30),
            team_id=team.id if team else None,
        )
        if assignee is not None:
            equipment.assign(assignee.id)
        db.add(equipment)
        db.commit()
        db.refresh(equipment)
        return equipment

    return factory


def auth_headers(user):
    token = create_access_token({"sub": user.email, "user_id": user.id})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def headers():
    return auth_headers


@pytest.fixture()
def admin(make_user):
    return make_user(role=Role.ADMIN, name="Admin")
