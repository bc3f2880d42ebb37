# teamdesk/models/user.py
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Enum
from sqlalchemy.orm import relationship
from datetime import datetime
from teamdesk.database import Base
import enum


class Role(str, enum.Enum):
    ADMIN = "admin"
    TEAM_LEADER = "team_leader"
    TEAM_MEMBER = "team_member"
    USER = "user"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    phone = Column(String, nullable=True)
    hashed_password = Column(String, nullable=False)
    role = Column(Enum(Role), nullable=False, default=Role.USER)

    # Primary team; team leaders manage tasks of this team only
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=True, index=True)
    # Admin-controlled, only meaningful for team leaders
    can_manage_tasks = Column(Boolean, nullable=False, default=False)
    is_deleted = Column(Boolean, nullable=False, default=False, index=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    team = relationship("Team", foreign_keys=[team_id])
    memberships = relationship("TeamMember", back_populates="user")
    assigned_tasks = relationship("Task", back_populates="assignee", foreign_keys="Task.assigned_to")

    @property
    def status(self) -> str:
        return "deleted" if self.is_deleted else "active"

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"
