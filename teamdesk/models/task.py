from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum, Text, Float, JSON
from sqlalchemy.orm import relationship
from teamdesk.database import Base
import enum
from datetime import datetime


class TaskStatus(str, enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class TaskPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Task(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False, index=True)
    description = Column(Text, nullable=True)

    # Relationships
    assigned_to = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=True, index=True)

    # Task properties
    status = Column(Enum(TaskStatus), default=TaskStatus.PENDING, nullable=False, index=True)
    priority = Column(Enum(TaskPriority), default=TaskPriority.MEDIUM, nullable=False)
    due_date = Column(DateTime, nullable=False)
    estimated_hours = Column(Float, default=0, nullable=False)
    actual_hours = Column(Float, default=0, nullable=False)
    tags = Column(JSON, default=list, nullable=False)

    # System dates
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    completed_at = Column(DateTime, nullable=True)

    # Relationships
    assignee = relationship("User", foreign_keys=[assigned_to], back_populates="assigned_tasks")
    team = relationship("Team", back_populates="tasks")
    project = relationship("Project", back_populates="tasks")

    def set_status(self, status: TaskStatus):
        """Change status keeping completed_at in step with it"""
        if status == TaskStatus.COMPLETED and self.status != TaskStatus.COMPLETED:
            self.completed_at = datetime.utcnow()
        elif status != TaskStatus.COMPLETED:
            self.completed_at = None
        self.status = status
