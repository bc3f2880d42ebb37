from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum, Text
from sqlalchemy.orm import relationship
from teamdesk.database import Base
import enum
from datetime import datetime


class EquipmentStatus(str, enum.Enum):
    AVAILABLE = "available"
    ASSIGNED = "assigned"
    MAINTENANCE = "maintenance"


class Equipment(Base):
    __tablename__ = "equipment"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    type = Column(String, nullable=False, index=True)
    status = Column(Enum(EquipmentStatus), nullable=False, default=EquipmentStatus.AVAILABLE, index=True)
    assigned_to = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=True)
    assigned_date = Column(DateTime, nullable=True)
    return_date = Column(DateTime, nullable=True)
    description = Column(Text, nullable=True)
    serial_number = Column(String, unique=True, nullable=False)
    purchase_date = Column(DateTime, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    assignee = relationship("User", foreign_keys=[assigned_to])
    team = relationship("Team", foreign_keys=[team_id])

    def assign(self, user_id):
        if user_id:
            self.assigned_to = user_id
            self.status = EquipmentStatus.ASSIGNED
            self.assigned_date = datetime.utcnow()
        else:
            self.release()

    def release(self):
        self.assigned_to = None
        self.assigned_date = None
        self.status = EquipmentStatus.AVAILABLE
