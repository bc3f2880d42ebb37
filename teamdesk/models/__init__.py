from .user import User, Role
from .team import Team, TeamMember, LEADER_LABEL, MEMBER_LABEL
from .project import Project, ProjectStatus, ProjectPriority
from .task import Task, TaskStatus, TaskPriority
from .equipment import Equipment, EquipmentStatus
