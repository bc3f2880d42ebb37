from .user import UserCreate, UserRegister, UserLogin, UserOut, UserAdminOut, UserBasic, UserUpdate, PasswordChange, BulkUserIds
from .tokens import Token, TokenVerification, ForgotPasswordRequest, ForgotPasswordResponse, CompleteResetRequest, ResetPasswordRequest
from .permissions import PermissionSet
from .team import TeamCreate, TeamUpdate, TeamBasic, TeamOut, TeamMemberAdd, TeamMemberOut
from .task import TaskCreate, TaskUpdate, TaskOut
from .project import ProjectCreate, ProjectUpdate, ProjectOut, ProjectDetail, ProjectPage, TaskStats, ProjectStatsOut, ProjectDeleteResult
from .equipment import EquipmentCreate, EquipmentUpdate, EquipmentAssign, EquipmentOut
