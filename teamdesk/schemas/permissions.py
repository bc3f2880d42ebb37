from pydantic import BaseModel


class PermissionSet(BaseModel):
    can_edit: bool = False
    can_delete: bool = False
    can_manage_tasks: bool = False
    can_view: bool = True
    is_own_team: bool = False
