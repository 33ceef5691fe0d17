from __future__ import annotations

from fastapi import APIRouter, Path
from pydantic import BaseModel
from sqlalchemy import select

from ..deps import AdminUserDep, DbDep, RepositoryDep
from ..models import RoleAction, SystemSetting
from ..services.authorization import RoleAuthorizationPolicy, default_role_actions
from ..services.settings_store import DEFAULT_OUTPUT_PATH_SETTING_KEY, SqlSettingsStore
from ..utils.errors import http_error
from . import admin_users
from .admin_common import commit_db
from .settings import require_output_folder


router = APIRouter(prefix="/admin", tags=["admin"])
router.include_router(admin_users.router)


class RoleActionItem(BaseModel):
    role: str
    action: str
    is_allowed: bool
    source: str


@router.get("/role-actions", response_model=list[RoleActionItem])
def list_role_actions(_: AdminUserDep, db: DbDep):
    overrides = db.scalars(select(RoleAction).order_by(RoleAction.role.asc(), RoleAction.action.asc())).all()
    seen = {(row.role, row.action) for row in overrides}
    items = [
        RoleActionItem(role=row.role, action=row.action, is_allowed=row.is_allowed, source="db")
        for row in overrides
    ]
    for action in default_role_actions("user"):
        if ("user", action) not in seen:
            items.append(RoleActionItem(role="user", action=action, is_allowed=True, source="default"))
    return items


class PutRoleActionRequest(BaseModel):
    is_allowed: bool


@router.put("/role-actions/{role}/{action}")
def put_role_action(
    _: AdminUserDep,
    db: DbDep,
    req: PutRoleActionRequest,
    role: str = Path(..., max_length=16),
    action: str = Path(..., max_length=128),
):
    if role not in ("user", "admin"):
        http_error(422, "invalid_request", "Invalid role")
    RoleAuthorizationPolicy(db).set_role_action(role, action, is_allowed=req.is_allowed)
    commit_db(db)
    return {"ok": True}


@router.delete("/role-actions/{role}/{action}")
def delete_role_action(_: AdminUserDep, db: DbDep, role: str, action: str):
    if not RoleAuthorizationPolicy(db).clear_role_action(role, action):
        http_error(404, "not_found", "Role action override not found")
    commit_db(db)
    return {"ok": True}


class SystemSettingItem(BaseModel):
    key: str
    value: str | None = None


@router.get("/system-settings/{key}", response_model=SystemSettingItem)
def get_system_setting(_: AdminUserDep, db: DbDep, key: str):
    return SystemSettingItem(key=key, value=SqlSettingsStore(db).get_system_setting(key))


class PutSystemSettingRequest(BaseModel):
    value: str


@router.put("/system-settings/{key}", response_model=SystemSettingItem)
def put_system_setting(admin: AdminUserDep, db: DbDep, repo: RepositoryDep, key: str, req: PutSystemSettingRequest):
    value = req.value
    if key == DEFAULT_OUTPUT_PATH_SETTING_KEY:
        value = require_output_folder(repo, value, username=admin.username)
    row: SystemSetting = SqlSettingsStore(db).set_system_setting(key, value)
    commit_db(db)
    return SystemSettingItem(key=row.key, value=row.value)
