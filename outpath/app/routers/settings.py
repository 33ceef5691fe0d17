from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter
from pydantic import BaseModel

from ..deps import CurrentUserDep, DbDep, RepositoryDep
from ..models import UserSetting
from ..services.repository import SqlRepository
from ..services.scheduler_errors import OperationFailed
from ..services.settings_store import DEFAULT_OUTPUT_PATH_SETTING_KEY, SqlSettingsStore
from ..utils.errors import http_error, operation_error
from ..utils.repo_paths import normalize_repo_path
from .admin_common import commit_db


router = APIRouter(prefix="/settings", tags=["settings"])


def iso_utc(value: datetime) -> str:
    # SQLite drops tzinfo; stored values are UTC.
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def require_output_folder(repo: SqlRepository, value: str, *, username: str) -> str:
    """Normalize a default output folder, checking it the way the resolver trusts it to be.

    The resolver does not re-check read+write access on default output
    folders, so they must exist and be writable by ``username`` when saved.
    An empty value passes through and clears the setting.
    """

    if not value.strip():
        return ""
    path = normalize_repo_path(value)
    try:
        info = repo.get_file(path, username=username)
    except OperationFailed as e:
        operation_error(e)
    if info is None or not info.is_folder:
        http_error(422, "invalid_output_path", f"Not an existing folder: {path}")
    if not repo.has_read_write_access(path, username=username):
        http_error(403, "forbidden", f"No read+write access: {path}")
    return path


class OutputPathSettingResponse(BaseModel):
    key: str = DEFAULT_OUTPUT_PATH_SETTING_KEY
    user_value: str | None = None
    system_value: str | None = None
    updated_at: str | None = None


@router.get("/scheduler-output-path", response_model=OutputPathSettingResponse)
def get_output_path_setting(user: CurrentUserDep, db: DbDep):
    store = SqlSettingsStore(db)
    row = db.get(UserSetting, (user.id, DEFAULT_OUTPUT_PATH_SETTING_KEY))
    return OutputPathSettingResponse(
        user_value=store.get_user_setting(DEFAULT_OUTPUT_PATH_SETTING_KEY, user.username),
        system_value=store.get_system_setting(DEFAULT_OUTPUT_PATH_SETTING_KEY),
        updated_at=iso_utc(row.updated_at) if row else None,
    )


class PutOutputPathSettingRequest(BaseModel):
    # Empty clears the user default.
    value: str = ""


@router.put("/scheduler-output-path", response_model=OutputPathSettingResponse)
def put_output_path_setting(user: CurrentUserDep, db: DbDep, repo: RepositoryDep, req: PutOutputPathSettingRequest):
    store = SqlSettingsStore(db)
    value = require_output_folder(repo, req.value, username=user.username)
    row = store.set_user_setting(DEFAULT_OUTPUT_PATH_SETTING_KEY, value, user_id=user.id)
    commit_db(db)
    return OutputPathSettingResponse(
        user_value=value or None,
        system_value=store.get_system_setting(DEFAULT_OUTPUT_PATH_SETTING_KEY),
        updated_at=iso_utc(row.updated_at),
    )
