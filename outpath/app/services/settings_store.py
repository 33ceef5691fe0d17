#
# User and system key/value settings.
#
from __future__ import annotations

from typing import Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import SystemSetting, User, UserSetting
from ..settings import SETTINGS


DEFAULT_OUTPUT_PATH_SETTING_KEY = "default-scheduler-output-path"


class SettingsStore(Protocol):
    def get_user_setting(self, key: str, username: str) -> str | None: ...

    def get_system_setting(self, key: str) -> str | None: ...


def configured_system_settings() -> dict[str, str]:
    # Values from the environment, used when no system setting row exists.
    out: dict[str, str] = {}
    if SETTINGS.default_scheduler_output_path:
        out[DEFAULT_OUTPUT_PATH_SETTING_KEY] = SETTINGS.default_scheduler_output_path
    return out


class SqlSettingsStore:
    def __init__(self, db: Session):
        self.db = db

    def _user_id(self, username: str) -> str | None:
        return self.db.scalar(select(User.id).where(User.username == username))

    def get_user_setting(self, key: str, username: str) -> str | None:
        user_id = self._user_id(username)
        if user_id is None:
            return None
        row = self.db.get(UserSetting, (user_id, key))
        if row is None or not row.value.strip():
            return None
        return row.value

    def get_system_setting(self, key: str) -> str | None:
        row = self.db.get(SystemSetting, key)
        if row is not None:
            return row.value
        return configured_system_settings().get(key)

    def set_user_setting(self, key: str, value: str, *, user_id: str) -> UserSetting:
        row = self.db.get(UserSetting, (user_id, key))
        if row is None:
            row = UserSetting(user_id=user_id, key=key, value=value)
        row.value = value
        self.db.add(row)
        self.db.flush()
        return row

    def set_system_setting(self, key: str, value: str) -> SystemSetting:
        row = self.db.get(SystemSetting, key)
        if row is None:
            row = SystemSetting(key=key, value=value)
        row.value = value
        self.db.add(row)
        self.db.flush()
        return row
