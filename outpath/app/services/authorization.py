#
# Role-based action authorization.
#
from __future__ import annotations

from typing import Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import RoleAction, User
from ..settings import SETTINGS


class AuthorizationPolicy(Protocol):
    def is_allowed(self, action_name: str, *, username: str) -> bool: ...


def default_role_actions(role: str) -> tuple[str, ...]:
    if role == "user":
        return SETTINGS.user_role_actions
    return ()


class RoleAuthorizationPolicy:
    """Admins may do anything; other roles use configured defaults overridden by role action rows."""

    def __init__(self, db: Session):
        self.db = db

    def is_allowed(self, action_name: str, *, username: str) -> bool:
        user = self.db.scalar(select(User).where(User.username == username))
        if user is None or user.is_disabled:
            return False
        if user.role == "admin":
            return True
        override = self.db.get(RoleAction, (user.role, action_name))
        if override is not None:
            return override.is_allowed
        return action_name in default_role_actions(user.role)

    def set_role_action(self, role: str, action_name: str, *, is_allowed: bool) -> None:
        row = self.db.get(RoleAction, (role, action_name))
        if row is None:
            row = RoleAction(role=role, action=action_name)
        row.is_allowed = is_allowed
        self.db.add(row)
        self.db.flush()

    def clear_role_action(self, role: str, action_name: str) -> bool:
        row = self.db.get(RoleAction, (role, action_name))
        if row is None:
            return False
        self.db.delete(row)
        self.db.flush()
        return True
