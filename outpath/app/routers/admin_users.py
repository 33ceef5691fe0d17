from __future__ import annotations

"""Admin user management endpoints."""

import re
from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import and_, func, select

from ..auth import hash_password
from ..deps import AdminUserDep, DbDep, RepositoryDep
from ..models import User
from ..utils.errors import http_error
from .admin_common import commit_db, refresh_db


router = APIRouter()

# - GET   /users: list (filter by username/role/is_disabled, paginated)
# - POST  /users: create a user and its home folder
# - PATCH /users/{id}: change role/is_disabled (keeps at least one active admin)

USERNAME_RE = re.compile(r"^[a-zA-Z0-9_.-]{3,32}$")
ROLES = ("user", "admin")


class UserItem(BaseModel):
    id: str
    username: str
    role: str
    is_disabled: bool
    created_at: datetime


class UsersListResponse(BaseModel):
    items: list[UserItem]
    total: int


class ListUsersParams(BaseModel):
    q: str | None = None
    role: str | None = None
    is_disabled: bool | None = None
    limit: int = 50
    offset: int = 0


def get_list_users_params(
    q: str | None = None,
    role: str | None = None,
    is_disabled: bool | None = None,
    limit: int = 50,
    offset: int = 0,
) -> ListUsersParams:
    return ListUsersParams(q=q, role=role, is_disabled=is_disabled, limit=limit, offset=offset)


@router.get("/users", response_model=UsersListResponse)
def list_users(
    _: AdminUserDep,
    db: DbDep,
    params: ListUsersParams = Depends(get_list_users_params),
):
    stmt = select(User).order_by(User.created_at.desc())
    if params.q:
        stmt = stmt.where(User.username.like(f"%{params.q}%"))
    if params.role:
        role_key = params.role.strip()
        if role_key not in ROLES:
            http_error(422, "invalid_request", "Invalid role")
        stmt = stmt.where(User.role == role_key)
    if params.is_disabled is not None:
        stmt = stmt.where(User.is_disabled == params.is_disabled)
    total = db.scalar(select(func.count()).select_from(stmt.subquery())) or 0
    items = db.scalars(stmt.limit(params.limit).offset(params.offset)).all()
    return UsersListResponse(
        items=[UserItem.model_validate(u, from_attributes=True) for u in items],
        total=total,
    )


class CreateUserRequest(BaseModel):
    username: str
    password: str
    role: str = "user"
    is_disabled: bool = False


@router.post("/users", response_model=UserItem, status_code=201)
def create_user(_: AdminUserDep, db: DbDep, repo: RepositoryDep, req: CreateUserRequest):
    """Create a new user and its home folder (admin-only)."""
    username = req.username.strip()
    if not USERNAME_RE.match(username):
        http_error(422, "invalid_request", "Invalid username")
    if not (8 <= len(req.password) <= 72):
        http_error(422, "invalid_request", "Invalid password length")

    role_key = (req.role or "user").strip() or "user"
    if role_key not in ROLES:
        http_error(422, "invalid_request", "Invalid role")

    if db.scalar(select(User).where(User.username == username)):
        http_error(409, "conflict", "Username already exists")

    user = User(
        username=username,
        password_hash=hash_password(req.password),
        role=role_key,
        is_disabled=bool(req.is_disabled),
    )
    db.add(user)
    db.flush()
    repo.ensure_home_folder(user)
    commit_db(db)
    refresh_db(db, user)
    return UserItem.model_validate(user, from_attributes=True)


class PatchUserRequest(BaseModel):
    is_disabled: bool | None = None
    role: str | None = None


@router.patch("/users/{user_id}")
def patch_user(admin: AdminUserDep, db: DbDep, user_id: str, req: PatchUserRequest):
    user = db.get(User, user_id)
    if not user:
        http_error(404, "not_found", "User not found")

    if user.id == admin.id and req.is_disabled:
        http_error(409, "conflict", "Cannot disable yourself")

    if req.role and req.role not in ROLES:
        http_error(422, "invalid_request", "Invalid role")

    # Ensure at least one active admin.
    if (req.role == "user" or req.is_disabled is True) and user.role == "admin" and not user.is_disabled:
        active_admins = db.scalar(
            select(func.count()).select_from(User).where(and_(User.role == "admin", User.is_disabled == False))  # noqa: E712
        )
        if (active_admins or 0) <= 1:
            http_error(409, "conflict", "Must keep at least one active admin")

    if req.is_disabled is not None:
        user.is_disabled = req.is_disabled
    if req.role is not None:
        user.role = req.role
    db.add(user)
    commit_db(db)
    return {"ok": True}
