from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from .auth import decode_access_token
from .db import SessionLocal
from .models import User
from .services.output_path_resolver import OutputPathResolver, build_output_path_resolver
from .services.repository import SqlRepository


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


DbDep = Annotated[Session, Depends(get_db)]


def _unauthorized(message: str) -> HTTPException:
    return HTTPException(status_code=401, detail={"error": {"code": "unauthorized", "message": message}})


def get_current_user(
    db: DbDep,
    authorization: Annotated[str | None, Header()] = None,
) -> User:
    if not authorization or not authorization.startswith("Bearer "):
        raise _unauthorized("Missing token")

    token = authorization.removeprefix("Bearer ").strip()
    try:
        payload = decode_access_token(token)
    except Exception:
        raise _unauthorized("Invalid token")

    user_id = payload.get("sub")
    if not isinstance(user_id, str) or not user_id:
        raise _unauthorized("Invalid token")

    user = db.get(User, user_id)
    if not user or user.is_disabled:
        raise HTTPException(status_code=403, detail={"error": {"code": "forbidden", "message": "User disabled"}})
    return user


CurrentUserDep = Annotated[User, Depends(get_current_user)]


def require_admin(user: CurrentUserDep) -> User:
    if user.role != "admin":
        raise HTTPException(status_code=403, detail={"error": {"code": "forbidden", "message": "Admin only"}})
    return user


AdminUserDep = Annotated[User, Depends(require_admin)]


def get_repository(db: DbDep) -> SqlRepository:
    return SqlRepository(db)


RepositoryDep = Annotated[SqlRepository, Depends(get_repository)]


def get_output_path_resolver(db: DbDep) -> OutputPathResolver:
    return build_output_path_resolver(db)


ResolverDep = Annotated[OutputPathResolver, Depends(get_output_path_resolver)]
