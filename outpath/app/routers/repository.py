from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Query
from pydantic import BaseModel

from ..deps import CurrentUserDep, DbDep, RepositoryDep
from ..services.repository import SCHEDULABLE_KEY
from ..services.scheduler_errors import OperationFailed
from ..utils.errors import http_error, operation_error
from .admin_common import commit_db


router = APIRouter(prefix="/repo", tags=["repository"])


class FolderOut(BaseModel):
    id: str
    path: str
    owner_user_id: str | None = None
    metadata: dict[str, str]
    can_read: bool
    can_write: bool


def _folder_out(repo: RepositoryDep, path: str, username: str) -> FolderOut:
    try:
        info = repo.get_file(path, username=username)
    except OperationFailed as e:
        operation_error(e)
    if info is None or not info.is_folder:
        http_error(404, "not_found", "Folder not found")
    access = repo.effective_access(info.path, username=username)
    return FolderOut(
        id=info.id,
        path=info.path,
        owner_user_id=info.owner_user_id,
        metadata=repo.get_folder_metadata(info.id),
        can_read=access.can_read,
        can_write=access.can_write,
    )


@router.get("/folders", response_model=FolderOut)
def get_folder(user: CurrentUserDep, repo: RepositoryDep, path: str = Query(..., min_length=1, max_length=1024)):
    return _folder_out(repo, path, user.username)


class CreateFolderRequest(BaseModel):
    path: str


@router.post("/folders", response_model=FolderOut, status_code=201)
def create_folder(user: CurrentUserDep, db: DbDep, repo: RepositoryDep, req: CreateFolderRequest):
    if not req.path.strip():
        http_error(422, "invalid_request", "Missing path")
    try:
        info = repo.create_folder(req.path, username=user.username)
    except OperationFailed as e:
        operation_error(e)
    commit_db(db)
    return _folder_out(repo, info.path, user.username)


class SchedulableRequest(BaseModel):
    path: str
    schedulable: bool


@router.put("/folders/schedulable", response_model=FolderOut)
def set_schedulable(user: CurrentUserDep, db: DbDep, repo: RepositoryDep, req: SchedulableRequest):
    try:
        repo.set_metadata(req.path, SCHEDULABLE_KEY, "true" if req.schedulable else "false", username=user.username)
    except OperationFailed as e:
        operation_error(e)
    commit_db(db)
    return _folder_out(repo, req.path, user.username)


class AceRequest(BaseModel):
    path: str
    principal_type: Literal["user", "role"] = "user"
    principal: str
    can_read: bool = True
    can_write: bool = False


@router.put("/folders/acl")
def set_folder_ace(user: CurrentUserDep, db: DbDep, repo: RepositoryDep, req: AceRequest):
    principal = req.principal.strip()
    if not principal:
        http_error(422, "invalid_request", "Missing principal")
    try:
        repo.set_ace(
            req.path,
            principal_type=req.principal_type,
            principal=principal,
            can_read=req.can_read,
            can_write=req.can_write,
            username=user.username,
        )
    except OperationFailed as e:
        operation_error(e)
    commit_db(db)
    return {"ok": True}
