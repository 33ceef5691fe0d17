#
# Repository gateway: folder lookup, metadata and ACL checks.
#
# Effective access of a user on a path:
# - admins, and owners of the path or of any ancestor, get read+write;
# - otherwise the ACEs of the nearest node (the path itself, then its
#   ancestors) that carries any ACE decide. An ACE matches "user:<name>",
#   "role:<role>" or "role:authenticated".
#
from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import RepoFile, RepoFileAce, RepoFileMetadata, User
from ..utils.repo_paths import ancestor_paths, normalize_repo_path, parent_path
from .home_paths import RepositoryPaths, default_repository_paths
from .scheduler_errors import AccessControlError, OperationFailed


SCHEDULABLE_KEY = "schedulable"
AUTHENTICATED_ROLE = "authenticated"


@dataclass(frozen=True)
class RepoFileInfo:
    id: str
    path: str
    is_folder: bool
    owner_user_id: str | None


@dataclass(frozen=True)
class Access:
    can_read: bool
    can_write: bool


class RepositoryGateway(Protocol):
    def get_file(self, path: str, *, username: str) -> RepoFileInfo | None: ...

    def get_folder_metadata(self, folder_id: str) -> dict[str, str]: ...

    def has_read_write_access(self, path: str, *, username: str) -> bool: ...


def _info(row: RepoFile) -> RepoFileInfo:
    return RepoFileInfo(id=row.id, path=row.path, is_folder=row.is_folder, owner_user_id=row.owner_user_id)


def _ace_matches(ace: RepoFileAce, user: User) -> bool:
    if ace.principal_type == "user":
        return ace.principal == user.username
    return ace.principal in (user.role, AUTHENTICATED_ROLE)


class SqlRepository:
    def __init__(self, db: Session, *, paths: RepositoryPaths | None = None):
        self.db = db
        self.paths = paths or default_repository_paths()

    # ---- lookups -------------------------------------------------------

    def _user(self, username: str) -> User | None:
        user = self.db.scalar(select(User).where(User.username == username))
        if user is None or user.is_disabled:
            return None
        return user

    def _row(self, path: str) -> RepoFile | None:
        return self.db.scalar(select(RepoFile).where(RepoFile.path == normalize_repo_path(path)))

    def _lineage(self, path: str) -> list[RepoFile]:
        # Existing nodes from the path itself up to the root, nearest first.
        chain = ancestor_paths(path)
        rows = self.db.scalars(select(RepoFile).where(RepoFile.path.in_(chain))).all()
        by_path = {row.path: row for row in rows}
        return [by_path[p] for p in chain if p in by_path]

    def _owns(self, user: User, lineage: list[RepoFile]) -> bool:
        return any(row.owner_user_id == user.id for row in lineage)

    def effective_access(self, path: str, *, username: str) -> Access:
        user = self._user(username)
        if user is None:
            return Access(can_read=False, can_write=False)
        if user.role == "admin":
            return Access(can_read=True, can_write=True)

        lineage = self._lineage(path)
        if self._owns(user, lineage):
            return Access(can_read=True, can_write=True)

        for row in lineage:
            if not row.aces:
                continue
            matching = [ace for ace in row.aces if _ace_matches(ace, user)]
            return Access(
                can_read=any(ace.can_read for ace in matching),
                can_write=any(ace.can_write for ace in matching),
            )
        return Access(can_read=False, can_write=False)

    def get_file(self, path: str, *, username: str) -> RepoFileInfo | None:
        row = self._row(path)
        if row is None:
            return None
        if not self.effective_access(row.path, username=username).can_read:
            raise AccessControlError(f"read_denied: {row.path} ({username})")
        return _info(row)

    def get_folder_metadata(self, folder_id: str) -> dict[str, str]:
        items = self.db.scalars(select(RepoFileMetadata).where(RepoFileMetadata.file_id == folder_id)).all()
        return {item.key: item.value for item in items}

    def has_read_write_access(self, path: str, *, username: str) -> bool:
        if self._row(path) is None:
            return False
        access = self.effective_access(path, username=username)
        return access.can_read and access.can_write

    # ---- mutations -----------------------------------------------------

    def _require_manage(self, row: RepoFile, username: str) -> None:
        user = self._user(username)
        if user is None:
            raise AccessControlError(f"unknown_user: {username}")
        if user.role == "admin" or self._owns(user, self._lineage(row.path)):
            return
        raise AccessControlError(f"manage_denied: {row.path} ({username})")

    def ensure_folder(self, path: str, *, owner_user_id: str | None = None) -> RepoFileInfo:
        """Create ``path`` and any missing ancestors without access checks.

        Used for bootstrap and home folders. Only the leaf folder gets
        ``owner_user_id``; missing ancestors are created ownerless.
        """

        target = normalize_repo_path(path)
        for current in reversed(ancestor_paths(target)):
            row = self._row(current)
            if row is None:
                row = RepoFile(
                    path=current,
                    is_folder=True,
                    owner_user_id=owner_user_id if current == target else None,
                )
                self.db.add(row)
                self.db.flush()
            elif not row.is_folder:
                raise OperationFailed(f"not_a_folder: {current}")
        return _info(self._row(target))

    def ensure_shared_folder(self, path: str, *, can_write: bool) -> RepoFileInfo:
        # Folder every authenticated user can read (and optionally write), unless ACEs already exist.
        info = self.ensure_folder(path)
        row = self._row(info.path)
        if not row.aces:
            row.aces.append(
                RepoFileAce(principal_type="role", principal=AUTHENTICATED_ROLE, can_read=True, can_write=can_write)
            )
            self.db.flush()
        return info

    def ensure_home_folder(self, user: User) -> RepoFileInfo:
        # The owner ACE stops other users inheriting read access from the home root.
        info = self.ensure_folder(self.paths.get_home_folder_path(user.username), owner_user_id=user.id)
        row = self._row(info.path)
        if not row.aces:
            row.aces.append(RepoFileAce(principal_type="user", principal=user.username, can_read=True, can_write=True))
            self.db.flush()
        return info

    def create_folder(self, path: str, *, username: str) -> RepoFileInfo:
        target = normalize_repo_path(path)
        if self._row(target) is not None:
            raise OperationFailed(f"already_exists: {target}")
        parent = parent_path(target)
        parent_row = self._row(parent) if parent else None
        if parent_row is None or not parent_row.is_folder:
            raise OperationFailed(f"parent_not_found: {parent}")
        if not self.effective_access(parent_row.path, username=username).can_write:
            raise AccessControlError(f"write_denied: {parent_row.path} ({username})")

        user = self._user(username)
        row = RepoFile(path=target, is_folder=True, owner_user_id=user.id if user else None)
        self.db.add(row)
        self.db.flush()
        return _info(row)

    def set_metadata(self, path: str, key: str, value: str, *, username: str) -> None:
        row = self._row(path)
        if row is None:
            raise OperationFailed(f"not_found: {normalize_repo_path(path)}")
        self._require_manage(row, username)
        item = self.db.get(RepoFileMetadata, (row.id, key))
        if item is None:
            item = RepoFileMetadata(file_id=row.id, key=key, value=value)
        item.value = value
        self.db.add(item)
        self.db.flush()

    def set_ace(
        self,
        path: str,
        *,
        principal_type: Literal["user", "role"],
        principal: str,
        can_read: bool,
        can_write: bool,
        username: str,
    ) -> None:
        row = self._row(path)
        if row is None:
            raise OperationFailed(f"not_found: {normalize_repo_path(path)}")
        self._require_manage(row, username)
        ace = self.db.scalar(
            select(RepoFileAce).where(
                RepoFileAce.file_id == row.id,
                RepoFileAce.principal_type == principal_type,
                RepoFileAce.principal == principal,
            )
        )
        if ace is None:
            ace = RepoFileAce(principal_type=principal_type, principal=principal)
            row.aces.append(ace)
        ace.can_read = can_read
        ace.can_write = can_write
        self.db.add(ace)
        self.db.flush()
