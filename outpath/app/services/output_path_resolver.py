from __future__ import annotations

# Scheduled-job output path resolution.
#
# Given a requested folder and a filename pattern, pick the folder the job
# output is written to. Candidates, first valid one wins:
#
# 1. the requested folder (must also grant the acting user read+write),
# 2. the acting user's "default-scheduler-output-path" user setting,
# 3. the system-wide "default-scheduler-output-path" setting,
# 4. the acting user's home folder.
#
# Everything runs while impersonating the job creator (`action_user`), not the
# caller. Lookup failures only disqualify a candidate. The one error that
# escapes is SchedulingNotAllowed: an authorized user targeting a folder whose
# metadata says it is not schedulable.

import logging
from dataclasses import dataclass
from typing import Callable, Iterator

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import User
from ..settings import SCHEDULER_ACTION_NAME
from ..utils.repo_paths import base_name, concat, path_no_end_separator
from .authorization import AuthorizationPolicy, RoleAuthorizationPolicy
from .home_paths import RepositoryPaths, default_repository_paths
from .identity import IdentityContext
from .repository import SCHEDULABLE_KEY, RepositoryGateway, SqlRepository
from .scheduler_errors import SchedulingNotAllowed
from .settings_store import DEFAULT_OUTPUT_PATH_SETTING_KEY, SettingsStore, SqlSettingsStore


logger = logging.getLogger(__name__)

UNKNOWN_JOB_NAME = "<?>"

_TRUE_STRINGS = frozenset({"true", "t", "yes", "y", "on"})


def to_boolean(value: str | None) -> bool:
    return str(value or "").lower() in _TRUE_STRINGS


def _is_not_blank(value: str | None) -> bool:
    return bool(value and value.strip())


@dataclass(frozen=True)
class ResolutionRequest:
    filename: str
    action_user: str
    directory: str | None = None

    def __post_init__(self) -> None:
        if not _is_not_blank(self.filename):
            raise ValueError("filename_required")
        if not _is_not_blank(self.action_user):
            raise ValueError("action_user_required")

    @property
    def job_name(self) -> str:
        """Job name for diagnostics, taken from the filename pattern.

        ``"Sales/Sales.*"`` gives ``"Sales"``; a bare ``"Sales.*"`` gives
        ``"Sales"`` as well.
        """

        if not _is_not_blank(self.filename):
            return UNKNOWN_JOB_NAME
        name = path_no_end_separator(self.filename)
        if not name:
            name = base_name(self.filename).removesuffix(".*")
        return name or UNKNOWN_JOB_NAME


class OutputPathResolver:
    def __init__(
        self,
        *,
        repository: RepositoryGateway,
        authorization: AuthorizationPolicy,
        settings_store: SettingsStore,
        home_paths: RepositoryPaths,
        identity: IdentityContext,
        action_name: str = SCHEDULER_ACTION_NAME,
        setting_key: str = DEFAULT_OUTPUT_PATH_SETTING_KEY,
    ):
        self.repository = repository
        self.authorization = authorization
        self.settings_store = settings_store
        self.home_paths = home_paths
        self.identity = identity
        self.action_name = action_name
        self.setting_key = setting_key

    def resolve_output_file_path(self, request: ResolutionRequest) -> str | None:
        """Return the repository path the job output goes to, or None.

        None means no candidate validated, which the home folder fallback
        should rule out; callers treat it as an unexpected state.

        Raises:
            SchedulingNotAllowed: a candidate folder is explicitly marked
                not schedulable for an authorized user.
        """

        try:
            return self.identity.run_as(request.action_user, lambda: self._resolve(request))
        except SchedulingNotAllowed:
            raise
        except Exception:
            logger.exception("resolve_output_file_path failed: action_user=%s", request.action_user)
        return None

    def _resolve(self, request: ResolutionRequest) -> str | None:
        directory = request.directory
        if (
            _is_not_blank(directory)
            and self.is_valid_output_path(directory, request)
            and self.is_permitted(directory, request)
        ):
            return concat(directory, request.filename)

        # No permission check for fallbacks: settings are pre-vetted, home belongs to the user.
        for source, path in self._fallback_candidates(request):
            if _is_not_blank(path) and self.is_valid_output_path(path, request):
                logger.debug("output path fallback used: source=%s path=%s", source, path)
                return concat(path, request.filename)

        logger.error("no valid output path: job=%s action_user=%s", request.job_name, request.action_user)
        return None

    def _fallback_candidates(self, request: ResolutionRequest) -> Iterator[tuple[str, str | None]]:
        lookups: list[tuple[str, Callable[[], str | None]]] = [
            ("user_setting", lambda: self.settings_store.get_user_setting(self.setting_key, request.action_user)),
            ("system_setting", lambda: self.settings_store.get_system_setting(self.setting_key)),
            ("home_folder", lambda: self.home_paths.get_home_folder_path(request.action_user)),
        ]
        for source, lookup in lookups:
            try:
                yield source, lookup()
            except Exception as exc:
                logger.warning("output path candidate lookup failed: source=%s (%s)", source, exc, exc_info=True)

    def is_valid_output_path(self, path: str, request: ResolutionRequest) -> bool:
        try:
            info = self.repository.get_file(path, username=request.action_user)
        except Exception as exc:
            logger.warning("output path lookup failed: %s (%s)", path, exc, exc_info=True)
            return False
        if info is None or not info.is_folder:
            logger.warning("output path is not an existing folder: %s", path)
            return False
        return self.is_schedule_allowed(info.id, request)

    def is_schedule_allowed(self, folder_id: str, request: ResolutionRequest) -> bool:
        try:
            can_schedule = self.authorization.is_allowed(self.action_name, username=request.action_user)
        except Exception as exc:
            logger.warning("authorization check failed: %s (%s)", self.action_name, exc, exc_info=True)
            return False
        if not can_schedule:
            logger.info("user may not manage schedules: %s", request.action_user)
            return False

        try:
            metadata = self.repository.get_folder_metadata(folder_id)
        except Exception as exc:
            logger.warning("folder metadata lookup failed: %s (%s)", folder_id, exc, exc_info=True)
            return False
        if SCHEDULABLE_KEY in metadata and not to_boolean(metadata[SCHEDULABLE_KEY]):
            raise SchedulingNotAllowed(request.job_name, request.action_user)
        return True

    def is_permitted(self, path: str, request: ResolutionRequest) -> bool:
        try:
            return self.repository.has_read_write_access(path, username=request.action_user)
        except Exception as exc:
            logger.warning("access check failed: %s (%s)", path, exc, exc_info=True)
        return False


def _active_user_exists(db: Session) -> Callable[[str], bool]:
    def check(username: str) -> bool:
        user = db.scalar(select(User).where(User.username == username))
        return user is not None and not user.is_disabled

    return check


def build_output_path_resolver(db: Session, *, paths: RepositoryPaths | None = None) -> OutputPathResolver:
    repo_paths = paths or default_repository_paths()
    return OutputPathResolver(
        repository=SqlRepository(db, paths=repo_paths),
        authorization=RoleAuthorizationPolicy(db),
        settings_store=SqlSettingsStore(db),
        home_paths=repo_paths,
        identity=IdentityContext(identity_exists=_active_user_exists(db)),
    )
