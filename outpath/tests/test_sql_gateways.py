from __future__ import annotations

from uuid import uuid4

import pytest
from sqlalchemy import select

from outpath.app.models import User
from outpath.app.services.authorization import RoleAuthorizationPolicy
from outpath.app.services.output_path_resolver import ResolutionRequest, build_output_path_resolver
from outpath.app.services.repository import SCHEDULABLE_KEY, SqlRepository
from outpath.app.services.scheduler_errors import AccessControlError, OperationFailed, SchedulingNotAllowed
from outpath.app.services.settings_store import DEFAULT_OUTPUT_PATH_SETTING_KEY, SqlSettingsStore
from outpath.app.settings import SCHEDULER_ACTION_NAME


def _user(db, role: str = "user") -> User:
    user = User(username=f"u_{uuid4().hex[:10]}", password_hash="x", role=role, is_disabled=False)
    db.add(user)
    db.flush()
    SqlRepository(db).ensure_home_folder(user)
    return user


def test_home_folder_is_private(db):
    repo = SqlRepository(db)
    alice, bob = _user(db), _user(db)
    home = repo.paths.get_home_folder_path(alice.username)

    assert repo.get_file(home, username=alice.username).is_folder
    assert repo.has_read_write_access(home, username=alice.username)
    with pytest.raises(AccessControlError):
        repo.get_file(home, username=bob.username)
    assert not repo.has_read_write_access(home, username=bob.username)


def test_public_folder_is_shared(db):
    repo = SqlRepository(db)
    alice = _user(db)
    assert repo.has_read_write_access("/public", username=alice.username)
    assert repo.get_file("/public/", username=alice.username).path == "/public"
    assert repo.get_file("/public/missing", username=alice.username) is None


def test_acl_inherited_from_nearest_node(db):
    repo = SqlRepository(db)
    alice, bob = _user(db), _user(db)
    shared = repo.create_folder(f"/public/{alice.username}-shared", username=alice.username)
    child = repo.create_folder(f"{shared.path}/child", username=alice.username)

    # Inherits /public's authenticated read+write until the folder gets its own ACEs.
    assert repo.has_read_write_access(child.path, username=bob.username)

    repo.set_ace(shared.path, principal_type="user", principal=bob.username, can_read=True, can_write=False, username=alice.username)
    assert repo.get_file(child.path, username=bob.username) is not None
    assert not repo.has_read_write_access(child.path, username=bob.username)
    assert repo.has_read_write_access(child.path, username=alice.username)


def test_create_folder_checks(db):
    repo = SqlRepository(db)
    alice, bob = _user(db), _user(db)
    home = repo.paths.get_home_folder_path(alice.username)

    with pytest.raises(OperationFailed) as e:
        repo.create_folder(f"{home}/a/b", username=alice.username)
    assert str(e.value).startswith("parent_not_found:")

    repo.create_folder(f"{home}/a", username=alice.username)
    with pytest.raises(OperationFailed) as e:
        repo.create_folder(f"{home}/a", username=alice.username)
    assert str(e.value).startswith("already_exists:")

    with pytest.raises(AccessControlError):
        repo.create_folder(f"{home}/b", username=bob.username)


def test_metadata_requires_owner_or_admin(db):
    repo = SqlRepository(db)
    alice, bob, admin = _user(db), _user(db), _user(db, role="admin")
    home = repo.paths.get_home_folder_path(alice.username)

    repo.set_metadata(home, SCHEDULABLE_KEY, "false", username=alice.username)
    info = repo.get_file(home, username=alice.username)
    assert repo.get_folder_metadata(info.id) == {SCHEDULABLE_KEY: "false"}

    with pytest.raises(AccessControlError):
        repo.set_metadata(home, SCHEDULABLE_KEY, "true", username=bob.username)
    repo.set_metadata(home, SCHEDULABLE_KEY, "true", username=admin.username)
    assert repo.get_folder_metadata(info.id)[SCHEDULABLE_KEY] == "true"


def test_role_authorization_defaults_and_overrides(db):
    policy = RoleAuthorizationPolicy(db)
    user, admin = _user(db), _user(db, role="admin")

    assert policy.is_allowed(SCHEDULER_ACTION_NAME, username=user.username)
    assert policy.is_allowed("anything.else", username=admin.username)
    assert not policy.is_allowed("anything.else", username=user.username)
    assert not policy.is_allowed(SCHEDULER_ACTION_NAME, username="nobody")

    policy.set_role_action("user", SCHEDULER_ACTION_NAME, is_allowed=False)
    assert not policy.is_allowed(SCHEDULER_ACTION_NAME, username=user.username)
    assert policy.clear_role_action("user", SCHEDULER_ACTION_NAME)
    assert policy.is_allowed(SCHEDULER_ACTION_NAME, username=user.username)


def test_settings_store(db):
    store = SqlSettingsStore(db)
    user = _user(db)
    assert store.get_user_setting(DEFAULT_OUTPUT_PATH_SETTING_KEY, user.username) is None

    store.set_user_setting(DEFAULT_OUTPUT_PATH_SETTING_KEY, "/public", user_id=user.id)
    assert store.get_user_setting(DEFAULT_OUTPUT_PATH_SETTING_KEY, user.username) == "/public"

    store.set_user_setting(DEFAULT_OUTPUT_PATH_SETTING_KEY, "", user_id=user.id)
    assert store.get_user_setting(DEFAULT_OUTPUT_PATH_SETTING_KEY, user.username) is None

    store.set_system_setting("some-key", "value")
    assert store.get_system_setting("some-key") == "value"


def test_sql_resolver_end_to_end(db):
    resolver = build_output_path_resolver(db)
    repo = SqlRepository(db)
    alice = _user(db)
    home = repo.paths.get_home_folder_path(alice.username)

    request = ResolutionRequest(filename="Sales/Sales.*", directory="/public", action_user=alice.username)
    assert resolver.resolve_output_file_path(request) == "/public/Sales/Sales.*"

    request = ResolutionRequest(filename="Sales.*", directory="/does/not/exist", action_user=alice.username)
    assert resolver.resolve_output_file_path(request) == f"{home}/Sales.*"

    repo.set_metadata(home, SCHEDULABLE_KEY, "false", username=alice.username)
    with pytest.raises(SchedulingNotAllowed):
        resolver.resolve_output_file_path(ResolutionRequest(filename="Sales.*", action_user=alice.username))

    unknown = ResolutionRequest(filename="Sales.*", action_user="ghost_" + uuid4().hex[:6])
    assert resolver.resolve_output_file_path(unknown) is None


def test_bootstrap_folders_and_admin(client):
    from outpath.app.db import db_session  # noqa: WPS433

    with db_session() as db:
        repo = SqlRepository(db)
        admin = db.scalar(select(User).where(User.username == "admin"))
        assert admin is not None and admin.role == "admin"
        for path in ("/", "/public", "/home", "/home/admin"):
            info = repo.get_file(path, username="admin")
            assert info is not None and info.is_folder
        assert repo.has_read_write_access("/public", username="admin")
