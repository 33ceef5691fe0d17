from __future__ import annotations

import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path

import pytest
from fastapi.testclient import TestClient


def _init_test_env() -> None:
    """
    Point settings at an isolated database before importing app modules.

    This must run at module import time, because settings and the engine
    are created during module import and read env vars only once.
    """

    root = Path(tempfile.mkdtemp(prefix="outpath-pytest-"))
    os.environ["OUTPATH_DB_PATH"] = str(root / "test.db")
    os.environ.setdefault("OUTPATH_JWT_SECRET", "test-secret")
    os.environ.setdefault("OUTPATH_ALLOW_SIGNUP", "1")
    os.environ.setdefault("OUTPATH_ADMIN_USERNAME", "admin")
    os.environ.setdefault("OUTPATH_ADMIN_PASSWORD", "admin-password-123")
    os.environ.pop("OUTPATH_DEFAULT_SCHEDULER_OUTPUT_PATH", None)


_init_test_env()


def pytest_sessionstart(session: pytest.Session) -> None:
    started_at = datetime.now(tz=timezone.utc).isoformat(timespec="seconds")
    print(f"[outpath-test] status=running started_at={started_at}", flush=True)


def pytest_sessionfinish(session: pytest.Session, exitstatus: int) -> None:
    finished_at = datetime.now(tz=timezone.utc).isoformat(timespec="seconds")
    result = "passed" if exitstatus == 0 else "failed"
    print(f"[outpath-test] status=finished result={result} exit_code={exitstatus} finished_at={finished_at}", flush=True)


@pytest.fixture(scope="session")
def client():
    from outpath.app.main import app  # noqa: WPS433

    return TestClient(app)


@pytest.fixture
def db(client):
    # Depends on `client` so tables and bootstrap folders exist.
    from outpath.app.db import db_session  # noqa: WPS433

    with db_session() as session:
        yield session
        session.rollback()
