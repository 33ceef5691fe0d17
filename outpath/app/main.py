from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import and_, func, select

from .auth import hash_password
from .db import db_session, init_db
from .exceptions import install_exception_handlers
from .models import User
from .routers import admin, auth, repository, scheduler, settings
from .services.repository import SqlRepository
from .settings import SETTINGS


logger = logging.getLogger(__name__)


def _bootstrap_repository() -> None:
    # "/", the public folder (shared read+write) and the home root (read only).
    with db_session() as db:
        repo = SqlRepository(db)
        repo.ensure_folder(repo.paths.get_root_folder_path())
        repo.ensure_shared_folder(repo.paths.get_public_folder_path(), can_write=True)
        repo.ensure_shared_folder(repo.paths.home_root, can_write=False)
        db.commit()


def _bootstrap_admin() -> None:
    if not SETTINGS.admin_username or not SETTINGS.admin_password:
        return

    with db_session() as db:
        active_admins = db.scalar(
            select(func.count()).select_from(User).where(and_(User.role == "admin", User.is_disabled == False))  # noqa: E712
        )
        if (active_admins or 0) > 0:
            return

        admin_user = User(
            username=SETTINGS.admin_username.strip(),
            password_hash=hash_password(SETTINGS.admin_password),
            role="admin",
            is_disabled=False,
        )
        db.add(admin_user)
        db.flush()
        SqlRepository(db).ensure_home_folder(admin_user)
        db.commit()
        logger.info("bootstrap admin created: %s", admin_user.username)


def create_app() -> FastAPI:
    logging.basicConfig(level=SETTINGS.log_level)
    init_db()
    _bootstrap_repository()
    _bootstrap_admin()

    app = FastAPI(title="outpath", version="0.1.0")
    install_exception_handlers(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth.router, prefix="/api")
    app.include_router(admin.router, prefix="/api")
    app.include_router(repository.router, prefix="/api")
    app.include_router(settings.router, prefix="/api")
    app.include_router(scheduler.router, prefix="/api")

    return app


app = create_app()
