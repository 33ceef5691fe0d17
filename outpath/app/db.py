from __future__ import annotations

from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from .settings import SETTINGS


engine = create_engine(
    f"sqlite:///{SETTINGS.db_path}",
    connect_args={"check_same_thread": False},
    pool_pre_ping=True,
)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


@contextmanager
def db_session() -> Session:
    session = SessionLocal()
    try:
        yield session
    finally:
        try:
            session.close()
        except Exception as exc:  # pragma: no cover
            raise RuntimeError(f"db_session_close_failed: {exc}") from exc


def init_db() -> None:
    from .models import Base  # noqa: WPS433

    SETTINGS.ensure_dirs()
    _ = Base.metadata.create_all(bind=engine)
