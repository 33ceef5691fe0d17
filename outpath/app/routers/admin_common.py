from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from ..utils.errors import http_error


def commit_db(db: Session) -> None:
    # Commit, rolling back on failure.
    try:
        db.commit()
    except Exception as exc:
        details = f"Commit failed: {exc}"
        try:
            db.rollback()
        except Exception as rollback_exc:
            details = f"{details}; rollback failed: {rollback_exc}"
        http_error(500, "db_error", details)


def refresh_db(db: Session, obj: Any) -> None:
    try:
        db.refresh(obj)
    except Exception as exc:
        http_error(500, "db_error", f"Refresh failed: {exc}")
