from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


SCHEDULER_ACTION_NAME = "outpath.scheduler.manage"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="OUTPATH_", extra="ignore")

    # Paths
    db_path: str = "data/outpath.db"

    # Auth
    jwt_secret: str = Field(default="dev-secret-change-me")
    jwt_ttl_seconds: int = 86400
    allow_signup: bool = True
    admin_username: str | None = None
    admin_password: str | None = None

    # Repository layout
    home_root: str = "/home"
    public_root: str = "/public"

    # System-wide scheduler output folder, used when no system setting row exists.
    default_scheduler_output_path: str | None = None

    # Actions granted to the "user" role unless a role action row says otherwise.
    user_role_actions: tuple[str, ...] = (SCHEDULER_ACTION_NAME,)

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    def ensure_dirs(self) -> None:
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)


SETTINGS = Settings()
