from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Literal

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    username: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    role: Mapped[Literal["user", "admin"]] = mapped_column(String(16), nullable=False, default="user")
    is_disabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    settings: Mapped[list["UserSetting"]] = relationship(back_populates="user", cascade="all, delete-orphan")


class RepoFile(Base):
    __tablename__ = "repo_files"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    # Normalized absolute path: leading "/", no trailing or duplicate separators.
    path: Mapped[str] = mapped_column(String(1024), unique=True, index=True, nullable=False)
    is_folder: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    owner_user_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    metadata_items: Mapped[list["RepoFileMetadata"]] = relationship(
        back_populates="file",
        cascade="all, delete-orphan",
    )
    aces: Mapped[list["RepoFileAce"]] = relationship(back_populates="file", cascade="all, delete-orphan")


class RepoFileMetadata(Base):
    __tablename__ = "repo_file_metadata"

    file_id: Mapped[str] = mapped_column(String(36), ForeignKey("repo_files.id"), primary_key=True)
    key: Mapped[str] = mapped_column(String(128), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False, default="")

    file: Mapped[RepoFile] = relationship(back_populates="metadata_items")


class RepoFileAce(Base):
    __tablename__ = "repo_file_aces"
    __table_args__ = (UniqueConstraint("file_id", "principal_type", "principal", name="uq_repo_file_ace"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    file_id: Mapped[str] = mapped_column(String(36), ForeignKey("repo_files.id"), index=True, nullable=False)
    principal_type: Mapped[Literal["user", "role"]] = mapped_column(String(16), nullable=False, default="user")
    principal: Mapped[str] = mapped_column(String(64), nullable=False)
    can_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    can_write: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    file: Mapped[RepoFile] = relationship(back_populates="aces")


class UserSetting(Base):
    __tablename__ = "user_settings"

    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), primary_key=True)
    key: Mapped[str] = mapped_column(String(128), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False, default="")
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    user: Mapped[User] = relationship(back_populates="settings")


class SystemSetting(Base):
    __tablename__ = "system_settings"

    key: Mapped[str] = mapped_column(String(128), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False, default="")
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)


class RoleAction(Base):
    __tablename__ = "role_actions"

    role: Mapped[str] = mapped_column(String(16), primary_key=True)
    action: Mapped[str] = mapped_column(String(128), primary_key=True)
    is_allowed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
