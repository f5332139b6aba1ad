"""
authgate Database Models
SQLAlchemy ORM models for principals (users, admins) and roles.
"""

from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import String, Integer, DateTime, ForeignKey, Boolean
from sqlalchemy.orm import Mapped, mapped_column, relationship

from authgate.core.constants import EMAIL_MAX_LENGTH, ROLE_NAME_MAX_LENGTH, USERNAME_MAX_LENGTH
from authgate.core.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# User Model
# =============================================================================

class User(Base):
    """
    End-user account, created by registration.

    The password hash never leaves the service: response schemas are built
    from explicit field lists that do not include it.
    """
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(USERNAME_MAX_LENGTH), unique=True, index=True)
    email: Mapped[str] = mapped_column(String(EMAIL_MAX_LENGTH), unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(60))

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r}>"


# =============================================================================
# Role Model
# =============================================================================

class Role(Base):
    """Permission label referenced by admins. Lifecycle independent of admins."""
    __tablename__ = "roles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(ROLE_NAME_MAX_LENGTH), unique=True, index=True)
    display_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def __repr__(self) -> str:
        return f"<Role id={self.id} name={self.name!r}>"


# =============================================================================
# Admin Model
# =============================================================================

class Admin(Base):
    """
    Administrator account.

    is_super bypasses every role restriction. role_id is a weak reference:
    deleting the role nulls it.
    """
    __tablename__ = "admins"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(USERNAME_MAX_LENGTH), unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(60))
    is_super: Mapped[bool] = mapped_column(Boolean, default=False)
    role_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("roles.id", ondelete="SET NULL"), nullable=True, index=True
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    # Loaded eagerly: the permission gate reads role.name after the session call returns.
    role: Mapped[Optional["Role"]] = relationship(lazy="selectin")

    @property
    def role_name(self) -> Optional[str]:
        return self.role.name if self.role is not None else None

    def __repr__(self) -> str:
        return f"<Admin id={self.id} username={self.username!r} super={self.is_super}>"
