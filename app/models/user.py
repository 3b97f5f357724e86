# app/models/user.py

from sqlmodel import SQLModel, Field, Column
from sqlalchemy import Boolean, DateTime, ForeignKey, String
from datetime import datetime
import uuid
from enum import Enum
from typing import Optional

class UserRole(str, Enum):
    Member = "member"
    Admin = "admin"
    SysAdmin = "sysadmin"

# Role strings older accounts may still carry. Head-of-department is the
# `department_head` flag now, so the legacy role reads as a plain member.
LEGACY_ROLE_ALIASES = {
    "department_head": UserRole.Member,
}


def parse_role(value) -> Optional[UserRole]:
    """
    Exact match only: "SysAdmin" or " sysadmin" is not a role. Unknown or
    missing roles map to None (no permissions).
    """
    if isinstance(value, UserRole):
        return value
    if not isinstance(value, str):
        return None

    if value in LEGACY_ROLE_ALIASES:
        return LEGACY_ROLE_ALIASES[value]
    try:
        return UserRole(value)
    except ValueError:
        return None


class User(SQLModel, table=True):
    """Mirror of an identity-provider account, kept in sync by the webhook."""
    __tablename__ = "users"

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        sa_column=Column(String(36), primary_key=True)
    )

    clerk_id: str = Field(
        sa_column=Column(String(64), nullable=False, unique=True, index=True)
    )

    email: str = Field(
        sa_column=Column(String(320), nullable=False, unique=True, index=True)
    )
    full_name: Optional[str] = Field(
        default=None,
        sa_column=Column(String(256), nullable=True)
    )

    # stored as text: the identity provider is the authority on role values
    role: Optional[str] = Field(
        default=UserRole.Member.value,
        sa_column=Column(String(32), nullable=True)
    )
    position: Optional[str] = Field(
        default=None,
        sa_column=Column(String(128), nullable=True)
    )

    department_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(36), ForeignKey("departments.id", ondelete="SET NULL"), nullable=True)
    )
    department_head: bool = Field(
        default=False,
        sa_column=Column(Boolean, nullable=False, default=False)
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
