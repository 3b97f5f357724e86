# app/core/permissions.py

"""
Permission predicates for every mutating operation.

Each predicate takes the acting user (an `Actor`, or None when there is no
session) plus the department ids involved, and returns a bool. They never
raise and never touch the database: callers evaluate them before issuing any
write and abort with a denial when they return False.

Everything fails closed. A missing actor, an unrecognised role, or a blank
department id can only ever produce False.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from app.models.user import UserRole, parse_role


def clean_id(value) -> Optional[str]:
    """Normalise an id: None, blanks and non-scalars become None."""
    if value is None or isinstance(value, (bool, dict, list)):
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class Actor:
    id: Optional[str] = None
    role: Optional[UserRole] = None
    department_id: Optional[str] = None
    is_department_head: bool = False

    @classmethod
    def from_metadata(cls, identity_id: Optional[str], metadata: Optional[Mapping[str, Any]]) -> "Actor":
        metadata = metadata or {}
        return cls(
            id=clean_id(identity_id),
            role=parse_role(metadata.get("role")),
            department_id=clean_id(metadata.get("department_id")),
            # only a real boolean True counts
            is_department_head=metadata.get("department_head") is True,
        )

    @property
    def is_sysadmin(self) -> bool:
        return self.role == UserRole.SysAdmin

    @property
    def heads_a_department(self) -> bool:
        return self.role is not None and self.is_department_head and self.department_id is not None


ANONYMOUS = Actor()


def _is_sysadmin(actor: Optional[Actor]) -> bool:
    return actor is not None and actor.is_sysadmin


def _heads(actor: Optional[Actor], department_id) -> bool:
    target = clean_id(department_id)
    return (
        actor is not None
        and actor.heads_a_department
        and target is not None
        and actor.department_id == target
    )


# ------------------------------------------------------------
# Departments & users (sysadmin only)
# ------------------------------------------------------------
def can_manage_departments(actor: Optional[Actor]) -> bool:
    return _is_sysadmin(actor)


def can_manage_users(actor: Optional[Actor]) -> bool:
    return _is_sysadmin(actor)


def can_edit_user(actor: Optional[Actor]) -> bool:
    return _is_sysadmin(actor)


def can_access_department(actor: Optional[Actor], department_id) -> bool:
    if _is_sysadmin(actor):
        return True
    target = clean_id(department_id)
    return (
        actor is not None
        and actor.role is not None
        and target is not None
        and actor.department_id == target
    )


# ------------------------------------------------------------
# Projects
# ------------------------------------------------------------
def can_create_project(actor: Optional[Actor], target_department_id) -> bool:
    return _is_sysadmin(actor) or _heads(actor, target_department_id)


def can_edit_project(actor: Optional[Actor], target_department_id) -> bool:
    return can_create_project(actor, target_department_id)


def can_delete_project(actor: Optional[Actor], project_department_id, current_department_id) -> bool:
    """
    `current_department_id` is the department the request was made from.
    A head may only delete when the stored project department agrees with it.
    """
    if _is_sysadmin(actor):
        return True
    project_dept = clean_id(project_department_id)
    return (
        _heads(actor, current_department_id)
        and project_dept is not None
        and project_dept == clean_id(current_department_id)
    )


# ------------------------------------------------------------
# Tasks
# ------------------------------------------------------------
def can_create_or_edit_task(actor: Optional[Actor], target_department_id) -> bool:
    return _is_sysadmin(actor) or _heads(actor, target_department_id)


def can_delete_task(actor: Optional[Actor], task_department_id) -> bool:
    return _is_sysadmin(actor) or _heads(actor, task_department_id)


# ------------------------------------------------------------
# Attachments
# ------------------------------------------------------------
def can_delete_attachment(actor: Optional[Actor], resource_owner_id) -> bool:
    if actor is None or actor.role is None:
        return False
    if actor.is_sysadmin or actor.heads_a_department:
        return True
    owner = clean_id(resource_owner_id)
    return owner is not None and actor.id == owner
