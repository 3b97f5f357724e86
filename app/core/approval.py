# app/core/approval.py

from dataclasses import dataclass
from typing import Any, Mapping, Optional


def _present(value) -> bool:
    # null, "" and whitespace are all "not assigned"
    if value is None or isinstance(value, bool):
        return False
    return str(value).strip() != ""


def is_approved(department_id, role) -> bool:
    """An account is approved once it has both a department and a role."""
    return _present(department_id) and _present(role)


@dataclass(frozen=True)
class ApprovalCheck:
    is_approved: bool
    has_department_id: bool
    has_role: bool
    department_id: Optional[str] = None
    role: Optional[str] = None
    position: Optional[str] = None
    department_head: bool = False


def check_user_approval(metadata: Optional[Mapping[str, Any]]) -> ApprovalCheck:
    """Reads approval from identity metadata. No metadata means not approved."""
    if not metadata:
        return ApprovalCheck(is_approved=False, has_department_id=False, has_role=False)

    department_id = metadata.get("department_id")
    role = metadata.get("role")
    has_department_id = _present(department_id)
    has_role = _present(role)

    return ApprovalCheck(
        is_approved=has_department_id and has_role,
        has_department_id=has_department_id,
        has_role=has_role,
        department_id=str(department_id).strip() if has_department_id else None,
        role=str(role).strip() if has_role else None,
        position=metadata.get("position") or None,
        department_head=metadata.get("department_head") is True,
    )
