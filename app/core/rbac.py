# app/core/rbac.py

from typing import Callable, Optional

from fastapi import Depends, HTTPException, status

from app.api.deps import get_current_actor
from app.core.permissions import Actor, can_manage_departments, can_manage_users


def Allow(
    predicate: Callable[[Optional[Actor]], bool],
    detail: str = "You do not have permission to perform this action.",
    status_code: int = status.HTTP_403_FORBIDDEN,
):
    """
    Route guard built from an actor-only permission predicate.
    Resource-scoped checks (project/task department) happen in the
    services, once the target row is known.
    """

    async def checker(actor: Actor = Depends(get_current_actor)) -> Actor:
        if not predicate(actor):
            raise HTTPException(status_code=status_code, detail=detail)
        return actor

    return checker


# ------------------------------------------------------------
# Exposed dependencies for routers
# ------------------------------------------------------------
# user administration answers 401 to non-sysadmins
require_user_admin = Allow(can_manage_users, "Unauthorized", status.HTTP_401_UNAUTHORIZED)
require_department_admin = Allow(can_manage_departments, "You do not have permission to manage departments.")
