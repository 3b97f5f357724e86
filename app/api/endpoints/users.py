# app/api/endpoints/users.py

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from app.api.deps import get_current_actor, get_db_session, get_identity_provider
from app.core.errors import AppError, NotFound, ValidationFailed, raise_http
from app.core.permissions import Actor
from app.core.rbac import require_user_admin
from app.schemas.user import SuccessResponse, UserDirectoryEntry, UserUpdate
from app.services.identity_provider import IdentityProvider
from app.services import user_service

router = APIRouter(prefix="/api/users", tags=["Users"])


# -------------------------------------------------------------------
# List users (identity + department info)
# -------------------------------------------------------------------
@router.get("", response_model=List[UserDirectoryEntry])
async def list_users(
    session: AsyncSession = Depends(get_db_session),
    provider: IdentityProvider = Depends(get_identity_provider),
    _: Actor = Depends(get_current_actor),
):
    try:
        return await user_service.list_directory(session, provider)
    except AppError as e:
        raise_http(e)


# -------------------------------------------------------------------
# Backfill mirror rows for identities created before the webhook (sysadmin)
# -------------------------------------------------------------------
@router.post("/sync")
async def sync_users(
    session: AsyncSession = Depends(get_db_session),
    provider: IdentityProvider = Depends(get_identity_provider),
    _: Actor = Depends(require_user_admin),
):
    try:
        created = await user_service.sync_users(session, provider)
    except AppError as e:
        raise_http(e)
    return {"success": True, "created": created}


# -------------------------------------------------------------------
# Edit role / department / position (sysadmin)
# -------------------------------------------------------------------
@router.patch("/{user_id}", response_model=SuccessResponse)
async def update_user(
    user_id: str,
    payload: UserUpdate,
    session: AsyncSession = Depends(get_db_session),
    provider: IdentityProvider = Depends(get_identity_provider),
    _: Actor = Depends(require_user_admin),
):
    try:
        await user_service.update_user(session, provider, user_id, payload)
    except ValidationFailed as e:
        raise_http(e)
    except AppError as e:
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error") from e
    return SuccessResponse()


# -------------------------------------------------------------------
# Delete a user account (sysadmin)
# -------------------------------------------------------------------
@router.delete("/{user_id}", response_model=SuccessResponse)
async def delete_user(
    user_id: str,
    session: AsyncSession = Depends(get_db_session),
    provider: IdentityProvider = Depends(get_identity_provider),
    actor: Actor = Depends(require_user_admin),
):
    if user_id == actor.id:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "You cannot delete your own account")

    try:
        await user_service.delete_user(session, provider, user_id)
    except (ValidationFailed, NotFound) as e:
        raise_http(e)
    except AppError as e:
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error") from e
    return SuccessResponse()
