# app/api/deps.py

from typing import AsyncGenerator, Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
import jwt
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.approval import check_user_approval
from app.core.config import settings
from app.core.database import get_session
from app.core.errors import UpstreamError
from app.core.permissions import Actor
from app.core.security import decode_token
from app.core.storage import AttachmentStorage, attachment_storage
from app.services.identity_provider import ClerkIdentityProvider, Identity, IdentityProvider


# ------------------------------------------------------------
# HTTP Bearer Authentication (401 handled below, not by FastAPI)
# ------------------------------------------------------------
bearer_scheme = HTTPBearer(auto_error=False)


# ------------------------------------------------------------
# DB Session
# ------------------------------------------------------------
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    async for session in get_session():
        yield session


# ------------------------------------------------------------
# External collaborators
# ------------------------------------------------------------
_identity_provider: Optional[IdentityProvider] = None


def get_identity_provider() -> IdentityProvider:
    global _identity_provider
    if _identity_provider is None:
        if not settings.CLERK_SECRET_KEY:
            logger.error("CLERK_SECRET_KEY is not configured")
            raise HTTPException(500, "Identity provider not configured")
        _identity_provider = ClerkIdentityProvider(settings.CLERK_SECRET_KEY, settings.CLERK_API_URL)
    return _identity_provider


def get_storage() -> AttachmentStorage:
    return attachment_storage


# ------------------------------------------------------------
# Current identity from the session token
# ------------------------------------------------------------
async def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    provider: IdentityProvider = Depends(get_identity_provider),
) -> Identity:
    if credentials is None:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Not authenticated")

    try:
        payload = decode_token(credentials.credentials)
    except jwt.InvalidTokenError:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Could not validate credentials")

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid token payload")

    try:
        identity = await provider.get_user(user_id)
    except UpstreamError as e:
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, e.message)

    if not identity:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Not authenticated")

    return identity


async def get_current_actor(identity: Identity = Depends(get_current_identity)) -> Actor:
    return Actor.from_metadata(identity.id, identity.public_metadata)


# ------------------------------------------------------------
# Dashboard access: only approved accounts get past this point
# ------------------------------------------------------------
async def get_approved_actor(identity: Identity = Depends(get_current_identity)) -> Actor:
    approval = check_user_approval(identity.public_metadata)
    if not approval.is_approved:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Your account is pending approval. A sysadmin must assign you a department and role.",
        )
    return Actor.from_metadata(identity.id, identity.public_metadata)
