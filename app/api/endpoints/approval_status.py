# app/api/endpoints/approval_status.py

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_identity, get_db_session
from app.core.errors import UpstreamError, raise_http
from app.core.rate_limiter import limiter
from app.schemas.approval import ApprovalStatus
from app.services.approval_service import get_approval_status
from app.services.identity_provider import Identity

router = APIRouter(prefix="/api", tags=["Approval"])


# -------------------------------------------------------------------
# Polled by the "waiting for approval" screen
# -------------------------------------------------------------------
@router.get("/approval-status", response_model=ApprovalStatus)
@limiter.limit("60/minute")
async def approval_status(
    request: Request,
    identity: Identity = Depends(get_current_identity),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        return await get_approval_status(session, identity)
    except UpstreamError as e:
        raise_http(e)
