# app/api/endpoints/webhooks.py

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_db_session, get_identity_provider
from app.core.config import settings
from app.core.errors import AppError, raise_http
from app.services.identity_provider import IdentityProvider
from app.services.webhook_service import handle_user_created, handle_user_deleted, verify_event

router = APIRouter(prefix="/api/webhooks", tags=["Webhooks"])


# -------------------------------------------------------------------
# Identity provider lifecycle events (svix-signed)
# -------------------------------------------------------------------
@router.post("/clerk")
async def clerk_webhook(
    request: Request,
    session: AsyncSession = Depends(get_db_session),
    provider: IdentityProvider = Depends(get_identity_provider),
):
    if not settings.CLERK_WEBHOOK_SECRET:
        logger.error("CLERK_WEBHOOK_SECRET is not configured")
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Webhook secret not configured")

    body = await request.body()

    try:
        event = verify_event(settings.CLERK_WEBHOOK_SECRET, body, request.headers)
        event_type = event["type"]
        logger.info(f"Webhook event: {event_type}")

        if event_type == "user.created":
            await handle_user_created(session, provider, event["data"])
            return Response("User Created", status_code=status.HTTP_201_CREATED)

        if event_type == "user.deleted":
            await handle_user_deleted(session, event["data"])

    except AppError as e:
        raise_http(e)

    return Response("", status_code=status.HTTP_200_OK)
