# app/services/webhook_service.py

import json
from typing import Any, Dict, Mapping

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession
from svix.webhooks import Webhook, WebhookVerificationError

from app.core.errors import UpstreamError, ValidationFailed
from app.services.identity_provider import Identity, IdentityProvider
from app.services.user_service import (
    create_mirror_user,
    default_public_metadata,
    delete_mirror_user,
)

SIGNATURE_HEADERS = ("svix-id", "svix-timestamp", "svix-signature")


def verify_event(secret: str, body: bytes, headers: Mapping[str, str]) -> Dict[str, Any]:
    """
    Checks the svix signature, then decodes the body. `verify` is only used
    as a signature check; its return value differs between svix releases.
    """
    svix_headers = {name: headers.get(name) for name in SIGNATURE_HEADERS}
    if not all(svix_headers.values()):
        raise ValidationFailed("Error occured -- no svix headers")

    try:
        Webhook(secret).verify(body, svix_headers)
    except WebhookVerificationError as e:
        logger.warning(f"Webhook signature rejected: {e}")
        raise ValidationFailed("Error verifying webhook") from e

    try:
        event = json.loads(body)
    except ValueError as e:
        raise ValidationFailed("Malformed webhook payload") from e

    if not isinstance(event, dict) or not isinstance(event.get("data"), dict) or "type" not in event:
        raise ValidationFailed("Malformed webhook payload")
    return event


async def handle_user_created(session: AsyncSession, provider: IdentityProvider, data: Dict[str, Any]) -> None:
    identity = Identity.from_clerk(data)
    email = identity.primary_email
    if not email:
        raise ValidationFailed("No email found")

    logger.info(f"Processing user creation for: {email}")
    metadata = default_public_metadata(email, identity.public_metadata)

    # A metadata failure must not block the mirror row; the sysadmin edit
    # screen writes metadata again anyway.
    try:
        await provider.update_user(identity.id, public_metadata=metadata)
    except UpstreamError as e:
        logger.error(f"Error updating identity metadata for {identity.id}: {e.message}")

    await create_mirror_user(session, identity, metadata)
    logger.success(f"Mirrored new user {identity.id} as {metadata['role']}")


async def handle_user_deleted(session: AsyncSession, data: Dict[str, Any]) -> None:
    clerk_id = data.get("id")
    if not clerk_id:
        raise ValidationFailed("No user ID found")

    if await delete_mirror_user(session, clerk_id):
        logger.info(f"User with clerk_id {clerk_id} deleted from mirror")
    else:
        logger.info(f"No mirror row for deleted user {clerk_id}")
