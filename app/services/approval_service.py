# app/services/approval_service.py

from datetime import datetime, timezone

from loguru import logger
from sqlmodel import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.approval import is_approved
from app.core.errors import UpstreamError
from app.models.department import Department
from app.models.user import User
from app.schemas.approval import ApprovalStatus
from app.services.identity_provider import Identity


async def get_approval_status(session: AsyncSession, identity: Identity) -> ApprovalStatus:
    """
    Approval as recorded on the user's mirror row. A missing row (the
    user.created webhook has not landed yet) is a lookup failure, never an
    implicit approval.
    """
    try:
        result = await session.execute(
            select(User, Department.name)
            .join(Department, User.department_id == Department.id, isouter=True)
            .where(User.clerk_id == identity.id)
        )
        row = result.first()
    except SQLAlchemyError as e:
        logger.exception(f"Error fetching user status for {identity.id}")
        raise UpstreamError("Failed to fetch user status") from e

    if row is None:
        logger.warning(f"No user record yet for identity {identity.id}")
        raise UpstreamError("Failed to fetch user status")

    user, department_name = row
    return ApprovalStatus(
        is_approved=is_approved(user.department_id, user.role),
        department_name=department_name,
        role=user.role,
        position=user.position,
        department_id=user.department_id,
        last_checked=datetime.now(timezone.utc),
    )
