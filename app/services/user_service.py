# app/services/user_service.py

from typing import Any, Dict, List, Optional

from loguru import logger
from sqlmodel import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import NotFound, UpstreamError, ValidationFailed
from app.core.permissions import clean_id
from app.models.department import Department
from app.models.user import User, UserRole, parse_role
from app.schemas.user import UserDirectoryEntry, UserUpdate
from app.services.identity_provider import Identity, IdentityProvider


# ============================================================================
# FETCH MIRROR ROWS
# ============================================================================
async def get_user_by_clerk_id(session: AsyncSession, clerk_id: str) -> User | None:
    result = await session.execute(select(User).where(User.clerk_id == clerk_id))
    return result.scalar_one_or_none()


async def list_users(session: AsyncSession) -> list[User]:
    result = await session.execute(select(User))
    return result.scalars().all()


# ============================================================================
# DEFAULT METADATA FOR NEW ACCOUNTS
# ============================================================================
def is_super_admin_email(email: Optional[str]) -> bool:
    if not email or not settings.SUPER_ADMIN_EMAIL:
        return False
    return email.strip().lower() == settings.SUPER_ADMIN_EMAIL.strip().lower()


def default_public_metadata(email: Optional[str], public_metadata: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Metadata every new identity gets. The bootstrap super-admin address is
    always a sysadmin; everybody else keeps a recognised role or becomes a
    member, with no department until a sysadmin assigns one.
    """
    public_metadata = public_metadata or {}

    if is_super_admin_email(email):
        role = UserRole.SysAdmin
    else:
        role = parse_role(public_metadata.get("role")) or UserRole.Member

    return {
        "role": role.value,
        "position": public_metadata.get("position") or "",
        "department_id": clean_id(public_metadata.get("department_id")),
        "department_head": public_metadata.get("department_head") is True,
    }


# ============================================================================
# CREATE / DELETE MIRROR
# ============================================================================
async def create_mirror_user(
    session: AsyncSession,
    identity: Identity,
    metadata: Dict[str, Any],
) -> User:
    email = identity.primary_email
    if not email:
        raise ValidationFailed("No email found")

    user = User(
        clerk_id=identity.id,
        email=email,
        full_name=identity.full_name,
        role=metadata.get("role") or UserRole.Member.value,
        position=metadata.get("position") or None,
        department_id=clean_id(metadata.get("department_id")),
        department_head=metadata.get("department_head") is True,
    )
    session.add(user)

    try:
        await session.commit()
        await session.refresh(user)
        return user
    except IntegrityError as e:
        await session.rollback()
        logger.error(f"Mirror insert conflict for {identity.id}: {e}")
        raise UpstreamError("Error creating user record") from e
    except SQLAlchemyError as e:
        await session.rollback()
        logger.exception("Mirror insert failed")
        raise UpstreamError("Error creating user record") from e


async def delete_mirror_user(session: AsyncSession, clerk_id: str) -> bool:
    """Returns False when there was no row to delete."""
    user = await get_user_by_clerk_id(session, clerk_id)
    if not user:
        return False

    try:
        await session.delete(user)
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.exception(f"Mirror delete failed for {clerk_id}")
        raise UpstreamError("Error deleting user record") from e
    return True


# ============================================================================
# UPDATE (sysadmin edit)
# ============================================================================
async def update_user(
    session: AsyncSession,
    provider: IdentityProvider,
    user_id: str,
    data: UserUpdate,
) -> User | None:
    """
    Writes the identity metadata first and the mirror row only once the
    provider has accepted it, so a provider failure leaves the mirror as it
    was. Returns the mirror row (None if the identity has none yet).
    """
    if data.department_id:
        dept = await session.get(Department, data.department_id)
        if not dept:
            raise ValidationFailed("Department not found")

    # no department means no head scope
    department_head = data.department_head and data.department_id is not None

    await provider.update_user(
        user_id,
        first_name=data.first_name,
        last_name=data.last_name,
        public_metadata={
            "role": data.role.value,
            "position": data.position or "",
            "department_id": data.department_id,
            "department_head": department_head,
        },
    )

    user = await get_user_by_clerk_id(session, user_id)
    if user:
        full_name = " ".join(p for p in (data.first_name, data.last_name) if p)
        if full_name:
            user.full_name = full_name
        user.role = data.role.value
        user.position = data.position or None
        user.department_id = data.department_id
        user.department_head = department_head
        session.add(user)
        try:
            await session.commit()
            await session.refresh(user)
        except SQLAlchemyError as e:
            await session.rollback()
            logger.exception(f"Failed to update mirror row for {user_id}")
            raise UpstreamError("Failed to update user") from e

    logger.info(f"Updated user {user_id}: role={data.role.value} department={data.department_id}")
    return user


async def delete_user(session: AsyncSession, provider: IdentityProvider, user_id: str) -> None:
    identity = await provider.get_user(user_id)
    if not identity:
        raise NotFound("User not found")

    await provider.delete_user(user_id)
    # the user.deleted webhook does this too; deleting twice is harmless
    await delete_mirror_user(session, user_id)
    logger.info(f"Deleted user {user_id}")


# ============================================================================
# SYNC & DIRECTORY
# ============================================================================
async def sync_users(session: AsyncSession, provider: IdentityProvider) -> int:
    """Creates mirror rows for identities that have none. Returns how many."""
    identities = await provider.list_users()
    existing = {u.clerk_id for u in await list_users(session)}

    created = 0
    for identity in identities:
        if identity.id in existing or not identity.primary_email:
            continue
        metadata = default_public_metadata(identity.primary_email, identity.public_metadata)
        try:
            await create_mirror_user(session, identity, metadata)
            created += 1
        except UpstreamError:
            # one bad row should not stop the rest of the sync
            logger.error(f"Skipping identity {identity.id} during sync")
    return created


async def list_directory(session: AsyncSession, provider: IdentityProvider) -> List[UserDirectoryEntry]:
    identities = await provider.list_users()

    result = await session.execute(
        select(User, Department.name).join(Department, User.department_id == Department.id, isouter=True)
    )
    mirror = {user.clerk_id: (user, dept_name) for user, dept_name in result.all()}

    entries = []
    for identity in identities:
        user, dept_name = mirror.get(identity.id, (None, None))
        meta = identity.public_metadata
        entries.append(UserDirectoryEntry(
            id=identity.id,
            first_name=identity.first_name or "",
            last_name=identity.last_name or "",
            username=identity.username or "",
            email=identity.primary_email or "",
            role=meta.get("role") or UserRole.Member.value,
            position=meta.get("position") or "",
            department_id=user.department_id if user else None,
            department=dept_name,
            department_head=bool(user.department_head) if user else False,
        ))
    return entries
