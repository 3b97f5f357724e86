from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.api.deps import get_approved_actor, get_db_session
from app.core.permissions import Actor
from app.models.department import Department
from app.models.project import Project
from app.models.task import Task

router = APIRouter(prefix="/api/dashboard", tags=["Dashboard"])


async def _count(session: AsyncSession, model) -> int:
    result = await session.execute(select(func.count()).select_from(model))
    return result.scalar_one()


@router.get("/stats")
async def dashboard_stats(
    _: Actor = Depends(get_approved_actor),
    session: AsyncSession = Depends(get_db_session),
):
    return {
        "departments": await _count(session, Department),
        "projects": await _count(session, Project),
        "tasks": await _count(session, Task),
    }
