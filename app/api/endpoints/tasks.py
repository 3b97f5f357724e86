# app/api/endpoints/tasks.py

from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_approved_actor, get_db_session
from app.core.errors import AppError, raise_http
from app.core.permissions import Actor
from app.models.enums import TaskStatus
from app.schemas.task import TaskListItem, TaskRead, TaskUpdate
from app.services import task_service

router = APIRouter(prefix="/api/tasks", tags=["Tasks"])


@router.get("", response_model=List[TaskListItem])
async def list_tasks(
    status: Optional[TaskStatus] = None,
    actor: Actor = Depends(get_approved_actor),
    session: AsyncSession = Depends(get_db_session),
):
    return await task_service.list_tasks(session, actor, status)


@router.patch("/{task_id}", response_model=TaskRead)
async def update_task(
    task_id: str,
    payload: TaskUpdate,
    actor: Actor = Depends(get_approved_actor),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        return await task_service.update_task(session, actor, task_id, payload)
    except AppError as e:
        raise_http(e)


@router.delete("/{task_id}")
async def delete_task(
    task_id: str,
    actor: Actor = Depends(get_approved_actor),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        await task_service.delete_task(session, actor, task_id)
    except AppError as e:
        raise_http(e)
    return {"detail": "Task deleted successfully"}
