# app/services/task_service.py

from typing import Optional

from loguru import logger
from sqlmodel import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFound, PermissionDenied, ValidationFailed
from app.core.permissions import Actor, can_create_or_edit_task, can_delete_task, clean_id
from app.models.enums import TaskStatus
from app.models.project import Project
from app.models.task import Task
from app.schemas.task import TaskCreate, TaskListItem, TaskUpdate
from app.services.project_service import get_project


async def get_task(session: AsyncSession, task_id: str) -> Task:
    task = await session.get(Task, task_id)
    if not task:
        raise NotFound("Task not found")
    return task


async def list_tasks(
    session: AsyncSession,
    actor: Actor,
    status: Optional[TaskStatus] = None,
) -> list[TaskListItem]:
    # sysadmin sees every department, everybody else only their own
    query = (
        select(Task, Project.name)
        .join(Project, Task.project_id == Project.id, isouter=True)
        .order_by(Task.created_at.desc())
    )
    if not actor.is_sysadmin:
        query = query.where(Task.department_id == actor.department_id)
    if status:
        query = query.where(Task.status == status)

    result = await session.execute(query)
    items = []
    for task, project_name in result.all():
        item = TaskListItem.model_validate(task)
        item.project_name = project_name
        items.append(item)
    return items


async def create_task(
    session: AsyncSession,
    actor: Actor,
    project_id: str,
    data: TaskCreate,
) -> Task:
    project = await get_project(session, project_id)

    if not can_create_or_edit_task(actor, project.department_id):
        raise PermissionDenied("You do not have permission to create tasks in this project.")

    # department is always the project's; a different one is a client bug
    requested = clean_id(data.department_id)
    if requested is not None and requested != project.department_id:
        raise ValidationFailed("Task department must match its project's department")

    task = Task(
        project_id=project.id,
        department_id=project.department_id,
        title=data.title,
        description=data.description or None,
        status=data.status,
        start_date=data.start_date,
        end_date=data.end_date,
        assigned_to=data.assigned_to,
        created_by=actor.id,
    )
    session.add(task)
    await session.commit()
    await session.refresh(task)
    logger.info(f"Task created: {task.id} in project {project.id} by {actor.id}")
    return task


async def update_task(
    session: AsyncSession,
    actor: Actor,
    task_id: str,
    data: TaskUpdate,
) -> Task:
    task = await get_task(session, task_id)

    if not can_create_or_edit_task(actor, task.department_id):
        raise PermissionDenied("You do not have permission to edit tasks in this project.")

    changes = data.model_dump(exclude_unset=True)
    # title and status are required columns; an explicit null leaves them as is
    for field in ("title", "status"):
        if changes.get(field, "") is None:
            changes.pop(field)

    start = changes.get("start_date", task.start_date)
    end = changes.get("end_date", task.end_date)
    if start and end and end < start:
        raise ValidationFailed("end_date cannot be before start_date")

    for field, value in changes.items():
        setattr(task, field, value)

    session.add(task)
    await session.commit()
    await session.refresh(task)
    return task


async def delete_task(session: AsyncSession, actor: Actor, task_id: str) -> None:
    task = await get_task(session, task_id)

    if not can_delete_task(actor, task.department_id):
        raise PermissionDenied("You do not have permission to delete this task.")

    await session.delete(task)
    await session.commit()
    logger.info(f"Task deleted: {task.id} by {actor.id}")
