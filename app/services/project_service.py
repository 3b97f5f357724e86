# app/services/project_service.py

from typing import List

from fastapi import UploadFile
from loguru import logger
from sqlmodel import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFound, PermissionDenied, ValidationFailed
from app.core.permissions import (
    Actor,
    can_access_department,
    can_create_project,
    can_delete_attachment,
    can_delete_project,
    can_edit_project,
)
from app.core.storage import AttachmentStorage
from app.models.department import Department
from app.models.project import Project
from app.models.task import Task
from app.schemas.project import ProjectCreate, ProjectListItem, ProjectUpdate, ProjectWithTasks
from app.schemas.task import TaskRead
from app.services.department_service import get_department


# ============================================================================
# READS
# ============================================================================
async def get_project(session: AsyncSession, project_id: str) -> Project:
    project = await session.get(Project, project_id)
    if not project:
        raise NotFound("Project not found")
    return project


async def _tasks_by_project(session: AsyncSession, project_ids: List[str]) -> dict:
    grouped = {pid: [] for pid in project_ids}
    if not project_ids:
        return grouped
    result = await session.execute(
        select(Task).where(Task.project_id.in_(project_ids)).order_by(Task.created_at.asc())
    )
    for task in result.scalars().all():
        grouped[task.project_id].append(TaskRead.model_validate(task))
    return grouped


def _with_tasks(project: Project, tasks) -> ProjectWithTasks:
    data = ProjectWithTasks.model_validate(project)
    data.tasks = tasks
    return data


async def get_project_with_tasks(session: AsyncSession, actor: Actor, project_id: str) -> ProjectWithTasks:
    project = await get_project(session, project_id)
    if not can_access_department(actor, project.department_id):
        raise PermissionDenied("You do not have access to this department.")
    tasks = await _tasks_by_project(session, [project.id])
    return _with_tasks(project, tasks[project.id])


async def list_department_projects(
    session: AsyncSession,
    actor: Actor,
    department_id: str,
) -> List[ProjectWithTasks]:
    await get_department(session, department_id)
    if not can_access_department(actor, department_id):
        raise PermissionDenied("You do not have access to this department.")

    result = await session.execute(
        select(Project)
        .where(Project.department_id == department_id)
        .order_by(Project.created_at.desc())
    )
    projects = result.scalars().all()
    tasks = await _tasks_by_project(session, [p.id for p in projects])
    return [_with_tasks(p, tasks[p.id]) for p in projects]


async def list_projects(session: AsyncSession, actor: Actor) -> List[ProjectListItem]:
    """All projects the actor can see, with their department name, by start date."""
    query = (
        select(Project, Department.name)
        .join(Department, Project.department_id == Department.id, isouter=True)
        .order_by(Project.start_date.asc().nulls_last(), Project.created_at.desc())
    )
    # sysadmin sees every department, everybody else only their own
    if not actor.is_sysadmin:
        query = query.where(Project.department_id == actor.department_id)

    result = await session.execute(query)
    items = []
    for project, department_name in result.all():
        item = ProjectListItem.model_validate(project)
        item.department_name = department_name
        items.append(item)
    return items


# ============================================================================
# MUTATIONS
# ============================================================================
async def create_project(
    session: AsyncSession,
    actor: Actor,
    department_id: str,
    data: ProjectCreate,
) -> Project:
    if not can_create_project(actor, department_id):
        raise PermissionDenied("You do not have permission to create project in this department.")

    await get_department(session, department_id)

    project = Project(
        name=data.name,
        description=data.description,
        start_date=data.start_date,
        end_date=data.end_date,
        department_id=department_id,
        created_by=actor.id,
    )
    session.add(project)
    await session.commit()
    await session.refresh(project)
    logger.info(f"Project created: {project.name} ({project.id}) in {department_id} by {actor.id}")
    return project


async def update_project(
    session: AsyncSession,
    actor: Actor,
    project_id: str,
    data: ProjectUpdate,
) -> Project:
    project = await get_project(session, project_id)

    if not can_edit_project(actor, project.department_id):
        if actor.heads_a_department:
            raise PermissionDenied("Department heads can only edit projects in their own department.")
        raise PermissionDenied("You do not have permission to edit projects.")

    changes = data.model_dump(exclude_unset=True)
    # name is a required column; an explicit null leaves it as is
    if changes.get("name", "") is None:
        changes.pop("name")

    start = changes.get("start_date", project.start_date)
    end = changes.get("end_date", project.end_date)
    if start and end and end < start:
        raise ValidationFailed("end_date cannot be before start_date")

    for field, value in changes.items():
        setattr(project, field, value)

    session.add(project)
    await session.commit()
    await session.refresh(project)
    return project


async def delete_project(
    session: AsyncSession,
    actor: Actor,
    project_id: str,
    current_department_id: str,
) -> None:
    """`current_department_id` is the department page the delete came from."""
    project = await get_project(session, project_id)

    if not can_delete_project(actor, project.department_id, current_department_id):
        raise PermissionDenied("You do not have permission to delete projects in this department.")

    result = await session.execute(select(Task).where(Task.project_id == project.id))
    for task in result.scalars().all():
        await session.delete(task)
    await session.delete(project)
    await session.commit()
    logger.info(f"Project deleted: {project.id} by {actor.id}")


# ============================================================================
# ATTACHMENTS
# ============================================================================
async def add_attachments(
    session: AsyncSession,
    storage: AttachmentStorage,
    actor: Actor,
    project_id: str,
    files: List[UploadFile],
) -> Project:
    project = await get_project(session, project_id)

    if not can_edit_project(actor, project.department_id):
        raise PermissionDenied("You do not have permission to edit projects.")

    urls = []
    for file in files:
        urls.append(await storage.upload(file, project.id))

    # assign a new list so the JSON column is marked dirty
    project.attachments = [*(project.attachments or []), *urls]
    session.add(project)
    await session.commit()
    await session.refresh(project)
    return project


async def remove_attachment(
    session: AsyncSession,
    storage: AttachmentStorage,
    actor: Actor,
    project_id: str,
    url: str,
) -> Project:
    project = await get_project(session, project_id)

    if not can_delete_attachment(actor, project.created_by):
        raise PermissionDenied("You do not have permission to delete this attachment.")

    if url not in (project.attachments or []):
        raise NotFound("Attachment not found on this project")

    await storage.delete(url)

    project.attachments = [a for a in project.attachments if a != url]
    session.add(project)
    await session.commit()
    await session.refresh(project)
    return project
