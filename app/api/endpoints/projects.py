# app/api/endpoints/projects.py

from typing import List

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_approved_actor, get_db_session, get_storage
from app.core.errors import AppError, raise_http
from app.core.permissions import Actor
from app.core.storage import AttachmentStorage
from app.schemas.project import ProjectListItem, ProjectRead, ProjectUpdate, ProjectWithTasks
from app.schemas.task import TaskCreate, TaskRead
from app.services import project_service, task_service

router = APIRouter(prefix="/api/projects", tags=["Projects"])


# -------------------------------------------------------------------
# All projects (own department, or every department for sysadmin)
# -------------------------------------------------------------------
@router.get("", response_model=List[ProjectListItem])
async def list_projects(
    actor: Actor = Depends(get_approved_actor),
    session: AsyncSession = Depends(get_db_session),
):
    return await project_service.list_projects(session, actor)


@router.get("/{project_id}", response_model=ProjectWithTasks)
async def get_project(
    project_id: str,
    actor: Actor = Depends(get_approved_actor),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        return await project_service.get_project_with_tasks(session, actor, project_id)
    except AppError as e:
        raise_http(e)


@router.patch("/{project_id}", response_model=ProjectRead)
async def update_project(
    project_id: str,
    payload: ProjectUpdate,
    actor: Actor = Depends(get_approved_actor),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        return await project_service.update_project(session, actor, project_id, payload)
    except AppError as e:
        raise_http(e)


@router.delete("/{project_id}")
async def delete_project(
    project_id: str,
    department_id: str = Query(..., description="Department the delete was issued from"),
    actor: Actor = Depends(get_approved_actor),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        await project_service.delete_project(session, actor, project_id, department_id)
    except AppError as e:
        raise_http(e)
    return {"detail": "Project deleted successfully"}


# -------------------------------------------------------------------
# Attachments
# -------------------------------------------------------------------
@router.post("/{project_id}/attachments", response_model=ProjectRead)
async def upload_attachments(
    project_id: str,
    files: List[UploadFile] = File(...),
    actor: Actor = Depends(get_approved_actor),
    session: AsyncSession = Depends(get_db_session),
    storage: AttachmentStorage = Depends(get_storage),
):
    try:
        return await project_service.add_attachments(session, storage, actor, project_id, files)
    except AppError as e:
        raise_http(e)


@router.delete("/{project_id}/attachments", response_model=ProjectRead)
async def delete_attachment(
    project_id: str,
    url: str = Query(...),
    actor: Actor = Depends(get_approved_actor),
    session: AsyncSession = Depends(get_db_session),
    storage: AttachmentStorage = Depends(get_storage),
):
    try:
        return await project_service.remove_attachment(session, storage, actor, project_id, url)
    except AppError as e:
        raise_http(e)


# -------------------------------------------------------------------
# Tasks of a project
# -------------------------------------------------------------------
@router.post("/{project_id}/tasks", response_model=TaskRead, status_code=status.HTTP_201_CREATED)
async def create_task(
    project_id: str,
    payload: TaskCreate,
    actor: Actor = Depends(get_approved_actor),
    session: AsyncSession = Depends(get_db_session),
):
    try:
        return await task_service.create_task(session, actor, project_id, payload)
    except AppError as e:
        raise_http(e)
