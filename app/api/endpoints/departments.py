# app/api/endpoints/departments.py

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_approved_actor, get_db_session
from app.core.errors import AppError, raise_http
from app.core.permissions import Actor
from app.core.rbac import require_department_admin
from app.schemas.department import DepartmentCreate, DepartmentRead, DepartmentUpdate
from app.schemas.project import ProjectCreate, ProjectRead, ProjectWithTasks
from app.services import department_service, project_service

router = APIRouter(
    prefix="/api/departments",
    tags=["Departments"]
)


# 1️⃣ List departments
@router.get("", response_model=List[DepartmentRead])
async def list_departments(
    _: Actor = Depends(get_approved_actor),
    session: AsyncSession = Depends(get_db_session)
):
    return await department_service.list_departments(session)


# 2️⃣ Create department (sysadmin)
@router.post("", response_model=DepartmentRead, status_code=status.HTTP_201_CREATED)
async def create_department(
    payload: DepartmentCreate,
    actor: Actor = Depends(require_department_admin),
    session: AsyncSession = Depends(get_db_session)
):
    try:
        return await department_service.create_department(session, actor, payload.name)
    except AppError as e:
        raise_http(e)


# 3️⃣ Department detail
@router.get("/{department_id}", response_model=DepartmentRead)
async def get_department(
    department_id: str,
    _: Actor = Depends(get_approved_actor),
    session: AsyncSession = Depends(get_db_session)
):
    try:
        return await department_service.get_department(session, department_id)
    except AppError as e:
        raise_http(e)


# 4️⃣ Rename department (sysadmin)
@router.patch("/{department_id}", response_model=DepartmentRead)
async def rename_department(
    department_id: str,
    payload: DepartmentUpdate,
    actor: Actor = Depends(require_department_admin),
    session: AsyncSession = Depends(get_db_session)
):
    try:
        return await department_service.rename_department(session, actor, department_id, payload.name)
    except AppError as e:
        raise_http(e)


# 5️⃣ Delete department (sysadmin, only when it owns no projects)
@router.delete("/{department_id}")
async def delete_department(
    department_id: str,
    actor: Actor = Depends(require_department_admin),
    session: AsyncSession = Depends(get_db_session)
):
    try:
        await department_service.delete_department(session, actor, department_id)
    except AppError as e:
        raise_http(e)
    return {"detail": "Department deleted successfully"}


# 6️⃣ Projects of a department (with their tasks)
@router.get("/{department_id}/projects", response_model=List[ProjectWithTasks])
async def list_projects(
    department_id: str,
    actor: Actor = Depends(get_approved_actor),
    session: AsyncSession = Depends(get_db_session)
):
    try:
        return await project_service.list_department_projects(session, actor, department_id)
    except AppError as e:
        raise_http(e)


# 7️⃣ Create project in this department
@router.post("/{department_id}/projects", response_model=ProjectRead, status_code=status.HTTP_201_CREATED)
async def create_project(
    department_id: str,
    payload: ProjectCreate,
    actor: Actor = Depends(get_approved_actor),
    session: AsyncSession = Depends(get_db_session)
):
    try:
        return await project_service.create_project(session, actor, department_id, payload)
    except AppError as e:
        raise_http(e)
