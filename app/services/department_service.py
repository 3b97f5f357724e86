# app/services/department_service.py

from sqlmodel import select
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger

from app.core.errors import NotFound, PermissionDenied, ReferentialConflict, ValidationFailed
from app.core.permissions import Actor, can_manage_departments
from app.models.department import Department
from app.models.project import Project


async def list_departments(session: AsyncSession) -> list[Department]:
    result = await session.execute(select(Department).order_by(Department.name.asc()))
    return result.scalars().all()


async def get_department(session: AsyncSession, department_id: str) -> Department:
    dept = await session.get(Department, department_id)
    if not dept:
        raise NotFound("Department not found")
    return dept


async def count_projects(session: AsyncSession, department_id: str) -> int:
    result = await session.execute(
        select(func.count()).select_from(Project).where(Project.department_id == department_id)
    )
    return result.scalar_one()


async def create_department(session: AsyncSession, actor: Actor, name: str) -> Department:
    if not can_manage_departments(actor):
        raise PermissionDenied("You do not have permission to manage departments.")

    dept = Department(name=name)
    session.add(dept)
    try:
        await session.commit()
        await session.refresh(dept)
    except IntegrityError:
        await session.rollback()
        raise ValidationFailed(f"A department named '{name}' already exists")

    logger.info(f"Department created: {dept.name} ({dept.id})")
    return dept


async def rename_department(session: AsyncSession, actor: Actor, department_id: str, name: str) -> Department:
    if not can_manage_departments(actor):
        raise PermissionDenied("You do not have permission to manage departments.")

    dept = await get_department(session, department_id)
    dept.name = name
    session.add(dept)
    try:
        await session.commit()
        await session.refresh(dept)
    except IntegrityError:
        await session.rollback()
        raise ValidationFailed(f"A department named '{name}' already exists")
    return dept


async def delete_department(session: AsyncSession, actor: Actor, department_id: str) -> None:
    """
    Refuses while the department still owns projects. Projects are never
    cascaded away with their department.
    """
    if not can_manage_departments(actor):
        raise PermissionDenied("You do not have permission to manage departments.")

    dept = await get_department(session, department_id)

    if await count_projects(session, department_id) > 0:
        raise ReferentialConflict(
            "Cannot delete department with associated projects. "
            "Please delete or reassign the projects first."
        )

    await session.delete(dept)
    await session.commit()
    logger.info(f"Department deleted: {dept.name} ({dept.id})")
