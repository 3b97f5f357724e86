from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, field_validator, model_validator

from app.models.enums import TaskStatus


def _check_dates(model):
    if model.start_date and model.end_date and model.end_date < model.start_date:
        raise ValueError("end_date cannot be before start_date")
    return model


class TaskCreate(BaseModel):
    title: str
    description: Optional[str] = None
    status: TaskStatus = TaskStatus.Pending
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    assigned_to: Optional[str] = None
    # Optional; when sent it must match the project's department
    department_id: Optional[str] = None

    @field_validator("title")
    @classmethod
    def title_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Task title is required")
        return value

    @model_validator(mode="after")
    def dates_in_order(self):
        return _check_dates(self)


class TaskUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    assigned_to: Optional[str] = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        if not value:
            raise ValueError("Task title cannot be empty")
        return value

    @model_validator(mode="after")
    def dates_in_order(self):
        return _check_dates(self)


class TaskRead(BaseModel):
    id: str
    project_id: str
    department_id: str
    title: str
    description: Optional[str] = None
    status: TaskStatus
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    assigned_to: Optional[str] = None
    created_by: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class TaskListItem(TaskRead):
    project_name: Optional[str] = None
