from datetime import date, datetime
from typing import List, Optional
from pydantic import BaseModel, field_validator, model_validator

from app.schemas.task import TaskRead


# ---------------------------------------------------------
# CREATE / EDIT
# ---------------------------------------------------------
class ProjectCreate(BaseModel):
    name: str
    description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @field_validator("name")
    @classmethod
    def name_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Project name is required")
        return value

    @field_validator("description")
    @classmethod
    def blank_description_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None

    @model_validator(mode="after")
    def dates_in_order(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date cannot be before start_date")
        return self


class ProjectUpdate(BaseModel):
    """Partial edit: only the fields sent are changed."""
    name: Optional[str] = None
    description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        if not value:
            raise ValueError("Project name cannot be empty")
        return value

    @field_validator("description")
    @classmethod
    def blank_description_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None

    @model_validator(mode="after")
    def dates_in_order(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date cannot be before start_date")
        return self


# ---------------------------------------------------------
# READ
# ---------------------------------------------------------
class ProjectRead(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    department_id: str
    created_by: Optional[str] = None
    attachments: List[str] = []
    created_at: datetime

    class Config:
        from_attributes = True


class ProjectWithTasks(ProjectRead):
    tasks: List[TaskRead] = []


class ProjectListItem(ProjectRead):
    department_name: Optional[str] = None
