from datetime import datetime
from pydantic import BaseModel, field_validator


class DepartmentCreate(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def name_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Department name is required")
        return value


class DepartmentUpdate(DepartmentCreate):
    pass


class DepartmentRead(BaseModel):
    id: str
    name: str
    created_at: datetime

    class Config:
        from_attributes = True
