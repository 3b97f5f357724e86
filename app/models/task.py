# app/models/task.py

from sqlmodel import SQLModel, Field, Column
from sqlalchemy import Date, DateTime, ForeignKey, String, Text
from sqlalchemy import Enum as PGEnum
from datetime import date, datetime
import uuid
from typing import Optional

from app.models.enums import TaskStatus


class Task(SQLModel, table=True):
    __tablename__ = "tasks"

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        sa_column=Column(String(36), primary_key=True)
    )

    project_id: str = Field(
        sa_column=Column(String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    )

    # Copied from the parent project when the task is created
    department_id: str = Field(
        sa_column=Column(String(36), ForeignKey("departments.id"), nullable=False, index=True)
    )

    title: str = Field(
        sa_column=Column(String(256), nullable=False)
    )
    description: Optional[str] = Field(
        default=None,
        sa_column=Column(Text, nullable=True)
    )

    status: TaskStatus = Field(
        default=TaskStatus.Pending,
        sa_column=Column(
            PGEnum(TaskStatus, name="task_status", values_callable=lambda e: [m.value for m in e]),
            nullable=False,
        )
    )

    start_date: Optional[date] = Field(
        default=None,
        sa_column=Column(Date, nullable=True)
    )
    end_date: Optional[date] = Field(
        default=None,
        sa_column=Column(Date, nullable=True)
    )

    assigned_to: Optional[str] = Field(
        default=None,
        sa_column=Column(String(64), nullable=True)
    )
    created_by: Optional[str] = Field(
        default=None,
        sa_column=Column(String(64), nullable=True)
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
