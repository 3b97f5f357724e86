# app/models/project.py

from sqlmodel import SQLModel, Field, Column
from sqlalchemy import JSON, Date, DateTime, ForeignKey, String, Text
from datetime import date, datetime
import uuid
from typing import List, Optional


class Project(SQLModel, table=True):
    __tablename__ = "projects"

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        sa_column=Column(String(36), primary_key=True)
    )

    name: str = Field(
        sa_column=Column(String(256), nullable=False)
    )
    description: Optional[str] = Field(
        default=None,
        sa_column=Column(Text, nullable=True)
    )

    start_date: Optional[date] = Field(
        default=None,
        sa_column=Column(Date, nullable=True)
    )
    end_date: Optional[date] = Field(
        default=None,
        sa_column=Column(Date, nullable=True)
    )

    # set once at creation; edits never move a project between departments
    department_id: str = Field(
        sa_column=Column(String(36), ForeignKey("departments.id"), nullable=False, index=True)
    )

    # identity id of the creator (also the attachment owner)
    created_by: Optional[str] = Field(
        default=None,
        sa_column=Column(String(64), nullable=True)
    )

    # public URIs of files in the attachments bucket
    attachments: List[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False, default=list)
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
