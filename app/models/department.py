from sqlmodel import SQLModel, Field
from sqlalchemy import Column, DateTime, String
from datetime import datetime
import uuid


class Department(SQLModel, table=True):
    __tablename__ = "departments"

    # Primary Key must be ONLY inside sa_column
    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        sa_column=Column(String(36), primary_key=True)
    )

    name: str = Field(
        sa_column=Column(String(128), nullable=False, unique=True)
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
