from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class ApprovalStatus(BaseModel):
    """Body of GET /api/approval-status (camelCase on the wire)."""
    is_approved: bool = Field(alias="isApproved")
    department_name: Optional[str] = Field(default=None, alias="departmentName")
    role: Optional[str] = None
    position: Optional[str] = None
    department_id: Optional[str] = Field(default=None, alias="departmentId")
    last_checked: datetime = Field(alias="lastChecked")

    class Config:
        populate_by_name = True
