from typing import Optional
from pydantic import BaseModel, Field, field_validator
from app.models.user import UserRole


# ---------------------------------------------------------
# UPDATE USER (sysadmin edits)
# ---------------------------------------------------------
class UserUpdate(BaseModel):
    first_name: Optional[str] = Field(default=None, alias="firstName")
    last_name: Optional[str] = Field(default=None, alias="lastName")
    role: UserRole
    position: Optional[str] = None
    department_id: Optional[str] = None   # "none" / "" clears it
    department_head: bool = False

    @field_validator("department_id")
    @classmethod
    def blank_department_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        if not value or value.lower() == "none":
            return None
        return value

    class Config:
        populate_by_name = True


# ---------------------------------------------------------
# DIRECTORY ENTRY (identity + mirror row)
# ---------------------------------------------------------
class UserDirectoryEntry(BaseModel):
    id: str
    first_name: str = Field(default="", serialization_alias="firstName")
    last_name: str = Field(default="", serialization_alias="lastName")
    username: str = ""
    email: str = ""
    role: str = UserRole.Member.value
    position: str = ""
    department_id: Optional[str] = None
    department: Optional[str] = None
    department_head: bool = False


class SuccessResponse(BaseModel):
    success: bool = True
