from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from datetime import date, datetime
from typing import Optional
from app.models.employee import EmployeeStatus


class EmployeeCreate(BaseModel):
    first_name: str = Field(..., min_length=1)
    last_name: str = ""
    email: Optional[EmailStr] = None
    division: Optional[str] = None
    position: Optional[str] = None
    join_date: Optional[date] = None
    status: EmployeeStatus = EmployeeStatus.active
    user_id: Optional[int] = None


class EmployeeUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1)
    last_name: Optional[str] = None
    email: Optional[EmailStr] = None
    division: Optional[str] = None
    position: Optional[str] = None
    join_date: Optional[date] = None
    status: Optional[EmployeeStatus] = None

    @field_validator("first_name", "last_name", "status")
    @classmethod
    def not_null(cls, value):
        # may be left out, but the columns are NOT NULL
        if value is None:
            raise ValueError("must not be null")
        return value


class EmployeeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: Optional[int]
    first_name: str
    last_name: str
    full_name: str
    email: Optional[str]
    division: Optional[str]
    position: Optional[str]
    join_date: Optional[date]
    status: EmployeeStatus
    created_at: Optional[datetime]
