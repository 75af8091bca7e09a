"""Request and response bodies of the /users endpoints.

Responses never carry password_hash.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class UserCreate(BaseModel):
    """POST /users. The password is strength-checked by the route, then hashed."""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "email": "accounts@vendor.example",
                "name": "Priya Raman",
                "role": "vendor",
                "password": "Vendor2025pass",
                "company_name": "Sunrise Facility Services",
            }
        }
    )

    email: EmailStr = Field(..., description="Unique, compared case-insensitively")
    name: str = Field(..., min_length=1, max_length=200)
    role: str = Field(..., pattern="^(vendor|consultant|admin)$")
    password: str = Field(..., min_length=8, description="Upper case, lower case and a digit")
    company_name: Optional[str] = Field(None, max_length=200)
    phone: Optional[str] = Field(None, max_length=30)
    assigned_consultant_id: Optional[UUID] = Field(None, description="Vendors only")


class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    company_name: Optional[str] = Field(None, max_length=200)
    phone: Optional[str] = Field(None, max_length=30)
    is_active: Optional[bool] = Field(None, description="False blocks login and API access")

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v):
        if v is not None and not v.strip():
            raise ValueError("Name cannot be blank")
        return v


class AssignConsultantRequest(BaseModel):
    consultant_id: Optional[UUID] = Field(None, description="Null removes the current pairing")


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    name: str
    role: str
    company_name: Optional[str] = None
    phone: Optional[str] = None
    is_active: bool
    assigned_consultant_id: Optional[UUID] = None
    last_login_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class UserListResponse(BaseModel):
    users: list[UserResponse]
    total: int
